"""
Role based access control

Each role maps a resource to the actions it may perform. Views attach
HasResourcePermission('<resource>') next to IsAuthenticated.
"""
from rest_framework.permissions import BasePermission

ACTIONS = ('view', 'create', 'edit', 'delete', 'export', 'import')

RESOURCES = (
    'dashboard', 'parts', 'products', 'bom', 'suppliers', 'inventory',
    'transactions', 'sales_orders', 'purchase_orders', 'mrp', 'picking',
    'locations', 'audits', 'reports', 'notifications', 'users', 'settings',
)

_ALL = set(ACTIONS)
_VIEW = {'view'}
_VIEW_EXPORT = {'view', 'export'}
_OPERATE = {'view', 'create', 'edit'}

ROLE_PERMISSIONS = {
    'admin': {resource: _ALL for resource in RESOURCES},
    'manager': {
        **{resource: _ALL for resource in RESOURCES},
        'users': set(),
        'settings': set(),
    },
    'operator': {
        **{resource: _VIEW for resource in RESOURCES},
        'transactions': _OPERATE,
        'picking': _OPERATE,
        'audits': _OPERATE,
        'inventory': _OPERATE,
        'locations': _OPERATE,
        'notifications': {'view', 'edit', 'delete'},
        'reports': _VIEW_EXPORT,
        'users': set(),
    },
    'viewer': {
        **{resource: _VIEW for resource in RESOURCES},
        'notifications': {'view', 'edit'},
        'users': set(),
        'settings': set(),
    },
}

METHOD_ACTIONS = {
    'GET': 'view',
    'HEAD': 'view',
    'OPTIONS': 'view',
    'POST': 'create',
    'PUT': 'edit',
    'PATCH': 'edit',
    'DELETE': 'delete',
}


def has_permission(user, resource, action):
    """Check whether a user's role allows an action on a resource"""
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    role = getattr(user, 'role', None) or 'viewer'
    return action in ROLE_PERMISSIONS.get(role, {}).get(resource, set())


def HasResourcePermission(resource, action=None):
    """
    Build a DRF permission class for a resource.

    The action is taken from the HTTP method unless fixed via `action`
    (e.g. POST endpoints that only change status use action='edit').
    """

    class _ResourcePermission(BasePermission):
        message = f'You do not have permission to perform this action on {resource}.'

        def has_permission(self, request, view):
            required = action or METHOD_ACTIONS.get(request.method, 'view')
            return has_permission(request.user, resource, required)

    _ResourcePermission.__name__ = f'HasResourcePermission_{resource}'
    return _ResourcePermission
