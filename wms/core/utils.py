"""Utility functions for audit logging, code generation and request parsing"""
import logging
from datetime import datetime

from django.core.paginator import Paginator
from django.utils import timezone

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, status_change, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., part name, order code)
        object_reference: Reference identifier (e.g., order code, task code)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def generate_sequential_code(model, field, prefix, width=4, separator='-'):
    """
    Next code of the form <prefix><separator><NNNN> for a model field.

    Scans existing codes sharing the prefix and increments the highest
    numeric suffix. Callers run inside transaction.atomic().
    """
    full_prefix = f"{prefix}{separator}"
    existing = model.objects.filter(**{f'{field}__startswith': full_prefix}).values_list(field, flat=True)
    max_number = 0
    for code in existing:
        suffix = code[len(full_prefix):]
        if suffix.isdigit():
            max_number = max(max_number, int(suffix))
    return f"{full_prefix}{str(max_number + 1).zfill(width)}"


def parse_date(value, default=None):
    """Parse a YYYY-MM-DD query parameter; returns default when missing or invalid"""
    if not value:
        return default
    try:
        return datetime.strptime(value, '%Y-%m-%d').date()
    except (TypeError, ValueError):
        return default


def parse_bool(value):
    if value is None:
        return None
    return str(value).lower() in ('1', 'true', 'yes')


def parse_id_list(value):
    """Parse '1,2,3' (or a list) into a list of ints, ignoring junk"""
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        items = value
    else:
        items = str(value).split(',')
    ids = []
    for item in items:
        try:
            ids.append(int(item))
        except (TypeError, ValueError):
            continue
    return ids


def paginate_queryset(request, queryset, serializer_class, default_limit=20, context=None):
    """Page a queryset with Django's Paginator and return the list payload"""
    try:
        page = int(request.query_params.get('page', 1))
    except (TypeError, ValueError):
        page = 1
    try:
        limit = int(request.query_params.get('limit', default_limit))
    except (TypeError, ValueError):
        limit = default_limit
    limit = max(1, min(limit, 200))

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer = serializer_class(page_obj, many=True, context=context or {})
    return {
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    }


def today():
    return timezone.localdate()
