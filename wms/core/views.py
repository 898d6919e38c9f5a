import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer, TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import AuthenticationFailed, InvalidToken, TokenError
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db.models import Q
from django.shortcuts import get_object_or_404

from .models import AuditLog, Notification
from .permissions import HasResourcePermission, ROLE_PERMISSIONS, RESOURCES
from .serializers import UserSerializer, UserCreateSerializer, AuditLogSerializer, NotificationSerializer
from .utils import create_audit_log, paginate_queryset, parse_bool

logger = logging.getLogger('wms.core')

User = get_user_model()


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        if not self.user.is_active:
            raise AuthenticationFailed('User account is disabled.')
        data['user'] = UserSerializer(self.user).data
        return data

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['username'] = user.username
        token['role'] = user.effective_role
        return token


class CustomTokenObtainPairView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh that treats deleted users as an invalid token"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint; self-registered users are viewers"""
    serializer = UserCreateSerializer(data=request.data)
    if serializer.is_valid():
        user = serializer.save(role='viewer')
        token = CustomTokenObtainPairSerializer.get_token(user)
        logger.info(f"User registered: {user.username}")
        return Response({
            'user': UserSerializer(user).data,
            'access': str(token.access_token),
            'refresh': str(token),
        }, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Current user with the actions their role grants per resource"""
    user = request.user
    user_data = UserSerializer(user).data
    role = user.effective_role
    grants = ROLE_PERMISSIONS.get(role, {})
    user_data['permissions'] = {
        resource: sorted(grants.get(resource, set())) for resource in RESOURCES
    }
    return Response(user_data)


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('users')])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        users = User.objects.all().order_by('username')
        role = request.query_params.get('role')
        if role:
            users = users.filter(role=role)
        serializer = UserSerializer(users, many=True)
        return Response(serializer.data)
    else:
        serializer = UserCreateSerializer(data=request.data)
        if serializer.is_valid():
            user = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='User',
                object_id=user.id,
                object_name=user.username,
                changes={'role': user.role}
            )
            return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('users')])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_404(User, pk=pk)

    if request.method == 'GET':
        serializer = UserSerializer(user)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        old_role = user.role
        serializer = UserSerializer(user, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            if old_role != user.role:
                create_audit_log(
                    request=request,
                    action='update',
                    model_name='User',
                    object_id=user.id,
                    object_name=user.username,
                    changes={'role': {'old': old_role, 'new': user.role}}
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if user.pk == request.user.pk:
            return Response({'error': 'You cannot delete your own account'}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(
            request=request,
            action='delete',
            model_name='User',
            object_id=user.id,
            object_name=user.username
        )
        user.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_list(request):
    """List audit logs with filtering; non-admins only see their own"""
    queryset = AuditLog.objects.select_related('user')

    if request.user.effective_role not in ('admin', 'manager'):
        queryset = queryset.filter(user=request.user)

    action_filter = request.query_params.get('action', None)
    if action_filter:
        queryset = queryset.filter(action=action_filter)

    model_filter = request.query_params.get('model', None)
    if model_filter:
        queryset = queryset.filter(model_name=model_filter)

    reference = request.query_params.get('reference', None)
    if reference:
        queryset = queryset.filter(object_reference=reference)

    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)
    if date_from:
        queryset = queryset.filter(created_at__date__gte=date_from)
    if date_to:
        queryset = queryset.filter(created_at__date__lte=date_to)

    queryset = queryset.order_by('-created_at')
    return Response(paginate_queryset(request, queryset, AuditLogSerializer, default_limit=50))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_404(AuditLog, pk=pk)

    if request.user.effective_role not in ('admin', 'manager') and audit_log.user != request.user:
        return Response({'error': 'Permission denied'}, status=status.HTTP_403_FORBIDDEN)

    serializer = AuditLogSerializer(audit_log)
    return Response(serializer.data)


# Notification views
def _visible_notifications(user):
    return Notification.objects.filter(Q(user=user) | Q(user__isnull=True))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('notifications')])
def notification_list(request):
    """Own and global notifications, newest first"""
    queryset = _visible_notifications(request.user)

    if parse_bool(request.query_params.get('unread')):
        queryset = queryset.filter(is_read=False)
    category = request.query_params.get('category')
    if category:
        queryset = queryset.filter(category=category)

    try:
        limit = int(request.query_params.get('limit', 50))
    except ValueError:
        limit = 50

    unread_count = _visible_notifications(request.user).filter(is_read=False).count()
    serializer = NotificationSerializer(queryset.order_by('-created_at')[:limit], many=True)
    return Response({
        'results': serializer.data,
        'unread_count': unread_count,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('notifications')])
def notification_unread_count(request):
    count = _visible_notifications(request.user).filter(is_read=False).count()
    return Response({'unread_count': count})


@api_view(['PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('notifications')])
def notification_detail(request, pk):
    """Mark a notification read, or delete it"""
    notification = get_object_or_404(_visible_notifications(request.user), pk=pk)

    if request.method == 'PATCH':
        notification.is_read = bool(request.data.get('is_read', True))
        notification.save(update_fields=['is_read'])
        return Response(NotificationSerializer(notification).data)
    else:  # DELETE
        notification.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('notifications', action='edit')])
def notification_mark_all_read(request):
    updated = _visible_notifications(request.user).filter(is_read=False).update(is_read=True)
    return Response({'updated': updated})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def global_search(request):
    """Search parts, products, suppliers, sales orders and purchase orders"""
    query = request.query_params.get('q', '').strip()

    results = {
        'parts': [],
        'products': [],
        'suppliers': [],
        'sales_orders': [],
        'purchase_orders': [],
    }
    if not query:
        return Response(results)

    from wms.catalog.models import Part, Product
    from wms.parties.models import Supplier
    from wms.sales.models import SalesOrder
    from wms.purchasing.models import PurchaseOrder

    results['parts'] = list(
        Part.objects.filter(Q(part_code__icontains=query) | Q(part_name__icontains=query))
        .values('id', 'part_code', 'part_name', 'storage_location')[:10]
    )
    results['products'] = list(
        Product.objects.filter(Q(product_code__icontains=query) | Q(product_name__icontains=query))
        .values('id', 'product_code', 'product_name')[:10]
    )
    results['suppliers'] = list(
        Supplier.objects.filter(
            Q(code__icontains=query) | Q(name__icontains=query) | Q(contact_person__icontains=query)
        ).values('id', 'code', 'name', 'is_active')[:10]
    )
    results['sales_orders'] = list(
        SalesOrder.objects.filter(Q(order_code__icontains=query) | Q(project__icontains=query))
        .values('id', 'order_code', 'project', 'status', 'due_date')[:10]
    )
    results['purchase_orders'] = list(
        PurchaseOrder.objects.filter(
            Q(order_code__icontains=query) | Q(supplier__name__icontains=query)
        ).values('id', 'order_code', 'supplier__name', 'status')[:10]
    )
    return Response(results)
