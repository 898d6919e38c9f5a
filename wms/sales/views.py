import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import IntegrityError
from django.db.models import ProtectedError, Q
from django.shortcuts import get_object_or_404

from wms.core.cache_utils import invalidate_dashboard_cache
from wms.core.permissions import HasResourcePermission
from wms.core.utils import create_audit_log, paginate_queryset, parse_date
from wms.mrp.services import get_sales_order_material_requirements
from .models import SalesOrder
from .serializers import SalesOrderSerializer

logger = logging.getLogger('wms.sales')


def _items_from_request(request):
    items = request.data.get('items')
    return items if isinstance(items, list) else None


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('sales_orders')])
def sales_order_list_create(request):
    """List sales orders or create one with its items"""
    if request.method == 'GET':
        queryset = SalesOrder.objects.select_related('created_by').prefetch_related('items__product')

        status_filter = request.query_params.get('status')
        search = request.query_params.get('search')
        due_from = parse_date(request.query_params.get('due_from'))
        due_to = parse_date(request.query_params.get('due_to'))

        if status_filter:
            queryset = queryset.filter(status__in=status_filter.split(','))
        if search:
            queryset = queryset.filter(
                Q(order_code__icontains=search) |
                Q(project__icontains=search) |
                Q(division__icontains=search) |
                Q(manager__icontains=search)
            )
        if due_from:
            queryset = queryset.filter(due_date__gte=due_from)
        if due_to:
            queryset = queryset.filter(due_date__lte=due_to)

        return Response(paginate_queryset(request, queryset, SalesOrderSerializer))
    else:
        items = _items_from_request(request)
        if not items:
            return Response({'error': 'At least one item is required'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = SalesOrderSerializer(data=request.data, context={'items_data': items})
        if serializer.is_valid():
            order = serializer.save(created_by=request.user)
            create_audit_log(
                request=request,
                action='create',
                model_name='SalesOrder',
                object_id=order.id,
                object_name=order.project or order.order_code,
                object_reference=order.order_code,
                changes={'total_qty': order.total_qty, 'items': len(items)}
            )
            invalidate_dashboard_cache()
            logger.info(f"Sales order {order.order_code} created with {len(items)} item(s)")
            return Response(SalesOrderSerializer(order).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('sales_orders')])
def sales_order_detail(request, pk):
    """Retrieve (with material requirements), update or delete a sales order"""
    order = get_object_or_404(SalesOrder.objects.prefetch_related('items__product'), pk=pk)

    if request.method == 'GET':
        data = SalesOrderSerializer(order).data
        data['material_requirements'] = get_sales_order_material_requirements(order)
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        old_status = order.status
        items = _items_from_request(request)
        if items is not None and not items:
            return Response({'error': 'At least one item is required'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = SalesOrderSerializer(
            order, data=request.data, partial=request.method == 'PATCH', context={'items_data': items}
        )
        if serializer.is_valid():
            order = serializer.save()
            changes = {key: str(value) for key, value in serializer.validated_data.items()}
            if items is not None:
                changes['items_replaced'] = len(items)
            create_audit_log(
                request=request,
                action='status_change' if order.status != old_status else 'update',
                model_name='SalesOrder',
                object_id=order.id,
                object_name=order.project or order.order_code,
                object_reference=order.order_code,
                changes=changes
            )
            invalidate_dashboard_cache()
            return Response(SalesOrderSerializer(order).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        order_id, code = order.id, order.order_code
        try:
            order.delete()
        except (ProtectedError, IntegrityError):
            return Response(
                {'error': 'Sales order is referenced by other records and cannot be deleted'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='SalesOrder',
            object_id=order_id,
            object_reference=code,
            changes={}
        )
        invalidate_dashboard_cache()
        return Response(status=status.HTTP_204_NO_CONTENT)
