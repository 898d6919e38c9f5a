import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404

from wms.core.cache_utils import invalidate_dashboard_cache, invalidate_mrp_cache
from wms.core.notifications import notify_order_created
from wms.core.permissions import HasResourcePermission
from wms.core.utils import create_audit_log, paginate_queryset, parse_date
from wms.mrp.models import MrpResult
from .models import PurchaseOrder
from .serializers import (
    PurchaseOrderSerializer, StatusChangeSerializer, ReceiveSerializer, FromMrpSerializer
)
from .services import change_status, receive_items, create_orders_from_mrp, refresh_incoming_qty

logger = logging.getLogger('wms.purchasing')


def _order_queryset():
    return PurchaseOrder.objects.select_related('supplier', 'created_by', 'approved_by').prefetch_related(
        'items__part', 'items__sales_order'
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('purchase_orders')])
def purchase_order_list_create(request):
    """List purchase orders or create one with its items"""
    if request.method == 'GET':
        queryset = _order_queryset()

        supplier = request.query_params.get('supplier')
        status_filter = request.query_params.get('status')
        search = request.query_params.get('search')
        date_from = parse_date(request.query_params.get('date_from'))
        date_to = parse_date(request.query_params.get('date_to'))

        if supplier:
            queryset = queryset.filter(supplier_id=supplier)
        if status_filter:
            queryset = queryset.filter(status__in=status_filter.split(','))
        if search:
            queryset = queryset.filter(
                Q(order_code__icontains=search) |
                Q(project__icontains=search) |
                Q(supplier__name__icontains=search)
            )
        if date_from:
            queryset = queryset.filter(order_date__gte=date_from)
        if date_to:
            queryset = queryset.filter(order_date__lte=date_to)

        return Response(paginate_queryset(request, queryset, PurchaseOrderSerializer))
    else:
        items = request.data.get('items')
        if not isinstance(items, list) or not items:
            return Response({'error': 'At least one item is required'}, status=status.HTTP_400_BAD_REQUEST)
        serializer = PurchaseOrderSerializer(data=request.data, context={'items_data': items})
        if serializer.is_valid():
            order = serializer.save(created_by=request.user)
            create_audit_log(
                request=request,
                action='create',
                model_name='PurchaseOrder',
                object_id=order.id,
                object_name=order.supplier.name,
                object_reference=order.order_code,
                changes={'total_amount': str(order.total_amount), 'items': len(items)}
            )
            notify_order_created(order)
            invalidate_dashboard_cache()
            return Response(PurchaseOrderSerializer(order).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('purchase_orders')])
def purchase_order_detail(request, pk):
    """Retrieve, update or delete a purchase order"""
    order = get_object_or_404(_order_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(order).data)
    elif request.method in ('PUT', 'PATCH'):
        items = request.data.get('items')
        items = items if isinstance(items, list) else None
        serializer = PurchaseOrderSerializer(
            order, data=request.data, partial=request.method == 'PATCH', context={'items_data': items}
        )
        if serializer.is_valid():
            order = serializer.save()
            if items is not None:
                refresh_incoming_qty(order.items.values_list('part_id', flat=True))
            create_audit_log(
                request=request,
                action='update',
                model_name='PurchaseOrder',
                object_id=order.id,
                object_name=order.supplier.name,
                object_reference=order.order_code,
                changes={key: str(value) for key, value in serializer.validated_data.items()}
            )
            return Response(PurchaseOrderSerializer(_order_queryset().get(pk=order.pk)).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if order.status not in ('draft', 'cancelled'):
            return Response(
                {'error': f'Only draft or cancelled orders can be deleted (order is {order.status})'},
                status=status.HTTP_400_BAD_REQUEST
            )
        order_id, code = order.id, order.order_code
        order.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='PurchaseOrder',
            object_id=order_id,
            object_reference=code,
            changes={}
        )
        invalidate_dashboard_cache()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('purchase_orders', action='edit')])
def purchase_order_status(request, pk):
    """Move an order through draft -> submitted -> approved -> ordered -> received"""
    order = get_object_or_404(PurchaseOrder.objects.select_related('supplier'), pk=pk)
    serializer = StatusChangeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    new_status = serializer.validated_data['status']

    old_status = change_status(order, new_status, user=request.user)
    create_audit_log(
        request=request,
        action='status_change',
        model_name='PurchaseOrder',
        object_id=order.id,
        object_name=order.supplier.name,
        object_reference=order.order_code,
        changes={'status': {'old': old_status, 'new': new_status}}
    )
    invalidate_dashboard_cache()
    return Response(PurchaseOrderSerializer(_order_queryset().get(pk=order.pk)).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('purchase_orders', action='edit')])
def purchase_order_receive(request, pk):
    """Receive goods for some or all lines of an order"""
    order = get_object_or_404(PurchaseOrder.objects.select_related('supplier'), pk=pk)
    serializer = ReceiveSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    order, received = receive_items(order, serializer.validated_data['items'], user=request.user)
    create_audit_log(
        request=request,
        action='order_receive',
        model_name='PurchaseOrder',
        object_id=order.id,
        object_name=order.supplier.name,
        object_reference=order.order_code,
        changes={
            'received': [{'part': part.part_code, 'quantity': qty} for part, qty in received],
            'status': order.status,
        }
    )
    invalidate_mrp_cache()
    return Response({
        'message': 'All items received' if order.status == 'received' else 'Receipt recorded',
        'order': PurchaseOrderSerializer(_order_queryset().get(pk=order.pk)).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('purchase_orders', action='create')])
def purchase_order_from_mrp(request):
    """Create purchase orders from selected MRP results, grouped by supplier and project"""
    serializer = FromMrpSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    results = list(
        MrpResult.objects.select_related('part', 'part__supplier', 'sales_order')
        .filter(id__in=data['result_ids'], status='pending')
    )
    if not results:
        return Response({'error': 'No pending MRP results selected'}, status=status.HTTP_400_BAD_REQUEST)

    orders, skipped = create_orders_from_mrp(
        results,
        skip_draft=data['skip_draft'],
        order_date=data.get('order_date'),
        expected_date=data.get('expected_date'),
        notes=data['notes'],
        user=request.user,
    )
    for order in orders:
        create_audit_log(
            request=request,
            action='create',
            model_name='PurchaseOrder',
            object_id=order.id,
            object_name=order.supplier.name,
            object_reference=order.order_code,
            changes={'source': 'mrp', 'total_amount': str(order.total_amount)}
        )
    invalidate_mrp_cache()
    invalidate_dashboard_cache()

    orders = _order_queryset().filter(id__in=[order.id for order in orders])
    return Response({
        'orders': PurchaseOrderSerializer(orders, many=True).data,
        'total_orders': len(orders),
        'skipped': skipped,
    }, status=status.HTTP_201_CREATED)
