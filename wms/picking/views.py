import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.shortcuts import get_object_or_404

from wms.core.permissions import HasResourcePermission
from wms.core.utils import create_audit_log, paginate_queryset
from wms.inventory.serializers import TransactionSerializer
from wms.sales.models import SalesOrder
from .models import PickingTask, PickingItem
from .serializers import (
    PickingTaskSerializer, PickingTaskDetailSerializer, PickingItemSerializer, PickingTaskCreateSerializer,
    PickingTaskUpdateSerializer, PickingItemActionSerializer
)
from .services import (
    create_task, create_task_from_sales_order, apply_item_action, complete_task, revert_task, cancel_task,
    active_location_summary
)

logger = logging.getLogger('wms.picking')


def _task_detail(task_id):
    task = (
        PickingTask.objects.select_related('sales_order')
        .prefetch_related('items__part')
        .get(pk=task_id)
    )
    return PickingTaskDetailSerializer(task).data


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('picking')])
def picking_task_list_create(request):
    """List picking tasks or create one by hand"""
    if request.method == 'GET':
        queryset = PickingTask.objects.select_related('sales_order')

        status_filter = request.query_params.get('status')
        priority = request.query_params.get('priority')
        sales_order = request.query_params.get('sales_order')
        search = request.query_params.get('search')

        if status_filter:
            queryset = queryset.filter(status__in=status_filter.split(','))
        if priority:
            queryset = queryset.filter(priority=priority)
        if sales_order:
            queryset = queryset.filter(sales_order_id=sales_order)
        if search:
            queryset = queryset.filter(
                Q(task_code__icontains=search) |
                Q(sales_order__order_code__icontains=search) |
                Q(assigned_to__icontains=search)
            )
        return Response(paginate_queryset(request, queryset, PickingTaskSerializer))
    else:
        serializer = PickingTaskCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        sales_order = None
        if data.get('sales_order'):
            sales_order = get_object_or_404(SalesOrder, pk=data['sales_order'])

        task = create_task(
            data['items'],
            user=request.user,
            priority=data['priority'],
            assigned_to=data['assigned_to'],
            notes=data['notes'],
            sales_order=sales_order,
        )
        create_audit_log(
            request=request,
            action='create',
            model_name='PickingTask',
            object_id=task.id,
            object_reference=task.task_code,
            changes={'items': task.total_items, 'priority': task.priority}
        )
        return Response(_task_detail(task.id), status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('picking', action='create')])
def picking_task_from_sales_order(request, sales_order_id):
    """Generate the picking list for a sales order from its BOM"""
    sales_order = get_object_or_404(SalesOrder.objects.prefetch_related('items'), pk=sales_order_id)
    task = create_task_from_sales_order(
        sales_order, user=request.user, assigned_to=request.data.get('assigned_to', '')
    )
    create_audit_log(
        request=request,
        action='create',
        model_name='PickingTask',
        object_id=task.id,
        object_name=sales_order.project or sales_order.order_code,
        object_reference=task.task_code,
        changes={'sales_order': sales_order.order_code, 'items': task.total_items, 'priority': task.priority}
    )
    return Response(_task_detail(task.id), status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('picking')])
def picking_task_detail(request, pk):
    task = get_object_or_404(PickingTask, pk=pk)

    if request.method == 'GET':
        return Response(_task_detail(task.id))
    elif request.method == 'PATCH':
        serializer = PickingTaskUpdateSerializer(task, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(_task_detail(task.id))
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if task.picked_items and task.items.filter(picked_qty__gt=0).exists():
            return Response(
                {'error': 'Task has picked items; revert or cancel it instead'},
                status=status.HTTP_400_BAD_REQUEST
            )
        code = task.task_code
        task.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='PickingTask',
            object_id=pk,
            object_reference=code,
            changes={}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('picking', action='edit')])
def picking_item_action(request, pk):
    """scan / pick / skip / flag / revert_skip / revert_pick on one item"""
    item = get_object_or_404(PickingItem.objects.select_related('task', 'part'), pk=pk)
    serializer = PickingItemActionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    item, tx = apply_item_action(
        item,
        data['action'],
        quantity=data.get('quantity'),
        notes=data.get('notes'),
        flag_type=data.get('flag_type'),
        user=request.user,
    )
    if data['action'] in ('pick', 'revert_pick'):
        create_audit_log(
            request=request,
            action='picking_pick' if data['action'] == 'pick' else 'picking_revert',
            model_name='PickingItem',
            object_id=item.id,
            object_name=item.part.part_name,
            object_reference=item.task.task_code,
            changes={'quantity': tx.quantity if tx else 0, 'picked_qty': item.picked_qty, 'status': item.status}
        )
    return Response({
        'item': PickingItemSerializer(item).data,
        'task': PickingTaskSerializer(item.task).data,
        'transaction': TransactionSerializer(tx).data if tx else None,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('picking', action='edit')])
def picking_task_complete(request, pk):
    task = get_object_or_404(PickingTask, pk=pk)
    task = complete_task(task, user=request.user)
    create_audit_log(
        request=request,
        action='status_change',
        model_name='PickingTask',
        object_id=task.id,
        object_reference=task.task_code,
        changes={'status': 'completed', 'picked_items': task.picked_items}
    )
    return Response(_task_detail(task.id))


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('picking', action='edit')])
def picking_task_revert(request, pk):
    """Undo every pick of a task, returning stock to the shelves"""
    task = get_object_or_404(PickingTask, pk=pk)
    task, restored = revert_task(task, user=request.user)
    create_audit_log(
        request=request,
        action='picking_revert',
        model_name='PickingTask',
        object_id=task.id,
        object_reference=task.task_code,
        changes={'restored': [{'part': tx.part.part_code, 'quantity': tx.quantity} for tx in restored]}
    )
    data = _task_detail(task.id)
    data['restored_transactions'] = TransactionSerializer(restored, many=True).data
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('picking', action='edit')])
def picking_task_cancel(request, pk):
    task = get_object_or_404(PickingTask, pk=pk)
    task, restored = cancel_task(task, user=request.user)
    create_audit_log(
        request=request,
        action='status_change',
        model_name='PickingTask',
        object_id=task.id,
        object_reference=task.task_code,
        changes={'status': 'cancelled', 'restored_picks': len(restored)}
    )
    return Response(_task_detail(task.id))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('picking')])
def picking_task_active(request):
    """Pending and in-progress tasks with outstanding work per shelf"""
    tasks = list(
        PickingTask.objects.filter(status__in=PickingTask.ACTIVE_STATUSES)
        .select_related('sales_order')
        .prefetch_related('items__part')
    )
    # In-progress first, then by priority and age
    tasks.sort(key=lambda t: (t.status != 'in_progress', PickingTask.PRIORITY_RANK[t.priority], t.created_at))
    return Response({
        'tasks': PickingTaskSerializer(tasks, many=True).data,
        'locations': active_location_summary(tasks),
    })
