import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import F, Q
from django.shortcuts import get_object_or_404

from wms.catalog.models import Part
from wms.core.exceptions import BusinessRuleError
from wms.core.permissions import HasResourcePermission
from wms.core.utils import create_audit_log, paginate_queryset, parse_bool, parse_date, parse_id_list
from .audits import create_stock_audit, record_count, complete_stock_audit, approve_stock_audit
from .models import Inventory, Transaction, StockAudit, StockAuditItem
from .serializers import (
    InventorySerializer, TransactionSerializer, TransactionCreateSerializer, TransactionUpdateSerializer,
    StockAuditSerializer, StockAuditDetailSerializer, StockAuditItemSerializer
)
from .services import (
    process_transaction, adjust_inventory, reserve_inventory, release_reservation,
    update_transaction, delete_transaction, get_low_stock_alerts
)

logger = logging.getLogger('wms.inventory')

AUDIT_ACTIONS = {
    'inbound': 'stock_inbound',
    'outbound': 'stock_outbound',
    'adjustment': 'stock_adjust',
    'transfer': 'update',
}


def _positive_int(value):
    try:
        value = int(value)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


# Inventory views
@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('inventory')])
def inventory_list(request):
    """Stock position per part with low-stock and search filters"""
    queryset = Inventory.objects.select_related('part', 'part__category', 'part__supplier').filter(part__is_active=True)

    search = request.query_params.get('search')
    if search:
        queryset = queryset.filter(Q(part__part_code__icontains=search) | Q(part__part_name__icontains=search))
    category = request.query_params.get('category')
    if category:
        queryset = queryset.filter(part__category_id=category)
    if parse_bool(request.query_params.get('low_stock')):
        queryset = queryset.filter(current_qty__lte=F('part__safety_stock'))

    queryset = queryset.order_by('part__part_code')
    return Response(paginate_queryset(request, queryset, InventorySerializer, default_limit=50))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('inventory')])
def inventory_detail(request, part_id):
    inventory = get_object_or_404(Inventory.objects.select_related('part'), part_id=part_id)
    return Response(InventorySerializer(inventory).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('inventory', action='edit')])
def inventory_adjust(request):
    """Set a part's stock to an absolute quantity"""
    part = get_object_or_404(Part, pk=request.data.get('part'))
    try:
        new_quantity = int(request.data.get('quantity'))
    except (TypeError, ValueError):
        return Response({'error': 'quantity must be an integer'}, status=status.HTTP_400_BAD_REQUEST)
    reason = request.data.get('reason') or ''
    if not reason:
        return Response({'error': 'reason is required'}, status=status.HTTP_400_BAD_REQUEST)

    tx, inventory = adjust_inventory(part, new_quantity, reason, user=request.user, notes=request.data.get('notes', ''))
    create_audit_log(
        request=request,
        action='stock_adjust',
        model_name='Inventory',
        object_id=part.id,
        object_name=part.part_name,
        object_reference=tx.transaction_code,
        changes={'before': tx.before_qty, 'after': tx.after_qty, 'reason': reason}
    )
    return Response({
        'transaction': TransactionSerializer(tx).data,
        'inventory': InventorySerializer(inventory).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('inventory', action='edit')])
def inventory_reserve(request):
    part = get_object_or_404(Part, pk=request.data.get('part'))
    quantity = _positive_int(request.data.get('quantity'))
    if quantity is None:
        return Response({'error': 'quantity must be a positive integer'}, status=status.HTTP_400_BAD_REQUEST)
    inventory = reserve_inventory(part, quantity)
    return Response(InventorySerializer(inventory).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('inventory', action='edit')])
def inventory_release(request):
    part = get_object_or_404(Part, pk=request.data.get('part'))
    quantity = _positive_int(request.data.get('quantity'))
    if quantity is None:
        return Response({'error': 'quantity must be a positive integer'}, status=status.HTTP_400_BAD_REQUEST)
    inventory = release_reservation(part, quantity)
    return Response(InventorySerializer(inventory).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('inventory')])
def low_stock_alerts(request):
    alerts = get_low_stock_alerts()
    return Response({'count': len(alerts), 'results': alerts})


# Transaction views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('transactions')])
def transaction_list_create(request):
    """List stock movements (filtered, paginated) or record a new one"""
    if request.method == 'GET':
        queryset = Transaction.objects.select_related('part', 'created_by')

        part_id = request.query_params.get('part')
        tx_type = request.query_params.get('type')
        reference_type = request.query_params.get('reference_type')
        reference_id = request.query_params.get('reference_id')
        search = request.query_params.get('search')
        date_from = parse_date(request.query_params.get('date_from'))
        date_to = parse_date(request.query_params.get('date_to'))

        if part_id:
            queryset = queryset.filter(part_id=part_id)
        if tx_type:
            queryset = queryset.filter(transaction_type=tx_type)
        if reference_type:
            queryset = queryset.filter(reference_type=reference_type)
        if reference_id:
            queryset = queryset.filter(reference_id=reference_id)
        if search:
            queryset = queryset.filter(
                Q(transaction_code__icontains=search) |
                Q(part__part_code__icontains=search) |
                Q(part__part_name__icontains=search)
            )
        if date_from:
            queryset = queryset.filter(transaction_date__date__gte=date_from)
        if date_to:
            queryset = queryset.filter(transaction_date__date__lte=date_to)

        queryset = queryset.order_by('-transaction_date', '-id')
        return Response(paginate_queryset(request, queryset, TransactionSerializer, default_limit=50))
    else:
        serializer = TransactionCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        data = serializer.validated_data
        part = get_object_or_404(Part, pk=data['part'])

        tx, inventory = process_transaction(
            part,
            data['transaction_type'],
            data['quantity'],
            user=request.user,
            reason=data.get('reason', ''),
            notes=data.get('notes', ''),
            reference_type=data.get('reference_type', 'MANUAL'),
            reference_id=data.get('reference_id') or None,
            performed_by=data.get('performed_by'),
            unit_price=data.get('unit_price'),
            transaction_date=data.get('transaction_date'),
        )
        create_audit_log(
            request=request,
            action=AUDIT_ACTIONS[tx.transaction_type],
            model_name='Transaction',
            object_id=tx.id,
            object_name=part.part_name,
            object_reference=tx.transaction_code,
            changes={'quantity': tx.quantity, 'before': tx.before_qty, 'after': tx.after_qty}
        )
        return Response({
            **TransactionSerializer(tx).data,
            'inventory': InventorySerializer(inventory).data,
        }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('transactions')])
def transaction_detail(request, pk):
    """Retrieve, re-book or delete a stock movement"""
    tx = get_object_or_404(Transaction.objects.select_related('part', 'created_by'), pk=pk)

    if request.method == 'GET':
        return Response(TransactionSerializer(tx).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = TransactionUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        tx, inventory, old = update_transaction(tx, **serializer.validated_data)
        create_audit_log(
            request=request,
            action='update',
            model_name='Transaction',
            object_id=tx.id,
            object_name=tx.part.part_name,
            object_reference=tx.transaction_code,
            changes={'old': old, 'new': {'type': tx.transaction_type, 'quantity': tx.quantity, 'after_qty': tx.after_qty}}
        )
        return Response(TransactionSerializer(tx).data)
    else:  # DELETE
        tx_id, code, part_name = tx.id, tx.transaction_code, tx.part.part_name
        inventory = delete_transaction(tx)
        create_audit_log(
            request=request,
            action='delete',
            model_name='Transaction',
            object_id=tx_id,
            object_name=part_name,
            object_reference=code,
            changes={'restored_qty': inventory.current_qty}
        )
        return Response({'success': True, 'current_qty': inventory.current_qty})


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('transactions', action='create')])
def transaction_bulk(request):
    """
    Record many movements at once. Rows reference parts by part_code
    (or part_name); failures are reported per row and do not stop the batch.
    """
    rows = request.data.get('rows') or request.data.get('data')
    if not isinstance(rows, list) or not rows:
        return Response({'error': 'No rows to process'}, status=status.HTTP_400_BAD_REQUEST)

    parts_by_code = {p.part_code.lower(): p for p in Part.objects.all()}
    parts_by_name = {p.part_name.lower(): p for p in parts_by_code.values()}

    results = {'success': 0, 'failed': 0, 'errors': []}
    for index, row in enumerate(rows, start=1):
        code = str(row.get('part_code') or '').lower()
        name = str(row.get('part_name') or '').lower()
        part = parts_by_code.get(code) or parts_by_name.get(name)
        if not part:
            results['failed'] += 1
            results['errors'].append(f"Row {index}: part not found ({row.get('part_code') or row.get('part_name')})")
            continue

        serializer = TransactionCreateSerializer(data={**row, 'part': part.id})
        if not serializer.is_valid():
            results['failed'] += 1
            results['errors'].append(f"Row {index}: {serializer.errors}")
            continue

        data = serializer.validated_data
        try:
            process_transaction(
                part,
                data['transaction_type'],
                data['quantity'],
                user=request.user,
                reason=data.get('reason', ''),
                notes=data.get('notes', ''),
                reference_type=data.get('reference_type', 'MANUAL'),
                reference_id=data.get('reference_id') or None,
                performed_by=data.get('performed_by'),
            )
        except BusinessRuleError as e:
            results['failed'] += 1
            results['errors'].append(f"Row {index}: {e.detail}")
            continue
        results['success'] += 1

    logger.info(f"Bulk transactions: {results['success']} ok, {results['failed']} failed")
    return Response(results)


# Stock audit views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('audits')])
def stock_audit_list_create(request):
    """List stock audits or open a new one"""
    if request.method == 'GET':
        queryset = StockAudit.objects.select_related('created_by', 'approved_by')
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        serializer = StockAuditSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = StockAuditSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        audit = create_stock_audit(
            user=request.user,
            audit_type=serializer.validated_data.get('audit_type', 'spot'),
            audit_date=serializer.validated_data.get('audit_date'),
            part_ids=parse_id_list(request.data.get('part_ids')),
            notes=serializer.validated_data.get('notes', ''),
        )
        create_audit_log(
            request=request,
            action='create',
            model_name='StockAudit',
            object_id=audit.id,
            object_reference=audit.audit_code,
            changes={'total_items': audit.total_items}
        )
        return Response(StockAuditDetailSerializer(audit).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('audits')])
def stock_audit_detail(request, pk):
    audit = get_object_or_404(StockAudit.objects.prefetch_related('items', 'items__part'), pk=pk)

    if request.method == 'GET':
        return Response(StockAuditDetailSerializer(audit).data)
    elif request.method == 'PATCH':
        serializer = StockAuditSerializer(audit, data=request.data, partial=True)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if audit.status != 'in_progress':
            return Response({'error': 'Only audits in progress can be deleted'}, status=status.HTTP_400_BAD_REQUEST)
        audit.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated, HasResourcePermission('audits')])
def stock_audit_item_detail(request, pk):
    """Read an audit line or record its physical count"""
    item = get_object_or_404(StockAuditItem.objects.select_related('audit', 'part'), pk=pk)

    if request.method == 'GET':
        return Response(StockAuditItemSerializer(item).data)

    try:
        counted_qty = int(request.data.get('counted_qty'))
    except (TypeError, ValueError):
        return Response({'error': 'Invalid counted quantity'}, status=status.HTTP_400_BAD_REQUEST)
    item = record_count(item, counted_qty, notes=request.data.get('notes'))
    return Response(StockAuditItemSerializer(item).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('audits', action='edit')])
def stock_audit_complete(request, pk):
    audit = get_object_or_404(StockAudit, pk=pk)
    audit, adjustments = complete_stock_audit(audit, user=request.user)
    create_audit_log(
        request=request,
        action='audit_complete',
        model_name='StockAudit',
        object_id=audit.id,
        object_reference=audit.audit_code,
        changes={
            'discrepancy_count': audit.discrepancy_count,
            'adjustments': [tx.transaction_code for tx in adjustments],
        }
    )
    data = StockAuditDetailSerializer(audit).data
    data['adjustments'] = TransactionSerializer(adjustments, many=True).data
    return Response(data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('audits', action='edit')])
def stock_audit_approve(request, pk):
    if request.user.effective_role not in ('admin', 'manager'):
        return Response({'error': 'Only managers can approve stock audits'}, status=status.HTTP_403_FORBIDDEN)
    audit = get_object_or_404(StockAudit, pk=pk)
    audit = approve_stock_audit(audit, user=request.user)
    create_audit_log(
        request=request,
        action='status_change',
        model_name='StockAudit',
        object_id=audit.id,
        object_reference=audit.audit_code,
        changes={'status': {'old': 'completed', 'new': 'approved'}}
    )
    return Response(StockAuditSerializer(audit).data)
