"""
Purchase order workflow: status changes, receipts and MRP conversion.
"""
import logging
from collections import OrderedDict
from datetime import timedelta

from django.conf import settings
from django.db import transaction as db_transaction
from django.db.models import F, Sum
from django.utils import timezone

from wms.core.exceptions import BusinessRuleError, InvalidStatusTransition
from wms.core.notifications import notify_inbound_completed, notify_order_created, notify_order_status_changed
from wms.core.utils import generate_sequential_code
from wms.inventory.models import Inventory
from wms.inventory.services import process_transaction
from .models import PurchaseOrder, PurchaseOrderItem

logger = logging.getLogger('wms.purchasing')


def generate_order_code(order_date=None):
    order_date = order_date or timezone.localdate()
    return generate_sequential_code(PurchaseOrder, 'order_code', f"PO{order_date.strftime('%y%m')}")


def refresh_incoming_qty(part_ids):
    """Recompute Inventory.incoming_qty from open purchase order lines"""
    part_ids = set(part_ids)
    if not part_ids:
        return
    open_qty = dict(
        PurchaseOrderItem.objects.filter(
            part_id__in=part_ids,
            order__status__in=PurchaseOrder.RECEIVABLE_STATUSES,
        ).exclude(status='cancelled')
        .values('part_id')
        .annotate(total=Sum(F('order_qty') - F('received_qty')))
        .values_list('part_id', 'total')
    )
    for part_id in part_ids:
        Inventory.objects.filter(part_id=part_id).update(incoming_qty=max(0, open_qty.get(part_id) or 0))


def change_status(order, new_status, user=None):
    """
    Move an order along its workflow.

    Raises InvalidStatusTransition for moves the workflow does not allow.
    Returns the old status.
    """
    old_status = order.status
    if new_status == old_status:
        return old_status
    if not order.can_transition_to(new_status):
        allowed = ', '.join(PurchaseOrder.TRANSITIONS.get(old_status, ())) or 'none'
        raise InvalidStatusTransition(
            f'Cannot change {order.order_code} from {old_status} to {new_status} (allowed: {allowed})',
            details={'from': old_status, 'to': new_status}
        )

    with db_transaction.atomic():
        order.status = new_status
        update_fields = ['status', 'updated_at']
        if new_status == 'approved':
            order.approved_by = user if user and user.is_authenticated else None
            order.approved_at = timezone.now()
            update_fields += ['approved_by', 'approved_at']
        elif new_status == 'received' and not order.actual_date:
            order.actual_date = timezone.localdate()
            update_fields.append('actual_date')
        order.save(update_fields=update_fields)

        items = order.items.all()
        if new_status == 'ordered':
            items.filter(status='pending').update(status='ordered')
        elif new_status == 'cancelled':
            items.exclude(status='received').update(status='cancelled')
        refresh_incoming_qty(order.items.values_list('part_id', flat=True))

    notify_order_status_changed(order, old_status, new_status)
    logger.info(f"Purchase order {order.order_code}: {old_status} -> {new_status}")
    return old_status


def receive_items(order, receipts, user=None):
    """
    Book goods received against an order.

    receipts: iterable of {'item': <item id>, 'quantity': <int>}. Every
    quantity must be positive and within the line's remaining quantity.
    Each receipt posts an inbound transaction referencing the order.
    """
    if order.status not in PurchaseOrder.RECEIVABLE_STATUSES:
        raise BusinessRuleError(
            f'Purchase order {order.order_code} is {order.status} and cannot be received',
            code='not_receivable'
        )
    receipts = list(receipts or [])
    if not receipts:
        raise BusinessRuleError('No items to receive', code='empty_receipt')

    received = []
    with db_transaction.atomic():
        items = {item.id: item for item in order.items.select_for_update().select_related('part')}
        for receipt in receipts:
            item = items.get(receipt.get('item'))
            if item is None:
                raise BusinessRuleError(f"Item {receipt.get('item')} does not belong to {order.order_code}", code='invalid_item')
            quantity = receipt.get('quantity')
            if quantity is None or quantity <= 0:
                raise BusinessRuleError('Received quantity must be greater than zero', code='invalid_quantity')
            if quantity > item.remaining_qty:
                raise BusinessRuleError(
                    f'Received quantity for {item.part.part_code} exceeds the remaining {item.remaining_qty}',
                    code='over_receipt',
                    details={'item': item.id, 'remaining_qty': item.remaining_qty, 'requested_qty': quantity}
                )

            process_transaction(
                item.part,
                'inbound',
                quantity,
                user=user,
                reason='Purchase order receipt',
                notes=f'Purchase order {order.order_code}',
                reference_type='ORDER',
                reference_id=order.order_code,
                unit_price=item.unit_price,
            )
            item.received_qty += quantity
            item.status = 'received' if item.received_qty >= item.order_qty else 'partial'
            item.save(update_fields=['received_qty', 'status', 'total_price'])
            received.append((item.part, quantity))

        live_items = [item for item in order.items.all() if item.status != 'cancelled']
        if live_items and all(item.received_qty >= item.order_qty for item in live_items):
            order.status = 'received'
            order.actual_date = timezone.localdate()
        else:
            order.status = 'partial'
        order.save(update_fields=['status', 'actual_date', 'updated_at'])
        refresh_incoming_qty(item.part_id for item in items.values())

    notify_inbound_completed(order, received)
    logger.info(f"Purchase order {order.order_code} received {len(received)} line(s), now {order.status}")
    return order, received


def _group_key(result):
    project = result.sales_order.project if result.sales_order_id and result.sales_order.project else ''
    return result.part.supplier_id, project


def create_orders_from_mrp(results, skip_draft=False, order_date=None, expected_date=None, notes='', user=None):
    """
    Turn MRP results into purchase orders, one per (supplier, project).

    Results whose part has no supplier, or that suggest nothing, are
    skipped. Lines are consolidated per part. Returns (orders, skipped).
    """
    order_date = order_date or timezone.localdate()
    default_lead_time = settings.WMS.get('DEFAULT_LEAD_TIME_DAYS', 7)

    groups = OrderedDict()
    skipped = []
    for result in results:
        if not result.part.supplier_id:
            skipped.append({'result': result.id, 'part_code': result.part.part_code, 'reason': 'no supplier'})
            continue
        if result.suggested_order_qty <= 0:
            skipped.append({'result': result.id, 'part_code': result.part.part_code, 'reason': 'nothing to order'})
            continue
        group = groups.setdefault(_group_key(result), {'lines': OrderedDict(), 'results': []})
        line = group['lines'].setdefault(result.part_id, {
            'part': result.part,
            'quantity': 0,
            'sales_order_id': result.sales_order_id,
        })
        line['quantity'] += result.suggested_order_qty
        group['results'].append(result)

    if not groups:
        raise BusinessRuleError('None of the selected MRP results can be ordered', code='nothing_to_order',
                                details={'skipped': skipped})

    orders = []
    status = 'ordered' if skip_draft else 'draft'
    with db_transaction.atomic():
        for (supplier_id, project), group in groups.items():
            supplier = next(iter(group['lines'].values()))['part'].supplier
            lead_time = supplier.lead_time_days or default_lead_time
            order = PurchaseOrder.objects.create(
                order_code=generate_order_code(order_date),
                supplier=supplier,
                project=project,
                order_date=order_date,
                expected_date=expected_date or order_date + timedelta(days=lead_time),
                status=status,
                notes=notes or f"Created from MRP ({len(group['lines'])} part(s))" + (f" [{project}]" if project else ''),
                created_by=user if user and user.is_authenticated else None,
            )
            for line in group['lines'].values():
                PurchaseOrderItem.objects.create(
                    order=order,
                    part=line['part'],
                    order_qty=line['quantity'],
                    unit_price=line['part'].unit_price,
                    sales_order_id=line['sales_order_id'],
                    status='ordered' if skip_draft else 'pending',
                )
            order.recalculate_total()

            from wms.mrp.models import MrpResult
            MrpResult.objects.filter(id__in=[r.id for r in group['results']]).update(status='ordered')
            orders.append(order)

        refresh_incoming_qty({part_id for group in groups.values() for part_id in group['lines']})

    for order in orders:
        notify_order_created(order)
    logger.info(f"Created {len(orders)} purchase order(s) from MRP, skipped {len(skipped)} result(s)")
    return orders, skipped
