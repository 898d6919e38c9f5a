"""
Picking workflow

Stock leaves the shelf when an item is picked: every pick posts an
outbound transaction straight away and every revert posts it back, so
completing a task only closes it.
"""
import logging
from collections import OrderedDict, defaultdict
from datetime import timedelta

from django.conf import settings
from django.db import transaction as db_transaction
from django.utils import timezone

from wms.catalog.models import BomItem
from wms.core.exceptions import BusinessRuleError, InvalidStatusTransition
from wms.core.utils import generate_sequential_code
from wms.inventory.services import process_transaction
from wms.locations.layout import location_sort_key
from wms.mrp.calculations import bom_requirement, ceil_qty
from .models import PickingItem, PickingTask

logger = logging.getLogger('wms.picking')

ITEM_ACTIONS = ('scan', 'pick', 'skip', 'flag', 'revert_skip', 'revert_pick')


def generate_task_code(when=None):
    when = when or timezone.localdate()
    return generate_sequential_code(PickingTask, 'task_code', f"PICK-{when.strftime('%Y%m%d')}", width=3)


def _user_name(user):
    return user.username if user and user.is_authenticated else ''


def refresh_task_progress(task):
    task.total_items = task.items.count()
    task.picked_items = task.items.filter(status__in=PickingItem.DONE_STATUSES).count()
    task.save(update_fields=['total_items', 'picked_items', 'updated_at'])
    return task


def _start_task(task):
    if task.status == 'pending':
        task.status = 'in_progress'
        task.started_at = task.started_at or timezone.now()
        task.save(update_fields=['status', 'started_at', 'updated_at'])


def _ensure_open(task):
    if task.status not in PickingTask.ACTIVE_STATUSES:
        raise BusinessRuleError(f'Picking task {task.task_code} is {task.status}', code='task_closed')


def priority_for_due_date(due_date, today=None):
    if due_date is None:
        return 'normal'
    today = today or timezone.localdate()
    due_soon = settings.WMS.get('PICKING_DUE_SOON_DAYS', 3)
    return 'high' if due_date <= today + timedelta(days=due_soon) else 'normal'


def create_task_from_sales_order(sales_order, user=None, assigned_to='', today=None):
    """
    Build a picking task from a sales order's BOM requirements.

    One item per part, required = ceil(sum(qty * qpu * (1 + loss))),
    sequenced in walking order zone -> row -> shelf.
    """
    existing = sales_order.picking_tasks.filter(status__in=PickingTask.ACTIVE_STATUSES).first()
    if existing:
        raise BusinessRuleError(
            f'Sales order {sales_order.order_code} already has an active picking task ({existing.task_code})',
            code='duplicate_task',
            details={'task_id': existing.id}
        )

    totals = OrderedDict()
    items = list(sales_order.items.all())
    lines = defaultdict(list)
    for line in BomItem.objects.filter(is_active=True, product_id__in={i.product_id for i in items}).select_related('part'):
        lines[line.product_id].append(line)
    for item in items:
        for line in lines.get(item.product_id, []):
            entry = totals.setdefault(line.part_id, {'part': line.part, 'quantity': 0})
            entry['quantity'] += bom_requirement(item.order_qty, line.quantity_per_unit, line.loss_rate)

    if not totals:
        raise BusinessRuleError(f'No BOM parts found for sales order {sales_order.order_code}', code='empty_bom')

    entries = sorted(totals.values(), key=lambda e: (location_sort_key(e['part'].storage_location), e['part'].part_code))
    with db_transaction.atomic():
        task = PickingTask.objects.create(
            task_code=generate_task_code(today),
            sales_order=sales_order,
            priority=priority_for_due_date(sales_order.due_date, today),
            assigned_to=assigned_to or '',
            notes=f"Sales order {sales_order.order_code}" + (f" - {sales_order.project}" if sales_order.project else ''),
            created_by=user if user and user.is_authenticated else None,
        )
        PickingItem.objects.bulk_create([
            PickingItem(
                task=task,
                part=entry['part'],
                storage_location=entry['part'].storage_location or '',
                required_qty=ceil_qty(entry['quantity']),
                sequence=index,
            )
            for index, entry in enumerate(entries, start=1)
        ])
        refresh_task_progress(task)

    logger.info(f"Picking task {task.task_code} created for {sales_order.order_code} with {task.total_items} item(s)")
    return task


def create_task(items, user=None, priority='normal', assigned_to='', notes='', sales_order=None):
    """Manual task: items are dicts with part and required_qty"""
    if not items:
        raise BusinessRuleError('A picking task needs at least one item', code='empty_task')
    items = sorted(items, key=lambda i: (location_sort_key(i['part'].storage_location), i['part'].part_code))
    with db_transaction.atomic():
        task = PickingTask.objects.create(
            task_code=generate_task_code(),
            sales_order=sales_order,
            priority=priority,
            assigned_to=assigned_to or '',
            notes=notes or '',
            created_by=user if user and user.is_authenticated else None,
        )
        PickingItem.objects.bulk_create([
            PickingItem(
                task=task,
                part=item['part'],
                storage_location=item.get('storage_location') or item['part'].storage_location or '',
                required_qty=item['required_qty'],
                sequence=index,
            )
            for index, item in enumerate(items, start=1)
        ])
        refresh_task_progress(task)
    return task


def _post_pick(item, quantity, user=None):
    tx, _ = process_transaction(
        item.part,
        'outbound',
        quantity,
        user=user,
        reason='Picking',
        notes=f'Picked for {item.task.task_code}',
        reference_type='PICK',
        reference_id=item.task.task_code,
        performed_by=item.task.assigned_to or None,
    )
    return tx


def _post_revert(item, quantity, user=None):
    tx, _ = process_transaction(
        item.part,
        'inbound',
        quantity,
        user=user,
        reason='Picking reverted',
        notes=f'Pick reverted for {item.task.task_code}',
        reference_type='PICK_REVERT',
        reference_id=item.task.task_code,
        performed_by=item.task.assigned_to or None,
    )
    return tx


def _lock_task(task_id):
    return PickingTask.objects.select_for_update().get(pk=task_id)


def apply_item_action(item, action, quantity=None, notes=None, flag_type=None, user=None):
    """
    Run one operator action on a picking item.

    The task and item rows are re-read under a lock, so the checks below
    never run against a stale copy of the item. Returns (item, transaction)
    where transaction is the stock movement the action posted, if any.
    """
    if action not in ITEM_ACTIONS:
        raise BusinessRuleError(f'Unknown picking action: {action}', code='invalid_action')

    tx = None
    now = timezone.now()
    with db_transaction.atomic():
        task = _lock_task(item.task_id)
        item = PickingItem.objects.select_for_update().select_related('part').get(pk=item.pk)
        item.task = task
        _ensure_open(task)

        if action == 'scan':
            item.scanned_at = now
            if item.status == 'pending':
                item.status = 'in_progress'
        elif action == 'pick':
            if item.status in PickingItem.DONE_STATUSES:
                raise BusinessRuleError(f'Item is already {item.status}', code='item_closed')
            quantity = item.remaining_qty if quantity is None else quantity
            if quantity <= 0 or quantity > item.remaining_qty:
                raise BusinessRuleError(
                    f'Pick quantity must be between 1 and {item.remaining_qty}',
                    code='invalid_quantity'
                )
            tx = _post_pick(item, quantity, user=user)
            item.picked_qty += quantity
            item.picked_at = now
            item.verified_at = now
            item.status = 'picked' if item.picked_qty >= item.required_qty else 'in_progress'
        elif action in ('skip', 'flag'):
            if item.status == 'picked':
                raise BusinessRuleError('Item is already picked; revert the pick first', code='item_closed')
            item.status = 'skipped'
            if action == 'skip':
                item.notes = notes or 'Skipped'
            else:
                item.notes = f"[FLAGGED: {flag_type or 'other'}] {notes or ''}".strip()
        elif action == 'revert_skip':
            if item.status != 'skipped':
                raise BusinessRuleError('Only skipped items can be reverted to pending', code='invalid_action')
            item.status = 'in_progress' if item.picked_qty > 0 else 'pending'
            item.notes = notes or ''
        elif action == 'revert_pick':
            if item.picked_qty <= 0:
                raise BusinessRuleError('Nothing has been picked for this item', code='invalid_action')
            tx = _post_revert(item, item.picked_qty, user=user)
            item.picked_qty = 0
            item.status = 'pending'
            item.scanned_at = None
            item.verified_at = None
            item.picked_at = None

        item.save()
        _start_task(task)
        refresh_task_progress(task)

    logger.info(f"{task.task_code} item {item.part.part_code}: {action} by {_user_name(user) or 'system'}")
    return item, tx


def complete_task(task, user=None):
    """Close a task; picks were already posted so no stock moves here"""
    with db_transaction.atomic():
        task = _lock_task(task.pk)
        if task.status == 'completed':
            raise InvalidStatusTransition(f'Picking task {task.task_code} is already completed')
        if task.status == 'cancelled':
            raise InvalidStatusTransition(f'Picking task {task.task_code} is cancelled')

        open_items = task.items.exclude(status__in=PickingItem.DONE_STATUSES).count()
        if open_items:
            raise BusinessRuleError(
                f'{open_items} item(s) are still open; pick or skip them first',
                code='task_incomplete',
                details={'open_items': open_items}
            )

        task.status = 'completed'
        task.completed_at = timezone.now()
        task.started_at = task.started_at or task.completed_at
        task.save(update_fields=['status', 'completed_at', 'started_at', 'updated_at'])
        refresh_task_progress(task)
    logger.info(f"Picking task {task.task_code} completed")
    return task


def revert_task(task, user=None):
    """Put every picked quantity back on the shelf and reopen the task"""
    restored = []
    with db_transaction.atomic():
        task = _lock_task(task.pk)
        if task.status == 'cancelled':
            raise InvalidStatusTransition(f'Picking task {task.task_code} is cancelled')

        for item in task.items.select_for_update().select_related('part'):
            item.task = task
            if item.picked_qty > 0:
                restored.append(_post_revert(item, item.picked_qty, user=user))
            item.picked_qty = 0
            item.status = 'pending'
            item.scanned_at = None
            item.verified_at = None
            item.picked_at = None
            item.save()
        task.status = 'pending'
        task.started_at = None
        task.completed_at = None
        task.save(update_fields=['status', 'started_at', 'completed_at', 'updated_at'])
        refresh_task_progress(task)

    logger.info(f"Picking task {task.task_code} reverted, {len(restored)} pick(s) restored")
    return task, restored


def cancel_task(task, user=None):
    """Cancel an open task; picked stock is restored first"""
    with db_transaction.atomic():
        _ensure_open(_lock_task(task.pk))
        task, restored = revert_task(task, user=user)
        task.status = 'cancelled'
        task.save(update_fields=['status', 'updated_at'])
    return task, restored


def active_location_summary(tasks):
    """
    Outstanding work per storage location across active tasks.

    A location is completed once all its items are picked or skipped,
    in_progress when any item is, otherwise pending.
    """
    summary = OrderedDict()
    for task in tasks:
        for item in task.items.all():
            code = item.storage_location or 'UNASSIGNED'
            entry = summary.setdefault(code, {
                'location_code': code,
                'task_ids': [],
                'items': [],
                'total_required': 0,
                'total_picked': 0,
            })
            if task.id not in entry['task_ids']:
                entry['task_ids'].append(task.id)
            entry['items'].append({
                'id': item.id,
                'task_code': task.task_code,
                'part_id': item.part_id,
                'part_code': item.part.part_code,
                'part_name': item.part.part_name,
                'unit': item.part.unit,
                'required_qty': item.required_qty,
                'picked_qty': item.picked_qty,
                'status': item.status,
                'notes': item.notes,
            })
            entry['total_required'] += item.required_qty
            entry['total_picked'] += item.picked_qty

    for entry in summary.values():
        statuses = {item['status'] for item in entry['items']}
        if statuses <= set(PickingItem.DONE_STATUSES):
            entry['status'] = 'completed'
        elif 'in_progress' in statuses:
            entry['status'] = 'in_progress'
        else:
            entry['status'] = 'pending'
    return sorted(summary.values(), key=lambda entry: location_sort_key(entry['location_code']))
