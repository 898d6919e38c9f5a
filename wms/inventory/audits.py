"""Stocktake workflow: snapshot, count, complete, approve"""
import logging

from django.db import transaction as db_transaction
from django.utils import timezone

from wms.catalog.models import Part
from wms.core.exceptions import BusinessRuleError, InvalidStatusTransition
from wms.core.utils import generate_sequential_code
from .models import Inventory, StockAudit, StockAuditItem
from .services import adjust_inventory

logger = logging.getLogger('wms.inventory')


def create_stock_audit(user=None, audit_type='spot', audit_date=None, part_ids=None, notes=''):
    """Open an audit with the current system quantity of each part"""
    audit_date = audit_date or timezone.localdate()
    parts = Part.objects.filter(is_active=True)
    if part_ids:
        parts = Part.objects.filter(id__in=part_ids)
    parts = list(parts.order_by('part_code'))
    if not parts:
        raise BusinessRuleError('No parts to audit', code='empty_audit')

    with db_transaction.atomic():
        audit = StockAudit.objects.create(
            audit_code=generate_sequential_code(StockAudit, 'audit_code', f"AUD{audit_date.strftime('%y%m%d')}", width=3),
            audit_date=audit_date,
            audit_type=audit_type,
            notes=notes or '',
            created_by=user if user and user.is_authenticated else None,
        )
        stock = dict(Inventory.objects.filter(part__in=parts).values_list('part_id', 'current_qty'))
        StockAuditItem.objects.bulk_create([
            StockAuditItem(audit=audit, part=part, system_qty=stock.get(part.id, 0))
            for part in parts
        ])
        audit.total_items = len(parts)
        audit.save(update_fields=['total_items', 'updated_at'])

    logger.info(f"Stock audit {audit.audit_code} opened with {audit.total_items} items")
    return audit


def refresh_audit_stats(audit):
    items = list(audit.items.all())
    counted = [item for item in items if item.counted_qty is not None]
    audit.total_items = len(items)
    audit.checked_items = len(counted)
    audit.discrepancy_count = len([item for item in counted if item.discrepancy])
    audit.save(update_fields=['total_items', 'checked_items', 'discrepancy_count', 'updated_at'])
    return audit


def record_count(item, counted_qty, notes=None):
    """Record the physical count of one audit item"""
    if counted_qty is None or counted_qty < 0:
        raise BusinessRuleError('Counted quantity must be zero or more', code='invalid_quantity')
    if item.audit.status != 'in_progress':
        raise BusinessRuleError('Audit is not in progress', code='audit_closed')

    with db_transaction.atomic():
        item.counted_qty = counted_qty
        item.discrepancy = counted_qty - item.system_qty
        item.counted_at = timezone.now()
        if notes is not None:
            item.notes = notes
        item.save(update_fields=['counted_qty', 'discrepancy', 'counted_at', 'notes'])
        refresh_audit_stats(item.audit)
    return item


def complete_stock_audit(audit, user=None):
    """
    Close an audit: every item must be counted. Discrepancies are booked
    as adjustments to the counted quantity.
    """
    if audit.status != 'in_progress':
        raise InvalidStatusTransition(f'Audit {audit.audit_code} is {audit.status}, not in progress')

    items = list(audit.items.select_related('part'))
    uncounted = [item.part.part_code for item in items if item.counted_qty is None]
    if uncounted:
        raise BusinessRuleError(
            f'{len(uncounted)} item(s) have not been counted',
            code='audit_incomplete',
            details={'uncounted': uncounted}
        )

    adjustments = []
    now = timezone.now()
    with db_transaction.atomic():
        for item in items:
            if item.discrepancy:
                tx, _ = adjust_inventory(
                    item.part,
                    item.counted_qty,
                    reason=f'Stock audit {audit.audit_code}',
                    user=user,
                    notes=item.notes,
                    reference_type='AUDIT',
                    reference_id=audit.audit_code,
                )
                adjustments.append(tx)
            Inventory.objects.filter(part=item.part).update(
                last_audit_date=now,
                last_audit_qty=item.counted_qty,
            )
        audit.status = 'completed'
        audit.completed_at = now
        audit.save(update_fields=['status', 'completed_at', 'updated_at'])
        refresh_audit_stats(audit)

    logger.info(f"Stock audit {audit.audit_code} completed, {len(adjustments)} adjustment(s) booked")
    return audit, adjustments


def approve_stock_audit(audit, user=None):
    if audit.status != 'completed':
        raise InvalidStatusTransition(f'Only completed audits can be approved (audit is {audit.status})')
    audit.status = 'approved'
    audit.approved_by = user if user and user.is_authenticated else None
    audit.approved_at = timezone.now()
    audit.save(update_fields=['status', 'approved_by', 'approved_at', 'updated_at'])
    return audit
