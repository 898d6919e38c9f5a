"""
Inventory business logic

Every stock change goes through process_transaction so that the inventory
row and the transaction ledger stay in step. Callers may already be inside
transaction.atomic(); the row lock is taken here.
"""
import logging

from django.db import transaction as db_transaction
from django.db.models import F
from django.utils import timezone

from wms.core.exceptions import BusinessRuleError, InsufficientStockError
from wms.core.notifications import notify_low_stock
from wms.core.utils import generate_sequential_code
from .models import Inventory, Transaction

logger = logging.getLogger('wms.inventory')

CODE_PREFIXES = {
    'inbound': 'IN',
    'outbound': 'OUT',
    'adjustment': 'ADJ',
    'transfer': 'TR',
}


def generate_transaction_code(transaction_type, when=None):
    when = when or timezone.localdate()
    prefix = f"{CODE_PREFIXES[transaction_type]}{when.strftime('%y%m%d')}"
    return generate_sequential_code(Transaction, 'transaction_code', prefix)


def lock_inventory(part):
    """Fetch (or create) the inventory row of a part under a row lock"""
    Inventory.objects.get_or_create(part=part)
    return Inventory.objects.select_for_update().select_related('part').get(part=part)


def calculate_after_qty(transaction_type, before_qty, quantity):
    """
    Stock level after applying a movement.

    inbound/outbound take a positive quantity, adjustment takes the absolute
    target level, transfer leaves the level unchanged.
    """
    if transaction_type == 'inbound':
        return before_qty + quantity
    if transaction_type == 'outbound':
        return before_qty - quantity
    if transaction_type == 'adjustment':
        return quantity
    if transaction_type == 'transfer':
        return before_qty
    raise BusinessRuleError(f'Unknown transaction type: {transaction_type}', code='invalid_type')


def _check_quantity(transaction_type, quantity):
    if transaction_type == 'adjustment':
        if quantity < 0:
            raise BusinessRuleError('Adjusted quantity cannot be negative', code='invalid_quantity')
    elif quantity <= 0:
        raise BusinessRuleError('Quantity must be greater than zero', code='invalid_quantity')


def process_transaction(part, transaction_type, quantity, user=None, reason='', notes='',
                        reference_type='MANUAL', reference_id=None, performed_by=None,
                        unit_price=None, transaction_date=None):
    """
    Apply a stock movement and record it in the ledger.

    Raises InsufficientStockError when an outbound would take stock below
    zero. Returns (transaction, inventory).
    """
    _check_quantity(transaction_type, quantity)

    with db_transaction.atomic():
        inventory = lock_inventory(part)
        before_qty = inventory.current_qty
        after_qty = calculate_after_qty(transaction_type, before_qty, quantity)

        if after_qty < 0:
            raise InsufficientStockError(
                f'Insufficient stock for {part.part_code} (current: {before_qty}, requested: {quantity})',
                details={'part_id': part.id, 'current_qty': before_qty, 'requested_qty': quantity}
            )

        # Adjustments are stored as the signed delta so they can be reversed
        stored_qty = after_qty - before_qty if transaction_type == 'adjustment' else quantity
        if unit_price is None:
            unit_price = part.unit_price
        total_amount = unit_price * abs(stored_qty) if unit_price is not None else None

        now = timezone.now()
        tx = Transaction.objects.create(
            transaction_code=generate_transaction_code(transaction_type),
            part=part,
            transaction_type=transaction_type,
            quantity=stored_qty,
            before_qty=before_qty,
            after_qty=after_qty,
            reference_type=reference_type or 'MANUAL',
            reference_id=str(reference_id) if reference_id is not None else None,
            unit_price=unit_price,
            total_amount=total_amount,
            reason=reason or '',
            notes=notes or '',
            performed_by=performed_by or (user.username if user and user.is_authenticated else ''),
            transaction_date=transaction_date or now,
            created_by=user if user and user.is_authenticated else None,
        )

        inventory.current_qty = after_qty
        update_fields = ['current_qty', 'updated_at']
        if transaction_type == 'inbound':
            inventory.last_inbound_date = now
            update_fields.append('last_inbound_date')
        elif transaction_type == 'outbound':
            inventory.last_outbound_date = now
            update_fields.append('last_outbound_date')
        inventory.save(update_fields=update_fields)

    logger.info(f"{tx.transaction_code}: {part.part_code} {transaction_type} {stored_qty} ({before_qty} -> {after_qty})")

    if transaction_type == 'outbound' and after_qty <= part.safety_stock:
        notify_low_stock(part, after_qty)

    return tx, inventory


def adjust_inventory(part, new_quantity, reason, user=None, notes='', reference_type='MANUAL', reference_id=None):
    """Set the stock of a part to an absolute quantity"""
    return process_transaction(
        part, 'adjustment', new_quantity, user=user, reason=reason, notes=notes,
        reference_type=reference_type, reference_id=reference_id,
    )


def reserve_inventory(part, quantity):
    """Reserve stock; fails when the available quantity is too small"""
    if quantity <= 0:
        raise BusinessRuleError('Quantity must be greater than zero', code='invalid_quantity')
    with db_transaction.atomic():
        inventory = lock_inventory(part)
        if inventory.available_qty < quantity:
            raise InsufficientStockError(
                f'Insufficient available stock for {part.part_code} (available: {inventory.available_qty}, requested: {quantity})'
            )
        inventory.reserved_qty = F('reserved_qty') + quantity
        inventory.save(update_fields=['reserved_qty', 'updated_at'])
        inventory.refresh_from_db()
    return inventory


def release_reservation(part, quantity):
    """Release reserved stock, never below zero"""
    with db_transaction.atomic():
        inventory = lock_inventory(part)
        inventory.reserved_qty = max(0, inventory.reserved_qty - quantity)
        inventory.save(update_fields=['reserved_qty', 'updated_at'])
    return inventory


def _reversal_delta(tx):
    """Signed change in stock that undoing `tx` would cause"""
    return -(tx.after_qty - tx.before_qty)


def update_transaction(tx, transaction_type=None, quantity=None, reason=None, notes=None, performed_by=None):
    """
    Re-book a transaction: undo its original effect, then apply the new
    type/quantity against the resulting level. Only the final level has to
    stay non-negative.
    """
    new_type = transaction_type or tx.transaction_type
    if quantity is None:
        quantity = tx.after_qty if new_type == 'adjustment' and tx.transaction_type == 'adjustment' else abs(tx.quantity)
    _check_quantity(new_type, quantity)

    with db_transaction.atomic():
        inventory = lock_inventory(tx.part)
        base_qty = inventory.current_qty + _reversal_delta(tx)
        after_qty = calculate_after_qty(new_type, base_qty, quantity)
        if after_qty < 0:
            raise InsufficientStockError(
                f'Re-booking {tx.transaction_code} would leave {tx.part.part_code} at {after_qty}'
            )

        old = {'type': tx.transaction_type, 'quantity': tx.quantity, 'after_qty': tx.after_qty}
        tx.transaction_type = new_type
        tx.quantity = after_qty - base_qty if new_type == 'adjustment' else quantity
        tx.before_qty = base_qty
        tx.after_qty = after_qty
        if tx.unit_price is not None:
            tx.total_amount = tx.unit_price * abs(tx.quantity)
        if reason is not None:
            tx.reason = reason
        if notes is not None:
            tx.notes = notes
        if performed_by is not None:
            tx.performed_by = performed_by
        tx.save()

        inventory.current_qty = after_qty
        update_fields = ['current_qty', 'updated_at']
        if new_type == 'inbound':
            inventory.last_inbound_date = timezone.now()
            update_fields.append('last_inbound_date')
        elif new_type == 'outbound':
            inventory.last_outbound_date = timezone.now()
            update_fields.append('last_outbound_date')
        inventory.save(update_fields=update_fields)

    logger.info(f"{tx.transaction_code} re-booked: {old} -> {new_type} {tx.quantity}")
    return tx, inventory, old


def delete_transaction(tx):
    """Remove a transaction and undo its effect on stock"""
    with db_transaction.atomic():
        inventory = lock_inventory(tx.part)
        restored_qty = inventory.current_qty + _reversal_delta(tx)
        if restored_qty < 0:
            raise InsufficientStockError('Deleting this transaction would make stock negative')
        inventory.current_qty = restored_qty
        inventory.save(update_fields=['current_qty', 'updated_at'])
        code = tx.transaction_code
        tx.delete()
    logger.info(f"{code} deleted, stock restored to {restored_qty}")
    return inventory


def get_low_stock_alerts():
    """Parts at or below safety stock, most short first"""
    inventories = (
        Inventory.objects.select_related('part', 'part__supplier')
        .filter(part__is_active=True, current_qty__lte=F('part__safety_stock'))
    )
    alerts = [
        {
            'part_id': inv.part_id,
            'part_code': inv.part.part_code,
            'part_name': inv.part.part_name,
            'current_qty': inv.current_qty,
            'available_qty': inv.available_qty,
            'safety_stock': inv.part.safety_stock,
            'shortage': inv.part.safety_stock - inv.current_qty,
            'supplier': inv.part.supplier.name if inv.part.supplier else None,
            'storage_location': inv.part.storage_location,
        }
        for inv in inventories
    ]
    alerts.sort(key=lambda alert: alert['shortage'], reverse=True)
    return alerts
