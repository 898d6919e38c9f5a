"""
Notification service

Helpers that raise in-app notifications for inventory and order events.
Notifications are global (user=None) unless a recipient is given.
"""
import logging

from django.conf import settings

from .models import Notification

logger = logging.getLogger('wms.core')


def create_notification(title, message, type='info', category='system', link=None, user=None):
    try:
        return Notification.objects.create(
            user=user,
            title=title,
            message=message,
            type=type,
            category=category,
            link=link,
        )
    except Exception as e:
        # Notifications never block the operation that raised them
        logger.error(f"Failed to create notification '{title}': {str(e)}")
        return None


def notify_low_stock(part, current_qty):
    if not settings.WMS.get('LOW_STOCK_NOTIFICATIONS', True):
        return None
    level = 'error' if current_qty <= 0 else 'warning'
    return create_notification(
        title='Low stock alert',
        message=f"{part.part_name} ({part.part_code}) is at {current_qty} {part.unit}, safety stock is {part.safety_stock}.",
        type=level,
        category='inventory',
        link=f'/inventory?part={part.id}',
    )


def notify_order_created(order):
    supplier_name = order.supplier.name if order.supplier_id else 'no supplier'
    return create_notification(
        title='Purchase order created',
        message=f"Purchase order {order.order_code} was created for {supplier_name}.",
        type='info',
        category='order',
        link=f'/orders/{order.id}',
    )


def notify_order_status_changed(order, old_status, new_status):
    level = 'success' if new_status == 'received' else 'warning' if new_status == 'cancelled' else 'info'
    return create_notification(
        title='Purchase order status changed',
        message=f"Purchase order {order.order_code} moved from {old_status} to {new_status}.",
        type=level,
        category='order',
        link=f'/orders/{order.id}',
    )


def notify_inbound_completed(order, received_items):
    """received_items: list of (part, quantity) tuples"""
    lines = ', '.join(f"{part.part_code} x{qty}" for part, qty in received_items)
    return create_notification(
        title='Inbound completed',
        message=f"Received for {order.order_code}: {lines}",
        type='success',
        category='inventory',
        link=f'/orders/{order.id}',
    )
