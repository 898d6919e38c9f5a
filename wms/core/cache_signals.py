"""
Cache invalidation signals
Automatically invalidate dashboard and MRP caches when data changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_dashboard_cache, invalidate_mrp_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

DASHBOARD_MODELS = {'Inventory', 'Transaction', 'StockAudit', 'PickingTask'}
ORDER_MODELS = {'PurchaseOrder', 'PurchaseOrderItem', 'SalesOrder', 'SalesOrderItem', 'BomItem'}
MRP_MODELS = {'MrpResult'}


@contextmanager
def suspend_cache_signals():
    """
    Temporarily suspend cache invalidation signals.
    Used by bulk operations, which invalidate once at the end.
    """
    previous = is_suspended()
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = previous


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_on_change(sender, instance, **kwargs):
    """Invalidate cached aggregates after the write commits"""
    if is_suspended():
        return

    model_name = sender.__name__
    if model_name not in DASHBOARD_MODELS | ORDER_MODELS | MRP_MODELS:
        return

    def invalidate_after_commit():
        try:
            if model_name in DASHBOARD_MODELS | ORDER_MODELS:
                invalidate_dashboard_cache()
            if model_name in ORDER_MODELS | MRP_MODELS:
                invalidate_mrp_cache()
        except Exception as e:
            logger.warning(f"Error invalidating cache for {model_name}: {e}")

    # Invalidate AFTER commit so the cache is not repopulated with stale rows
    transaction.on_commit(invalidate_after_commit)
