"""
Aggregations behind the dashboard and report endpoints

Results are plain dicts/lists so they can be cached as-is.
"""
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import TruncDate

from wms.catalog.models import Part
from wms.core.cache_utils import (
    DASHBOARD_CACHE_PREFIX, REPORTS_CACHE_PREFIX, cached_query, get_ttl
)
from wms.core.models import AuditLog
from wms.inventory.models import Inventory, StockAudit, Transaction
from wms.mrp.calculations import URGENCY_RANK
from wms.mrp.models import MrpResult
from wms.mrp.services import get_mrp_summary
from wms.picking.models import PickingTask
from wms.purchasing.models import PurchaseOrder, PurchaseOrderItem
from wms.sales.models import SalesOrder

DASHBOARD_TTL = get_ttl('DASHBOARD_CACHE_TTL', 300)

TRANSACTION_TYPES = ('inbound', 'outbound', 'adjustment', 'transfer')


def _stock_value():
    return ExpressionWrapper(F('current_qty') * F('part__unit_price'), output_field=DecimalField(max_digits=18, decimal_places=2))


def _float(value):
    return float(value or Decimal('0'))


@cached_query(cache_ttl=DASHBOARD_TTL, key_prefix=f"{DASHBOARD_CACHE_PREFIX}_kpis")
def dashboard_kpis(today):
    inventories = Inventory.objects.filter(part__is_active=True)
    totals = inventories.aggregate(total_qty=Sum('current_qty'), total_value=Sum(_stock_value()))
    return {
        'total_parts': Part.objects.filter(is_active=True).count(),
        'low_stock_count': inventories.filter(current_qty__lte=F('part__safety_stock')).count(),
        'out_of_stock_count': inventories.filter(current_qty__lte=0).count(),
        'open_sales_orders': SalesOrder.objects.filter(status__in=SalesOrder.OPEN_STATUSES).count(),
        'pending_purchase_orders': PurchaseOrder.objects.filter(status__in=PurchaseOrder.PENDING_STATUSES).count(),
        'active_picking_tasks': PickingTask.objects.filter(status__in=PickingTask.ACTIVE_STATUSES).count(),
        'today_transactions': Transaction.objects.filter(transaction_date__date=today).count(),
        'total_stock_qty': totals['total_qty'] or 0,
        'total_stock_value': _float(totals['total_value']),
    }


@cached_query(cache_ttl=DASHBOARD_TTL, key_prefix=f"{DASHBOARD_CACHE_PREFIX}_charts")
def dashboard_charts(today):
    start = today - timedelta(days=6)

    daily = {
        start + timedelta(days=offset): {tx_type: 0 for tx_type in TRANSACTION_TYPES}
        for offset in range(7)
    }
    rows = (
        Transaction.objects.filter(transaction_date__date__gte=start, transaction_date__date__lte=today)
        .annotate(day=TruncDate('transaction_date'))
        .values('day', 'transaction_type')
        .annotate(count=Count('id'))
    )
    for row in rows:
        if row['day'] in daily:
            daily[row['day']][row['transaction_type']] = row['count']

    by_category = (
        Inventory.objects.filter(part__is_active=True)
        .values('part__category__name')
        .annotate(quantity=Sum('current_qty'), value=Sum(_stock_value()), parts=Count('id'))
        .order_by('-quantity')
    )

    po_status = dict(PurchaseOrder.objects.values_list('status').annotate(count=Count('id')).order_by())
    urgency = dict(
        MrpResult.objects.filter(status='pending').values_list('urgency').annotate(count=Count('id')).order_by()
    )

    return {
        'transactions_7d': [{'date': day.isoformat(), **counts} for day, counts in sorted(daily.items())],
        'stock_by_category': [
            {
                'category': row['part__category__name'] or 'Uncategorized',
                'quantity': row['quantity'] or 0,
                'value': _float(row['value']),
                'parts': row['parts'],
            }
            for row in by_category
        ],
        'purchase_order_status': [
            {'status': key, 'label': label, 'count': po_status.get(key, 0)}
            for key, label in PurchaseOrder.STATUS_CHOICES
        ],
        'mrp_urgency': [{'urgency': key, 'count': urgency.get(key, 0)} for key in URGENCY_RANK],
    }


@cached_query(cache_ttl=DASHBOARD_TTL, key_prefix=f"{REPORTS_CACHE_PREFIX}_inventory_status")
def inventory_status_report(category_id=None):
    inventories = Inventory.objects.select_related('part', 'part__category', 'part__supplier').filter(part__is_active=True)
    if category_id:
        inventories = inventories.filter(part__category_id=category_id)

    rows = []
    summary = {'total_parts': 0, 'out_of_stock': 0, 'low_stock': 0, 'ok': 0, 'total_value': 0.0}
    for inv in inventories.order_by('part__part_code'):
        part = inv.part
        if inv.current_qty <= 0:
            stock_status = 'out_of_stock'
        elif inv.current_qty <= part.safety_stock:
            stock_status = 'low_stock'
        else:
            stock_status = 'ok'
        value = _float(part.unit_price) * inv.current_qty
        summary['total_parts'] += 1
        summary[stock_status] += 1
        summary['total_value'] += value
        rows.append({
            'part_id': part.id,
            'part_code': part.part_code,
            'part_name': part.part_name,
            'category': part.category.name if part.category else None,
            'supplier': part.supplier.name if part.supplier else None,
            'storage_location': part.storage_location,
            'current_qty': inv.current_qty,
            'reserved_qty': inv.reserved_qty,
            'available_qty': inv.available_qty,
            'incoming_qty': inv.incoming_qty,
            'safety_stock': part.safety_stock,
            'status': stock_status,
            'value': value,
        })
    summary['total_value'] = round(summary['total_value'], 2)
    return {'summary': summary, 'rows': rows}


@cached_query(cache_ttl=DASHBOARD_TTL, key_prefix=f"{REPORTS_CACHE_PREFIX}_inventory_movement")
def inventory_movement_report(date_from, date_to, part_id=None):
    transactions = Transaction.objects.filter(
        transaction_date__date__gte=date_from, transaction_date__date__lte=date_to
    )
    if part_id:
        transactions = transactions.filter(part_id=part_id)

    daily = (
        transactions.annotate(day=TruncDate('transaction_date'))
        .values('day')
        .annotate(
            inbound=Sum('quantity', filter=Q(transaction_type='inbound')),
            outbound=Sum('quantity', filter=Q(transaction_type='outbound')),
            adjustment=Sum('quantity', filter=Q(transaction_type='adjustment')),
            count=Count('id'),
        )
        .order_by('day')
    )
    by_part = (
        transactions.values('part_id', 'part__part_code', 'part__part_name')
        .annotate(
            inbound=Sum('quantity', filter=Q(transaction_type='inbound')),
            outbound=Sum('quantity', filter=Q(transaction_type='outbound')),
            adjustment=Sum('quantity', filter=Q(transaction_type='adjustment')),
            count=Count('id'),
        )
        .order_by('-count', 'part__part_code')
    )
    totals = transactions.aggregate(
        inbound=Sum('quantity', filter=Q(transaction_type='inbound')),
        outbound=Sum('quantity', filter=Q(transaction_type='outbound')),
        adjustment=Sum('quantity', filter=Q(transaction_type='adjustment')),
    )
    return {
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'summary': {
            'transaction_count': transactions.count(),
            'total_inbound': totals['inbound'] or 0,
            'total_outbound': totals['outbound'] or 0,
            'net_adjustment': totals['adjustment'] or 0,
        },
        'daily': [
            {
                'date': row['day'].isoformat(),
                'inbound': row['inbound'] or 0,
                'outbound': row['outbound'] or 0,
                'adjustment': row['adjustment'] or 0,
                'count': row['count'],
            }
            for row in daily
        ],
        'by_part': [
            {
                'part_id': row['part_id'],
                'part_code': row['part__part_code'],
                'part_name': row['part__part_name'],
                'inbound': row['inbound'] or 0,
                'outbound': row['outbound'] or 0,
                'adjustment': row['adjustment'] or 0,
                'count': row['count'],
            }
            for row in by_part[:50]
        ],
    }


@cached_query(cache_ttl=DASHBOARD_TTL, key_prefix=f"{REPORTS_CACHE_PREFIX}_order_status")
def order_status_report(date_from, date_to, today):
    purchase_orders = PurchaseOrder.objects.filter(order_date__gte=date_from, order_date__lte=date_to)
    sales_orders = SalesOrder.objects.filter(order_date__gte=date_from, order_date__lte=date_to)

    po_counts = dict(purchase_orders.values_list('status').annotate(count=Count('id')).order_by())
    so_counts = dict(sales_orders.values_list('status').annotate(count=Count('id')).order_by())
    overdue = (
        PurchaseOrder.objects.filter(status__in=PurchaseOrder.RECEIVABLE_STATUSES, expected_date__lt=today)
        .select_related('supplier')
        .order_by('expected_date')
    )
    return {
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'purchase_orders': {
            'total': purchase_orders.count(),
            'total_amount': _float(purchase_orders.aggregate(total=Sum('total_amount'))['total']),
            'by_status': {key: po_counts.get(key, 0) for key, _ in PurchaseOrder.STATUS_CHOICES},
        },
        'sales_orders': {
            'total': sales_orders.count(),
            'total_qty': sales_orders.aggregate(total=Sum('total_qty'))['total'] or 0,
            'by_status': {key: so_counts.get(key, 0) for key, _ in SalesOrder.STATUS_CHOICES},
        },
        'overdue_purchase_orders': [
            {
                'id': order.id,
                'order_code': order.order_code,
                'supplier': order.supplier.name,
                'expected_date': order.expected_date.isoformat(),
                'days_overdue': (today - order.expected_date).days,
                'status': order.status,
            }
            for order in overdue
        ],
    }


@cached_query(cache_ttl=DASHBOARD_TTL, key_prefix=f"{REPORTS_CACHE_PREFIX}_supplier_performance")
def supplier_performance_report(date_from, date_to):
    """
    Per supplier: order count, received ratio (received qty / ordered qty)
    and on-time ratio (received orders whose actual date <= expected date).
    """
    orders = PurchaseOrder.objects.filter(order_date__gte=date_from, order_date__lte=date_to).exclude(status='cancelled')
    stats = {}
    for order in orders.select_related('supplier'):
        entry = stats.setdefault(order.supplier_id, {
            'supplier_id': order.supplier_id,
            'supplier_code': order.supplier.code,
            'supplier_name': order.supplier.name,
            'total_orders': 0,
            'received_orders': 0,
            'on_time_orders': 0,
            'total_amount': 0.0,
        })
        entry['total_orders'] += 1
        entry['total_amount'] += _float(order.total_amount)
        if order.status == 'received':
            entry['received_orders'] += 1
            if order.actual_date and order.expected_date and order.actual_date <= order.expected_date:
                entry['on_time_orders'] += 1

    quantities = (
        PurchaseOrderItem.objects.filter(order__in=orders)
        .values('order__supplier_id')
        .annotate(ordered=Sum('order_qty'), received=Sum('received_qty'))
    )
    for row in quantities:
        entry = stats.get(row['order__supplier_id'])
        if entry is not None:
            entry['ordered_qty'] = row['ordered'] or 0
            entry['received_qty'] = row['received'] or 0

    rows = []
    for entry in stats.values():
        ordered = entry.setdefault('ordered_qty', 0)
        received = entry.setdefault('received_qty', 0)
        entry['received_ratio'] = round(received / ordered, 4) if ordered else 0
        entry['on_time_ratio'] = (
            round(entry['on_time_orders'] / entry['received_orders'], 4) if entry['received_orders'] else 0
        )
        entry['total_amount'] = round(entry['total_amount'], 2)
        rows.append(entry)
    rows.sort(key=lambda row: (-row['total_orders'], row['supplier_name']))
    return {'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()}, 'rows': rows}


def mrp_summary_report():
    """Summary plus the most urgent open requirements"""
    urgent = (
        MrpResult.objects.filter(status='pending', urgency__in=('critical', 'high'), suggested_order_qty__gt=0)
        .select_related('part', 'part__supplier')
        .order_by('suggested_order_date')[:20]
    )
    return {
        'summary': get_mrp_summary(),
        'urgent': [
            {
                'result_id': result.id,
                'part_code': result.part.part_code,
                'part_name': result.part.part_name,
                'supplier': result.part.supplier.name if result.part.supplier else None,
                'urgency': result.urgency,
                'net_requirement': _float(result.net_requirement),
                'suggested_order_qty': result.suggested_order_qty,
                'suggested_order_date': result.suggested_order_date.isoformat() if result.suggested_order_date else None,
            }
            for result in urgent
        ],
    }


@cached_query(cache_ttl=DASHBOARD_TTL, key_prefix=f"{REPORTS_CACHE_PREFIX}_audit_summary")
def audit_summary_report(date_from, date_to):
    audits = StockAudit.objects.filter(audit_date__gte=date_from, audit_date__lte=date_to)
    totals = audits.aggregate(
        items=Sum('total_items'), checked=Sum('checked_items'), discrepancies=Sum('discrepancy_count')
    )
    checked = totals['checked'] or 0
    discrepancies = totals['discrepancies'] or 0
    by_status = dict(audits.values_list('status').annotate(count=Count('id')).order_by())
    activity = (
        AuditLog.objects.filter(created_at__date__gte=date_from, created_at__date__lte=date_to)
        .values('action')
        .annotate(count=Count('id'))
        .order_by('-count')
    )
    return {
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'stock_audits': {
            'total': audits.count(),
            'by_status': {key: by_status.get(key, 0) for key, _ in StockAudit.STATUS_CHOICES},
            'total_items': totals['items'] or 0,
            'checked_items': checked,
            'discrepancy_count': discrepancies,
            'accuracy': round((checked - discrepancies) / checked, 4) if checked else None,
        },
        'activity': list(activity),
    }
