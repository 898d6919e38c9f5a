"""
MRP service

Gathers open sales-order demand (exploded through active BOM lines),
open purchase-order supply and part policy, runs the arithmetic from
calculations.py and persists one MrpResult per part.
"""
import logging
from collections import defaultdict
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Case, Count, F, IntegerField, Sum, Value, When
from django.utils import timezone

from wms.catalog.models import BomItem, Part
from wms.core.cache_signals import suspend_cache_signals
from wms.core.cache_utils import (
    MRP_CACHE_PREFIX, cached_query, get_ttl, invalidate_dashboard_cache, invalidate_mrp_cache
)
from wms.core.exceptions import BusinessRuleError
from wms.core.utils import create_audit_log
from wms.inventory.models import Inventory
from wms.sales.models import SalesOrder, SalesOrderItem
from . import calculations
from .models import MrpResult

logger = logging.getLogger('wms.mrp')

# Purchase orders whose open quantity counts as incoming supply
SUPPLY_STATUSES = ('approved', 'ordered', 'partial')


def _thresholds():
    config = settings.WMS
    return {
        'critical': config.get('URGENCY_CRITICAL_DAYS', 0),
        'high': config.get('URGENCY_HIGH_DAYS', 7),
        'medium': config.get('URGENCY_MEDIUM_DAYS', 14),
    }


def collect_demand(sales_order_ids=None, part_ids=None):
    """
    Gross requirement per part from open sales orders.

    Returns {part_id: {'demand': Decimal, 'due_date': date|None,
    'sales_order_id': int|None, 'sales_orders': set}} where due_date is the
    earliest due date among contributing orders.
    """
    order_items = SalesOrderItem.objects.select_related('sales_order').filter(
        sales_order__status__in=SalesOrder.OPEN_STATUSES
    )
    if sales_order_ids:
        order_items = order_items.filter(sales_order_id__in=sales_order_ids)
    order_items = list(order_items)
    if not order_items:
        return {}

    bom_lines = BomItem.objects.filter(
        is_active=True,
        product_id__in={item.product_id for item in order_items},
    )
    if part_ids:
        bom_lines = bom_lines.filter(part_id__in=part_ids)
    bom_by_product = defaultdict(list)
    for line in bom_lines:
        bom_by_product[line.product_id].append(line)

    demand = {}
    for item in order_items:
        order = item.sales_order
        for line in bom_by_product.get(item.product_id, []):
            entry = demand.setdefault(line.part_id, {
                'demand': Decimal('0'),
                'due_date': None,
                'sales_order_id': None,
                'sales_orders': set(),
            })
            entry['demand'] += calculations.bom_requirement(item.order_qty, line.quantity_per_unit, line.loss_rate)
            entry['sales_orders'].add(order.id)
            if order.due_date and (entry['due_date'] is None or order.due_date < entry['due_date']):
                entry['due_date'] = order.due_date
                entry['sales_order_id'] = order.id
            elif entry['sales_order_id'] is None and entry['due_date'] is None:
                entry['sales_order_id'] = order.id
    return demand


def collect_incoming(part_ids=None):
    """Open purchase quantity per part: order_qty - received_qty on live orders"""
    from wms.purchasing.models import PurchaseOrderItem

    items = PurchaseOrderItem.objects.filter(order__status__in=SUPPLY_STATUSES).exclude(status='cancelled')
    if part_ids:
        items = items.filter(part_id__in=part_ids)
    rows = items.values('part_id').annotate(open_qty=Sum(F('order_qty') - F('received_qty')))
    return {row['part_id']: max(0, row['open_qty'] or 0) for row in rows}


def compute_requirements(part_ids=None, sales_order_ids=None, today=None):
    """Compute MRP rows without persisting them"""
    today = today or timezone.localdate()
    demand = collect_demand(sales_order_ids=sales_order_ids, part_ids=part_ids)

    parts = Part.objects.filter(is_active=True).select_related('supplier')
    if part_ids:
        parts = parts.filter(id__in=part_ids)
    if sales_order_ids:
        # Scoped run: only parts those orders actually consume
        parts = parts.filter(id__in=demand.keys())
    parts = list(parts)

    incoming = collect_incoming(part_ids=[p.id for p in parts] if part_ids or sales_order_ids else None)
    stock = {
        inv.part_id: inv for inv in Inventory.objects.filter(part__in=parts)
    }
    thresholds = _thresholds()

    rows = []
    for part in parts:
        entry = demand.get(part.id, {})
        gross = entry.get('demand', Decimal('0'))
        inventory = stock.get(part.id)
        current = inventory.current_qty if inventory else 0
        reserved = inventory.reserved_qty if inventory else 0
        incoming_qty = incoming.get(part.id, 0)
        due_date = entry.get('due_date')

        net = calculations.calculate_net_requirement(gross, part.safety_stock, current, incoming_qty)
        suggested_qty = calculations.calculate_recommended_order_qty(net, part.min_order_qty)
        order_date = calculations.calculate_order_date(due_date, part.lead_time_days) if suggested_qty else None
        urgency = calculations.classify_urgency(net, part.lead_time_days, due_date, today, thresholds)

        rows.append({
            'part': part,
            'sales_order_id': entry.get('sales_order_id'),
            'sales_orders': sorted(entry.get('sales_orders', set())),
            'gross_requirement': gross,
            'current_stock': current,
            'reserved_qty': reserved,
            'incoming_qty': incoming_qty,
            'safety_stock': part.safety_stock,
            'net_requirement': net,
            'suggested_order_qty': suggested_qty,
            'required_date': due_date,
            'suggested_order_date': order_date,
            'urgency': urgency,
        })
    return rows


def calculate_mrp(part_ids=None, sales_order_ids=None, clear_existing=True, today=None, user=None):
    """
    Run MRP and store the results.

    Existing pending results of the affected parts are replaced when
    clear_existing is set; ordered/completed rows are kept as history.
    Returns (results, summary).
    """
    started = timezone.now()
    rows = compute_requirements(part_ids=part_ids, sales_order_ids=sales_order_ids, today=today)

    with suspend_cache_signals(), transaction.atomic():
        if clear_existing:
            stale = MrpResult.objects.filter(status='pending')
            if part_ids or sales_order_ids:
                stale = stale.filter(part_id__in=[row['part'].id for row in rows])
            deleted, _ = stale.delete()
            if deleted:
                logger.debug(f"Removed {deleted} pending MRP results")

        results = MrpResult.objects.bulk_create([
            MrpResult(
                part=row['part'],
                sales_order_id=row['sales_order_id'],
                calculation_date=started,
                gross_requirement=row['gross_requirement'],
                current_stock=row['current_stock'],
                reserved_qty=row['reserved_qty'],
                incoming_qty=row['incoming_qty'],
                safety_stock=row['safety_stock'],
                net_requirement=row['net_requirement'],
                suggested_order_qty=row['suggested_order_qty'],
                required_date=row['required_date'],
                suggested_order_date=row['suggested_order_date'],
                urgency=row['urgency'],
            )
            for row in rows
        ])

        # Keep the inventory's incoming figure in line with open purchase orders
        for row in rows:
            Inventory.objects.filter(part=row['part']).exclude(incoming_qty=row['incoming_qty']).update(
                incoming_qty=row['incoming_qty']
            )

    summary = calculations.summarize(rows)
    summary['calculated_at'] = started.isoformat()

    invalidate_mrp_cache()
    invalidate_dashboard_cache()

    # Scheduled runs have no user and are still audited
    create_audit_log(
        user=user,
        action='mrp_run',
        model_name='MrpResult',
        object_id=started.strftime('%Y%m%d%H%M%S'),
        object_name='MRP calculation',
        changes={
            'part_ids': part_ids or [],
            'sales_order_ids': sales_order_ids or [],
            'summary': {k: v for k, v in summary.items() if k != 'calculated_at'},
        }
    )

    logger.info(
        f"MRP run: {summary['total_parts']} parts, {summary['parts_needing_order']} need ordering "
        f"({summary['critical_count']} critical)"
    )
    return results, summary


def urgency_order():
    """Annotation expression ranking urgency critical -> low"""
    return Case(
        *[When(urgency=key, then=Value(rank)) for key, rank in calculations.URGENCY_RANK.items()],
        default=Value(len(calculations.URGENCY_RANK)),
        output_field=IntegerField(),
    )


def get_mrp_results(status=None, urgency=None, part_id=None, needs_order=False, supplier_id=None):
    queryset = MrpResult.objects.select_related('part', 'part__supplier', 'part__category', 'sales_order')
    if status:
        queryset = queryset.filter(status=status)
    if urgency:
        queryset = queryset.filter(urgency=urgency)
    if part_id:
        queryset = queryset.filter(part_id=part_id)
    if supplier_id:
        queryset = queryset.filter(part__supplier_id=supplier_id)
    if needs_order:
        queryset = queryset.filter(net_requirement__gt=0)
    return queryset.annotate(urgency_rank=urgency_order()).order_by(
        'urgency_rank', F('suggested_order_date').asc(nulls_last=True), '-suggested_order_qty'
    )


def update_result_status(result, new_status):
    valid = {choice[0] for choice in MrpResult.STATUS_CHOICES}
    if new_status not in valid:
        raise BusinessRuleError(f'Invalid MRP status: {new_status}', code='invalid_status')
    result.status = new_status
    result.save(update_fields=['status', 'updated_at'])
    return result


@cached_query(cache_ttl=get_ttl('MRP_SUMMARY_CACHE_TTL', 600), key_prefix=f"{MRP_CACHE_PREFIX}_summary")
def get_mrp_summary():
    """Counts over the pending results of the latest run"""
    pending = MrpResult.objects.filter(status='pending')
    by_urgency = dict(
        pending.values_list('urgency').annotate(total=Count('id')).order_by()
    )
    latest = pending.order_by('-calculation_date').values_list('calculation_date', flat=True).first()
    needing = pending.filter(suggested_order_qty__gt=0)
    return {
        'total_parts': pending.count(),
        'parts_needing_order': needing.count(),
        'critical_count': by_urgency.get('critical', 0),
        'high_count': by_urgency.get('high', 0),
        'medium_count': by_urgency.get('medium', 0),
        'low_count': by_urgency.get('low', 0),
        'total_suggested_qty': needing.aggregate(total=Sum('suggested_order_qty'))['total'] or 0,
        'ordered_count': MrpResult.objects.filter(status='ordered').count(),
        'last_calculated_at': latest.isoformat() if latest else None,
    }


def get_low_stock_parts():
    return (
        Part.objects.filter(is_active=True, inventory__current_qty__lte=F('safety_stock'))
        .select_related('inventory', 'supplier', 'category')
        .order_by('part_code')
    )


def get_sales_order_material_requirements(sales_order):
    """
    Parts one sales order consumes, with current availability.

    required = ceil(sum(order_qty * qty_per_unit * (1 + loss_rate)))
    """
    totals = defaultdict(lambda: Decimal('0'))
    items = list(sales_order.items.all())
    bom_lines = BomItem.objects.filter(
        is_active=True, product_id__in={item.product_id for item in items}
    ).select_related('part')
    lines_by_product = defaultdict(list)
    parts = {}
    for line in bom_lines:
        lines_by_product[line.product_id].append(line)
        parts[line.part_id] = line.part

    for item in items:
        for line in lines_by_product.get(item.product_id, []):
            totals[line.part_id] += calculations.bom_requirement(item.order_qty, line.quantity_per_unit, line.loss_rate)

    stock = {inv.part_id: inv for inv in Inventory.objects.filter(part_id__in=totals.keys())}
    requirements = []
    for part_id, total in totals.items():
        part = parts[part_id]
        inventory = stock.get(part_id)
        required = calculations.ceil_qty(total)
        current = inventory.current_qty if inventory else 0
        available = inventory.available_qty if inventory else 0
        requirements.append({
            'part_id': part_id,
            'part_code': part.part_code,
            'part_name': part.part_name,
            'unit': part.unit,
            'storage_location': part.storage_location,
            'required_qty': required,
            'current_qty': current,
            'available_qty': available,
            'shortage': max(0, required - available),
        })
    requirements.sort(key=lambda row: row['part_code'])
    return requirements
