"""
Pure MRP arithmetic

No database access here: the service layer gathers demand, supply and
part policy, and these functions turn them into requirements.
"""
from datetime import timedelta
from decimal import Decimal, ROUND_CEILING

CRITICAL = 'critical'
HIGH = 'high'
MEDIUM = 'medium'
LOW = 'low'

URGENCY_RANK = {CRITICAL: 0, HIGH: 1, MEDIUM: 2, LOW: 3}

DEFAULT_THRESHOLDS = {
    'critical': 0,
    'high': 7,
    'medium': 14,
}


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal('0')
    return Decimal(str(value))


def bom_requirement(order_qty, quantity_per_unit, loss_rate) -> Decimal:
    """Part quantity needed for order_qty units, scrap included"""
    return to_decimal(order_qty) * to_decimal(quantity_per_unit) * (Decimal('1') + to_decimal(loss_rate))


def ceil_qty(value) -> int:
    """Round a (Decimal) quantity up to a whole unit"""
    return int(to_decimal(value).to_integral_value(rounding=ROUND_CEILING))


def calculate_net_requirement(total_demand, safety_stock, current_stock, incoming_qty) -> Decimal:
    """max(0, demand + safety stock - current stock - incoming supply)"""
    net = to_decimal(total_demand) + to_decimal(safety_stock) - to_decimal(current_stock) - to_decimal(incoming_qty)
    return max(Decimal('0'), net)


def calculate_recommended_order_qty(net_requirement, min_order_qty) -> int:
    if to_decimal(net_requirement) <= 0:
        return 0
    return max(ceil_qty(net_requirement), int(min_order_qty or 1))


def calculate_order_date(due_date, lead_time_days):
    """Latest date an order can be placed and still arrive by due_date"""
    if due_date is None:
        return None
    return due_date - timedelta(days=int(lead_time_days or 0))


def classify_urgency(net_requirement, lead_time_days, due_date, today, thresholds=None) -> str:
    """
    Urgency from the slack between today and the latest order date.

    slack = days until due - lead time. Nothing to order, or no due date,
    is always low.
    """
    if to_decimal(net_requirement) <= 0 or due_date is None:
        return LOW
    thresholds = thresholds or DEFAULT_THRESHOLDS
    slack = (due_date - today).days - int(lead_time_days or 0)
    if slack <= thresholds['critical']:
        return CRITICAL
    if slack <= thresholds['high']:
        return HIGH
    if slack <= thresholds['medium']:
        return MEDIUM
    return LOW


def summarize(results):
    """Aggregate counts over computed rows (dicts with urgency/qty keys)"""
    summary = {
        'total_parts': len(results),
        'parts_needing_order': 0,
        'critical_count': 0,
        'high_count': 0,
        'medium_count': 0,
        'low_count': 0,
        'total_suggested_qty': 0,
    }
    for row in results:
        summary[f"{row['urgency']}_count"] += 1
        if row['suggested_order_qty'] > 0:
            summary['parts_needing_order'] += 1
            summary['total_suggested_qty'] += row['suggested_order_qty']
    return summary
