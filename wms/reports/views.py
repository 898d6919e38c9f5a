import logging
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from wms.core.permissions import HasResourcePermission
from wms.core.utils import parse_date, today
from . import queries

logger = logging.getLogger('wms.reports')

REPORT_TYPES = (
    'inventory-status', 'inventory-movement', 'order-status',
    'supplier-performance', 'mrp-summary', 'audit-summary',
)


def _date_range(request, default_days=30):
    """date_from/date_to query params, defaulting to the last `default_days` days"""
    date_to = parse_date(request.query_params.get('date_to'), default=today())
    date_from = parse_date(request.query_params.get('date_from'), default=date_to - timedelta(days=default_days))
    return date_from, date_to


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('dashboard')])
def dashboard_kpis(request):
    """Headline counts for the dashboard cards"""
    return Response(queries.dashboard_kpis(today()))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('dashboard')])
def dashboard_charts(request):
    """7-day movement, stock by category, PO status and MRP urgency series"""
    return Response(queries.dashboard_charts(today()))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('reports')])
def report_detail(request, report_type):
    """Serve one of the REPORT_TYPES"""
    if report_type not in REPORT_TYPES:
        return Response(
            {'error': f'Unknown report type: {report_type}', 'available': list(REPORT_TYPES)},
            status=status.HTTP_404_NOT_FOUND
        )

    date_from, date_to = _date_range(request)
    if date_from > date_to:
        return Response({'error': 'date_from must be on or before date_to'}, status=status.HTTP_400_BAD_REQUEST)

    if report_type == 'inventory-status':
        data = queries.inventory_status_report(request.query_params.get('category') or None)
    elif report_type == 'inventory-movement':
        data = queries.inventory_movement_report(date_from, date_to, request.query_params.get('part') or None)
    elif report_type == 'order-status':
        data = queries.order_status_report(date_from, date_to, today())
    elif report_type == 'supplier-performance':
        data = queries.supplier_performance_report(date_from, date_to)
    elif report_type == 'mrp-summary':
        data = queries.mrp_summary_report()
    else:
        data = queries.audit_summary_report(date_from, date_to)

    logger.debug(f"Report {report_type} served to {request.user.username}")
    return Response({'report_type': report_type, 'generated_at': today().isoformat(), **data})
