import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404

from wms.catalog.serializers import PartSerializer
from wms.core.permissions import HasResourcePermission
from wms.core.utils import create_audit_log, paginate_queryset, parse_bool
from .models import MrpResult
from .serializers import MrpResultSerializer, MrpCalculateSerializer, MrpStatusSerializer
from .services import (
    calculate_mrp, get_mrp_results, update_result_status, get_mrp_summary, get_low_stock_parts
)

logger = logging.getLogger('wms.mrp')


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('mrp')])
def mrp_result_list(request):
    """MRP results, most urgent first"""
    queryset = get_mrp_results(
        status=request.query_params.get('status'),
        urgency=request.query_params.get('urgency'),
        part_id=request.query_params.get('part'),
        supplier_id=request.query_params.get('supplier'),
        needs_order=parse_bool(request.query_params.get('needs_order')),
    )
    return Response(paginate_queryset(request, queryset, MrpResultSerializer, default_limit=50))


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('mrp', action='create')])
def mrp_calculate(request):
    """Run MRP over open sales orders (optionally scoped to parts or orders)"""
    serializer = MrpCalculateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    results, summary = calculate_mrp(
        part_ids=data['part_ids'] or None,
        sales_order_ids=data['sales_order_ids'] or None,
        clear_existing=data['clear_existing'],
        user=request.user,
    )
    return Response({
        'message': f'MRP calculated for {len(results)} parts',
        'summary': summary,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated, HasResourcePermission('mrp')])
def mrp_result_detail(request, pk):
    result = get_object_or_404(MrpResult.objects.select_related('part', 'part__supplier', 'sales_order'), pk=pk)

    if request.method == 'GET':
        return Response(MrpResultSerializer(result).data)

    serializer = MrpStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    old_status = result.status
    result = update_result_status(result, serializer.validated_data['status'])
    create_audit_log(
        request=request,
        action='status_change',
        model_name='MrpResult',
        object_id=result.id,
        object_name=result.part.part_name,
        object_reference=result.part.part_code,
        changes={'status': {'old': old_status, 'new': result.status}}
    )
    return Response(MrpResultSerializer(result).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('mrp')])
def mrp_summary(request):
    return Response(get_mrp_summary())


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('mrp')])
def mrp_low_stock(request):
    """Active parts at or below safety stock"""
    parts = get_low_stock_parts()
    return Response(paginate_queryset(request, parts, PartSerializer, default_limit=50))
