import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count, Q
from django.shortcuts import get_object_or_404

from wms.core.permissions import HasResourcePermission
from wms.core.utils import create_audit_log, parse_bool
from .models import Supplier
from .serializers import SupplierSerializer

logger = logging.getLogger('wms.parties')


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('suppliers')])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    if request.method == 'GET':
        queryset = Supplier.objects.annotate(part_count=Count('parts')).order_by('name')
        search = request.query_params.get('search', None)
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(code__icontains=search) |
                Q(contact_person__icontains=search) |
                Q(email__icontains=search)
            )
        is_active = parse_bool(request.query_params.get('is_active'))
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        serializer = SupplierSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = SupplierSerializer(data=request.data)
        if serializer.is_valid():
            supplier = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Supplier',
                object_id=supplier.id,
                object_name=supplier.name,
                object_reference=supplier.code
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('suppliers')])
def supplier_detail(request, pk):
    """Retrieve, update or deactivate a supplier"""
    supplier = get_object_or_404(Supplier, pk=pk)

    if request.method == 'GET':
        from wms.purchasing.models import PurchaseOrder

        data = SupplierSerializer(supplier).data
        data['parts'] = list(
            supplier.parts.order_by('part_code').values('id', 'part_code', 'part_name', 'unit_price', 'is_active')
        )
        data['recent_orders'] = list(
            PurchaseOrder.objects.filter(supplier=supplier)
            .order_by('-order_date', '-id')
            .values('id', 'order_code', 'order_date', 'expected_date', 'status', 'total_amount')[:10]
        )
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SupplierSerializer(supplier, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(
                request=request,
                action='update',
                model_name='Supplier',
                object_id=supplier.id,
                object_name=supplier.name,
                object_reference=supplier.code,
                changes=dict(request.data)
            )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        # Soft delete: parts and purchase orders keep referencing the supplier
        supplier.is_active = False
        supplier.save(update_fields=['is_active', 'updated_at'])
        create_audit_log(
            request=request,
            action='delete',
            model_name='Supplier',
            object_id=supplier.id,
            object_name=supplier.name,
            object_reference=supplier.code,
            changes={'is_active': False}
        )
        logger.info(f"Supplier {supplier.code} deactivated by {request.user.username}")
        return Response({'message': 'Supplier deactivated', 'id': supplier.id})
