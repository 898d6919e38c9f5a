import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import IntegrityError, transaction
from django.shortcuts import get_object_or_404

from wms.core.permissions import HasResourcePermission
from wms.core.utils import create_audit_log, parse_bool
from .models import Warehouse, Zone, Rack
from .serializers import (
    WarehouseSerializer, ZoneSerializer, RackSerializer, LayoutUpdateSerializer, BulkArrangeSerializer
)
from .services import sync_shelves, get_layout, update_layout, lookup_location, bulk_arrange

logger = logging.getLogger('wms.locations')


# Warehouse views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('locations')])
def warehouse_list_create(request):
    if request.method == 'GET':
        queryset = Warehouse.objects.prefetch_related('zones')
        is_active = parse_bool(request.query_params.get('is_active'))
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        return Response(WarehouseSerializer(queryset, many=True).data)
    else:
        serializer = WarehouseSerializer(data=request.data)
        if serializer.is_valid():
            warehouse = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Warehouse',
                object_id=warehouse.id,
                object_name=warehouse.name,
                object_reference=warehouse.code,
                changes=serializer.data
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('locations')])
def warehouse_detail(request, pk):
    warehouse = get_object_or_404(Warehouse.objects.prefetch_related('zones'), pk=pk)

    if request.method == 'GET':
        return Response(WarehouseSerializer(warehouse).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = WarehouseSerializer(warehouse, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        code = warehouse.code
        warehouse.delete()
        create_audit_log(
            request=request,
            action='delete',
            model_name='Warehouse',
            object_id=pk,
            object_reference=code,
            changes={}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, HasResourcePermission('locations')])
def warehouse_layout(request, pk):
    """Floor plan with part counts per shelf; PUT saves zone and rack positions"""
    warehouse = get_object_or_404(Warehouse, pk=pk)

    if request.method == 'PUT':
        serializer = LayoutUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        update_layout(warehouse, **serializer.validated_data)
    return Response(get_layout(warehouse))


# Zone views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('locations')])
def zone_list_create(request):
    if request.method == 'GET':
        queryset = Zone.objects.select_related('warehouse').prefetch_related('racks')
        warehouse = request.query_params.get('warehouse')
        if warehouse:
            queryset = queryset.filter(warehouse_id=warehouse)
        return Response(ZoneSerializer(queryset, many=True).data)
    else:
        serializer = ZoneSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('locations')])
def zone_detail(request, pk):
    zone = get_object_or_404(Zone.objects.prefetch_related('racks'), pk=pk)

    if request.method == 'GET':
        data = ZoneSerializer(zone).data
        data['racks'] = RackSerializer(zone.racks.prefetch_related('shelves'), many=True).data
        return Response(data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ZoneSerializer(zone, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        zone.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('locations', action='edit')])
def zone_bulk_arrange(request, pk):
    """Lay out all racks of a zone on a grid"""
    zone = get_object_or_404(Zone, pk=pk)
    serializer = BulkArrangeSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    placements = bulk_arrange(zone, **serializer.validated_data)
    return Response({
        'message': f'{len(placements)} rack(s) arranged',
        'updates': [{'id': rack.id, 'pos_x': x, 'pos_y': y} for rack, x, y in placements],
        'racks': RackSerializer(zone.racks.prefetch_related('shelves').order_by('row_number'), many=True).data,
    })


# Rack views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('locations')])
def rack_list_create(request):
    """List racks or create one together with its shelves"""
    if request.method == 'GET':
        queryset = Rack.objects.select_related('zone').prefetch_related('shelves')
        zone = request.query_params.get('zone')
        if zone:
            queryset = queryset.filter(zone_id=zone)
        return Response(RackSerializer(queryset, many=True).data)
    else:
        serializer = RackSerializer(data=request.data)
        if serializer.is_valid():
            try:
                with transaction.atomic():
                    rack = serializer.save()
                    sync_shelves(rack)
            except IntegrityError:
                return Response({'error': 'A rack with this row number already exists in the zone'},
                                status=status.HTTP_400_BAD_REQUEST)
            return Response(RackSerializer(Rack.objects.prefetch_related('shelves').get(pk=rack.pk)).data,
                            status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('locations')])
def rack_detail(request, pk):
    rack = get_object_or_404(Rack.objects.select_related('zone'), pk=pk)

    if request.method == 'GET':
        return Response(RackSerializer(rack).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = RackSerializer(rack, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            with transaction.atomic():
                rack = serializer.save()
                added, removed = sync_shelves(rack)
            if added or removed:
                logger.info(f"Rack {rack}: {added} shelf(s) added, {removed} removed")
            return Response(RackSerializer(Rack.objects.prefetch_related('shelves').get(pk=rack.pk)).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        rack.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('locations')])
def location_lookup(request):
    """Resolve ?code=A-01-02 to its shelf and the parts stored there"""
    code = request.query_params.get('code')
    if not code:
        return Response({'error': 'Location code is required'}, status=status.HTTP_400_BAD_REQUEST)
    location = lookup_location(code)
    if location is None:
        return Response({'error': 'Location not found', 'code': code}, status=status.HTTP_404_NOT_FOUND)
    return Response(location)
