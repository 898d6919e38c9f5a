import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import IntegrityError, transaction
from django.db.models import ProtectedError, Sum
from django.shortcuts import get_object_or_404

from wms.core.permissions import HasResourcePermission
from wms.core.utils import create_audit_log, paginate_queryset, parse_date
from .filters import PartFilter, ProductFilter
from .models import Category, Part, Product, BomItem
from .serializers import CategorySerializer, PartSerializer, ProductSerializer, BomItemSerializer

logger = logging.getLogger('wms.catalog')


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('parts')])
def category_list_create(request):
    """List all categories or create a new category"""
    if request.method == 'GET':
        queryset = Category.objects.select_related('parent').all()
        serializer = CategorySerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = CategorySerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('parts')])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category, pk=pk)

    if request.method == 'GET':
        return Response(CategorySerializer(category).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            if serializer.validated_data.get('parent') == category:
                return Response({'error': 'A category cannot be its own parent'}, status=status.HTTP_400_BAD_REQUEST)
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Part views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('parts')])
def part_list_create(request):
    """List parts (filtered, paginated) or create a part"""
    if request.method == 'GET':
        queryset = Part.objects.select_related('category', 'supplier', 'inventory').all()
        filterset = PartFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('part_code')
        return Response(paginate_queryset(request, queryset, PartSerializer, default_limit=50))
    else:
        serializer = PartSerializer(data=request.data)
        if serializer.is_valid():
            part = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Part',
                object_id=part.id,
                object_name=part.part_name,
                object_reference=part.part_code
            )
            logger.info(f"Part created: {part.part_code}")
            return Response(PartSerializer(part).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('parts')])
def part_detail(request, pk):
    """Retrieve, update or delete a part"""
    part = get_object_or_404(Part.objects.select_related('category', 'supplier', 'inventory'), pk=pk)

    if request.method == 'GET':
        return Response(PartSerializer(part).data)
    elif request.method in ('PUT', 'PATCH'):
        tracked = ['safety_stock', 'min_order_qty', 'lead_time_days', 'unit_price', 'storage_location']
        before = {field: str(getattr(part, field)) for field in tracked}
        serializer = PartSerializer(part, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            part = serializer.save()
            changes = {
                field: {'old': before[field], 'new': str(getattr(part, field))}
                for field in tracked if before[field] != str(getattr(part, field))
            }
            if changes:
                create_audit_log(
                    request=request,
                    action='update',
                    model_name='Part',
                    object_id=part.id,
                    object_name=part.part_name,
                    object_reference=part.part_code,
                    changes=changes
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        part_code, part_id = part.part_code, part.id
        try:
            with transaction.atomic():
                part.delete()
        except (ProtectedError, IntegrityError):
            return Response(
                {'error': f'Part {part_code} has stock history or open orders; deactivate it instead'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Part',
            object_id=part_id,
            object_reference=part_code
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasResourcePermission('parts')])
def part_timeline(request, pk):
    """Chronological stock movements of one part with running balances"""
    from wms.inventory.models import Transaction

    part = get_object_or_404(Part, pk=pk)
    transactions = Transaction.objects.filter(part=part).order_by('transaction_date', 'id')

    date_from = parse_date(request.query_params.get('date_from'))
    date_to = parse_date(request.query_params.get('date_to'))
    if date_from:
        transactions = transactions.filter(transaction_date__date__gte=date_from)
    if date_to:
        transactions = transactions.filter(transaction_date__date__lte=date_to)

    totals = {
        row['transaction_type']: row['total']
        for row in transactions.values('transaction_type').annotate(total=Sum('quantity'))
    }
    events = [
        {
            'id': tx.id,
            'date': tx.transaction_date,
            'transaction_code': tx.transaction_code,
            'type': tx.transaction_type,
            'quantity': tx.quantity,
            'before_qty': tx.before_qty,
            'after_qty': tx.after_qty,
            'reference_type': tx.reference_type,
            'reference_id': tx.reference_id,
            'reason': tx.reason,
        }
        for tx in transactions
    ]
    return Response({
        'part': {'id': part.id, 'part_code': part.part_code, 'part_name': part.part_name},
        'events': events,
        'totals': {
            'inbound': totals.get('inbound', 0),
            'outbound': totals.get('outbound', 0),
            'adjustment_count': transactions.filter(transaction_type='adjustment').count(),
        },
    })


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('products')])
def product_list_create(request):
    """List all products (with BOM) or create a new product"""
    if request.method == 'GET':
        queryset = Product.objects.prefetch_related('bom_items', 'bom_items__part').all()
        filterset = ProductFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('product_code')
        serializer = ProductSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = ProductSerializer(data=request.data)
        if serializer.is_valid():
            product = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='Product',
                object_id=product.id,
                object_name=product.product_name,
                object_reference=product.product_code
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('products')])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product.objects.prefetch_related('bom_items', 'bom_items__part'), pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            with transaction.atomic():
                product.delete()
        except (ProtectedError, IntegrityError):
            return Response({'error': 'Product is used by sales orders'}, status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)


# BOM views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasResourcePermission('bom')])
def bom_list_create(request):
    """List BOM lines (filter by product/part) or add a line"""
    if request.method == 'GET':
        queryset = BomItem.objects.select_related('part', 'product').all()
        product_id = request.query_params.get('product')
        part_id = request.query_params.get('part')
        if product_id:
            queryset = queryset.filter(product_id=product_id)
        if part_id:
            queryset = queryset.filter(part_id=part_id)
        serializer = BomItemSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = BomItemSerializer(data=request.data)
        if serializer.is_valid():
            bom_item = serializer.save()
            create_audit_log(
                request=request,
                action='create',
                model_name='BomItem',
                object_id=bom_item.id,
                object_name=str(bom_item),
                object_reference=bom_item.product.product_code
            )
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, HasResourcePermission('bom')])
def bom_detail(request, pk):
    """Retrieve, update or delete a BOM line"""
    bom_item = get_object_or_404(BomItem.objects.select_related('part', 'product'), pk=pk)

    if request.method == 'GET':
        return Response(BomItemSerializer(bom_item).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = BomItemSerializer(bom_item, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        bom_item.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
