from rest_framework import serializers
from django.db import transaction
from django.utils import timezone

from wms.core.utils import generate_sequential_code
from .models import SalesOrder, SalesOrderItem


class SalesOrderItemSerializer(serializers.ModelSerializer):
    product_code = serializers.CharField(source='product.product_code', read_only=True)
    product_name = serializers.CharField(source='product.product_name', read_only=True)

    class Meta:
        model = SalesOrderItem
        fields = ['id', 'product', 'product_code', 'product_name', 'order_qty', 'produced_qty', 'status', 'notes']


class SalesOrderSerializer(serializers.ModelSerializer):
    items = SalesOrderItemSerializer(many=True, read_only=True)
    order_code = serializers.CharField(required=False, allow_blank=True, max_length=50)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = SalesOrder
        fields = [
            'id', 'order_code', 'order_date', 'division', 'manager', 'project', 'due_date', 'status',
            'total_qty', 'notes', 'items', 'created_by', 'created_by_username', 'created_at', 'updated_at'
        ]
        read_only_fields = ['total_qty', 'created_by', 'created_at', 'updated_at']

    def validate_order_code(self, value):
        value = (value or '').strip().upper()
        if value:
            queryset = SalesOrder.objects.filter(order_code=value)
            if self.instance:
                queryset = queryset.exclude(pk=self.instance.pk)
            if queryset.exists():
                raise serializers.ValidationError('Sales order with this code already exists')
        return value

    def validate(self, attrs):
        order_date = attrs.get('order_date') or (self.instance.order_date if self.instance else None)
        due_date = attrs.get('due_date')
        if order_date and due_date and due_date < order_date:
            raise serializers.ValidationError({'due_date': 'Due date cannot be before the order date'})
        return attrs

    def _validated_items(self):
        items_data = self.context.get('items_data')
        if items_data is None:
            return None
        item_serializer = SalesOrderItemSerializer(data=items_data, many=True)
        if not item_serializer.is_valid():
            raise serializers.ValidationError({'items': item_serializer.errors})
        return item_serializer.validated_data

    def _replace_items(self, order, items):
        order.items.all().delete()
        SalesOrderItem.objects.bulk_create([
            SalesOrderItem(sales_order=order, **item) for item in items
        ])
        order.recalculate_total()

    def create(self, validated_data):
        items = self._validated_items() or []
        with transaction.atomic():
            if not validated_data.get('order_code'):
                order_date = validated_data.get('order_date') or timezone.localdate()
                validated_data['order_code'] = generate_sequential_code(
                    SalesOrder, 'order_code', f"SO{order_date.strftime('%y%m')}"
                )
            order = super().create(validated_data)
            self._replace_items(order, items)
        return order

    def update(self, instance, validated_data):
        items = self._validated_items()
        if not validated_data.get('order_code'):
            validated_data.pop('order_code', None)
        with transaction.atomic():
            order = super().update(instance, validated_data)
            # PUT with items replaces every line
            if items is not None:
                self._replace_items(order, items)
        return order
