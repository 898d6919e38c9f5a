from rest_framework import serializers
from django.db import transaction

from .models import PurchaseOrder, PurchaseOrderItem
from .services import generate_order_code


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    part_code = serializers.CharField(source='part.part_code', read_only=True)
    part_name = serializers.CharField(source='part.part_name', read_only=True)
    unit = serializers.CharField(source='part.unit', read_only=True)
    remaining_qty = serializers.IntegerField(read_only=True)
    sales_order_code = serializers.CharField(source='sales_order.order_code', read_only=True, default=None)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)

    class Meta:
        model = PurchaseOrderItem
        fields = [
            'id', 'part', 'part_code', 'part_name', 'unit', 'order_qty', 'received_qty', 'remaining_qty',
            'unit_price', 'total_price', 'sales_order', 'sales_order_code', 'status', 'notes'
        ]
        read_only_fields = ['received_qty', 'total_price', 'status']


class PurchaseOrderSerializer(serializers.ModelSerializer):
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    order_code = serializers.CharField(required=False, allow_blank=True, max_length=50)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)
    approved_by_username = serializers.CharField(source='approved_by.username', read_only=True, default=None)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'order_code', 'supplier', 'supplier_name', 'project', 'order_date', 'expected_date',
            'actual_date', 'status', 'total_amount', 'notes', 'items', 'item_count',
            'created_by', 'created_by_username', 'approved_by', 'approved_by_username', 'approved_at',
            'created_at', 'updated_at'
        ]
        read_only_fields = [
            'status', 'actual_date', 'total_amount', 'created_by', 'approved_by', 'approved_at',
            'created_at', 'updated_at'
        ]

    def get_item_count(self, obj):
        return len(obj.items.all())

    def validate_order_code(self, value):
        value = (value or '').strip().upper()
        if value:
            queryset = PurchaseOrder.objects.filter(order_code=value)
            if self.instance:
                queryset = queryset.exclude(pk=self.instance.pk)
            if queryset.exists():
                raise serializers.ValidationError('Purchase order with this code already exists')
        return value

    def validate(self, attrs):
        order_date = attrs.get('order_date') or (self.instance.order_date if self.instance else None)
        expected_date = attrs.get('expected_date')
        if order_date and expected_date and expected_date < order_date:
            raise serializers.ValidationError({'expected_date': 'Expected date cannot be before the order date'})
        if self.instance and self.instance.status != 'draft' and self.context.get('items_data') is not None:
            raise serializers.ValidationError({'items': 'Items can only be changed while the order is a draft'})
        return attrs

    def _validated_items(self):
        items_data = self.context.get('items_data')
        if items_data is None:
            return None
        item_serializer = PurchaseOrderItemSerializer(data=items_data, many=True)
        if not item_serializer.is_valid():
            raise serializers.ValidationError({'items': item_serializer.errors})
        return item_serializer.validated_data

    def _replace_items(self, order, items):
        order.items.all().delete()
        for item in items:
            if item.get('unit_price') is None:
                item['unit_price'] = item['part'].unit_price
            # save() computes total_price per line
            PurchaseOrderItem.objects.create(order=order, **item)
        order.recalculate_total()

    def create(self, validated_data):
        items = self._validated_items() or []
        with transaction.atomic():
            if not validated_data.get('order_code'):
                validated_data['order_code'] = generate_order_code(validated_data.get('order_date'))
            order = super().create(validated_data)
            self._replace_items(order, items)
        return order

    def update(self, instance, validated_data):
        items = self._validated_items()
        if not validated_data.get('order_code'):
            validated_data.pop('order_code', None)
        with transaction.atomic():
            order = super().update(instance, validated_data)
            if items is not None:
                self._replace_items(order, items)
        return order


class StatusChangeSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PurchaseOrder.STATUS_CHOICES)


class ReceiptLineSerializer(serializers.Serializer):
    item = serializers.IntegerField()
    quantity = serializers.IntegerField()


class ReceiveSerializer(serializers.Serializer):
    items = ReceiptLineSerializer(many=True)


class FromMrpSerializer(serializers.Serializer):
    result_ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    skip_draft = serializers.BooleanField(required=False, default=False)
    order_date = serializers.DateField(required=False, allow_null=True)
    expected_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
