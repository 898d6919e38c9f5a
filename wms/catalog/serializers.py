from rest_framework import serializers
from .models import Category, Part, Product, BomItem


class CategorySerializer(serializers.ModelSerializer):
    parent_name = serializers.CharField(source='parent.name', read_only=True, default=None)

    class Meta:
        model = Category
        fields = ['id', 'code', 'name', 'parent', 'parent_name', 'description', 'created_at', 'updated_at']


class PartSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    supplier_name = serializers.CharField(source='supplier.name', read_only=True, default=None)
    current_qty = serializers.SerializerMethodField()
    available_qty = serializers.SerializerMethodField()
    is_low_stock = serializers.SerializerMethodField()

    class Meta:
        model = Part
        fields = [
            'id', 'part_code', 'part_name', 'description', 'category', 'category_name',
            'supplier', 'supplier_name', 'unit', 'unit_price', 'safety_stock', 'reorder_point',
            'min_order_qty', 'lead_time_days', 'storage_location', 'is_active', 'notes',
            'current_qty', 'available_qty', 'is_low_stock', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def _inventory(self, obj):
        return getattr(obj, 'inventory', None)

    def get_current_qty(self, obj):
        inventory = self._inventory(obj)
        return inventory.current_qty if inventory else 0

    def get_available_qty(self, obj):
        inventory = self._inventory(obj)
        return inventory.available_qty if inventory else 0

    def get_is_low_stock(self, obj):
        return self.get_current_qty(obj) <= obj.safety_stock

    def validate_part_code(self, value):
        return value.strip().upper()

    def validate_storage_location(self, value):
        if not value:
            return None
        from wms.locations.layout import parse_location_code
        if parse_location_code(value) is None:
            raise serializers.ValidationError('Location must look like ZONE-ROW-SHELF, e.g. A-01-02')
        return value.strip().upper()


class BomItemSerializer(serializers.ModelSerializer):
    part_code = serializers.CharField(source='part.part_code', read_only=True)
    part_name = serializers.CharField(source='part.part_name', read_only=True)
    unit = serializers.CharField(source='part.unit', read_only=True)

    class Meta:
        model = BomItem
        fields = ['id', 'product', 'part', 'part_code', 'part_name', 'unit', 'quantity_per_unit',
                  'loss_rate', 'notes', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class ProductSerializer(serializers.ModelSerializer):
    bom_items = BomItemSerializer(many=True, read_only=True)
    bom_count = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'product_code', 'product_name', 'description', 'category', 'unit', 'is_active',
                  'bom_items', 'bom_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_bom_count(self, obj):
        return len([item for item in obj.bom_items.all() if item.is_active])

    def validate_product_code(self, value):
        return value.strip().upper()
