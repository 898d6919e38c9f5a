from rest_framework import serializers

from .layout import MAX_SHELVES
from .models import Warehouse, Zone, Rack, Shelf


class ShelfSerializer(serializers.ModelSerializer):
    location_code = serializers.CharField(read_only=True)

    class Meta:
        model = Shelf
        fields = ['id', 'rack', 'shelf_number', 'capacity', 'location_code']
        read_only_fields = ['rack', 'shelf_number']


class RackSerializer(serializers.ModelSerializer):
    shelves = ShelfSerializer(many=True, read_only=True)
    zone_code = serializers.CharField(source='zone.code', read_only=True)
    shelf_count = serializers.IntegerField(min_value=1, max_value=MAX_SHELVES, required=False)

    class Meta:
        model = Rack
        fields = ['id', 'zone', 'zone_code', 'row_number', 'pos_x', 'pos_y', 'shelf_count', 'is_active',
                  'shelves', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_row_number(self, value):
        value = value.strip()
        if not value.isdigit():
            raise serializers.ValidationError('Row number must be numeric, e.g. 01')
        return value.zfill(2)


class ZoneSerializer(serializers.ModelSerializer):
    rack_count = serializers.SerializerMethodField()

    class Meta:
        model = Zone
        fields = ['id', 'warehouse', 'code', 'name', 'description', 'color', 'pos_x', 'pos_y', 'width', 'height',
                  'rack_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_rack_count(self, obj):
        return len(obj.racks.all())

    def validate_code(self, value):
        return value.strip().upper()


class WarehouseSerializer(serializers.ModelSerializer):
    zone_count = serializers.SerializerMethodField()

    class Meta:
        model = Warehouse
        fields = ['id', 'code', 'name', 'width', 'height', 'description', 'is_active', 'zone_count',
                  'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def get_zone_count(self, obj):
        return len(obj.zones.all())

    def validate_code(self, value):
        return value.strip().upper()


class LayoutPositionSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    pos_x = serializers.FloatField(required=False)
    pos_y = serializers.FloatField(required=False)
    width = serializers.FloatField(required=False, min_value=0)
    height = serializers.FloatField(required=False, min_value=0)


class LayoutUpdateSerializer(serializers.Serializer):
    zones = LayoutPositionSerializer(many=True, required=False, default=list)
    racks = LayoutPositionSerializer(many=True, required=False, default=list)


class BulkArrangeSerializer(serializers.Serializer):
    SORT_CHOICES = ['row_number', 'id', 'current']
    ARRANGE_CHOICES = ['row', 'column']

    columns = serializers.IntegerField(min_value=1, required=False, default=2)
    rows = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=None)
    gap_x = serializers.FloatField(required=False, default=18)
    gap_y = serializers.FloatField(required=False, default=12)
    start_x = serializers.FloatField(required=False, default=0)
    start_y = serializers.FloatField(required=False, default=0)
    shelf_count = serializers.IntegerField(min_value=1, max_value=MAX_SHELVES, required=False, allow_null=True, default=None)
    sort_by = serializers.ChoiceField(choices=SORT_CHOICES, required=False, default='row_number')
    arrange_by = serializers.ChoiceField(choices=ARRANGE_CHOICES, required=False, default='row')
