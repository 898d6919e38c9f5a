from rest_framework import serializers

from wms.catalog.models import Part
from .models import PickingTask, PickingItem
from .services import ITEM_ACTIONS


class PickingItemSerializer(serializers.ModelSerializer):
    part_code = serializers.CharField(source='part.part_code', read_only=True)
    part_name = serializers.CharField(source='part.part_name', read_only=True)
    unit = serializers.CharField(source='part.unit', read_only=True)
    remaining_qty = serializers.IntegerField(read_only=True)

    class Meta:
        model = PickingItem
        fields = [
            'id', 'task', 'part', 'part_code', 'part_name', 'unit', 'storage_location', 'required_qty',
            'picked_qty', 'remaining_qty', 'status', 'sequence', 'scanned_at', 'verified_at', 'picked_at', 'notes'
        ]
        read_only_fields = fields


class PickingTaskSerializer(serializers.ModelSerializer):
    sales_order_code = serializers.CharField(source='sales_order.order_code', read_only=True, default=None)
    project = serializers.CharField(source='sales_order.project', read_only=True, default=None)
    progress = serializers.SerializerMethodField()

    class Meta:
        model = PickingTask
        fields = [
            'id', 'task_code', 'sales_order', 'sales_order_code', 'project', 'priority', 'status', 'assigned_to',
            'total_items', 'picked_items', 'progress', 'started_at', 'completed_at', 'notes',
            'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_progress(self, obj):
        if not obj.total_items:
            return 0
        return round(obj.picked_items * 100 / obj.total_items)


class PickingTaskDetailSerializer(PickingTaskSerializer):
    items = PickingItemSerializer(many=True, read_only=True)

    class Meta(PickingTaskSerializer.Meta):
        fields = PickingTaskSerializer.Meta.fields + ['items']
        read_only_fields = fields


class PickingTaskItemInputSerializer(serializers.Serializer):
    part = serializers.PrimaryKeyRelatedField(queryset=Part.objects.all())
    required_qty = serializers.IntegerField(min_value=1)
    storage_location = serializers.CharField(required=False, allow_blank=True)


class PickingTaskCreateSerializer(serializers.Serializer):
    sales_order = serializers.IntegerField(required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=PickingTask.PRIORITY_CHOICES, required=False, default='normal')
    assigned_to = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = PickingTaskItemInputSerializer(many=True)


class PickingTaskUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = PickingTask
        fields = ['priority', 'assigned_to', 'notes']


class PickingItemActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=ITEM_ACTIONS)
    quantity = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    flag_type = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=50)
