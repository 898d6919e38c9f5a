from rest_framework import serializers
from .models import MrpResult


class MrpResultSerializer(serializers.ModelSerializer):
    part_code = serializers.CharField(source='part.part_code', read_only=True)
    part_name = serializers.CharField(source='part.part_name', read_only=True)
    unit = serializers.CharField(source='part.unit', read_only=True)
    supplier = serializers.IntegerField(source='part.supplier_id', read_only=True, default=None)
    supplier_name = serializers.CharField(source='part.supplier.name', read_only=True, default=None)
    lead_time_days = serializers.IntegerField(source='part.lead_time_days', read_only=True)
    unit_price = serializers.DecimalField(source='part.unit_price', max_digits=12, decimal_places=2, read_only=True)
    sales_order_code = serializers.CharField(source='sales_order.order_code', read_only=True, default=None)
    project = serializers.CharField(source='sales_order.project', read_only=True, default=None)

    class Meta:
        model = MrpResult
        fields = [
            'id', 'part', 'part_code', 'part_name', 'unit', 'supplier', 'supplier_name', 'lead_time_days',
            'unit_price', 'sales_order', 'sales_order_code', 'project', 'calculation_date',
            'gross_requirement', 'current_stock', 'reserved_qty', 'incoming_qty', 'safety_stock',
            'net_requirement', 'suggested_order_qty', 'required_date', 'suggested_order_date',
            'urgency', 'status', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class MrpCalculateSerializer(serializers.Serializer):
    part_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    sales_order_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)
    clear_existing = serializers.BooleanField(required=False, default=True)


class MrpStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=MrpResult.STATUS_CHOICES)
