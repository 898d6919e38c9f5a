from rest_framework import serializers
from .models import Inventory, Transaction, StockAudit, StockAuditItem


class InventorySerializer(serializers.ModelSerializer):
    part_code = serializers.CharField(source='part.part_code', read_only=True)
    part_name = serializers.CharField(source='part.part_name', read_only=True)
    unit = serializers.CharField(source='part.unit', read_only=True)
    safety_stock = serializers.IntegerField(source='part.safety_stock', read_only=True)
    storage_location = serializers.CharField(source='part.storage_location', read_only=True)
    available_qty = serializers.IntegerField(read_only=True)
    is_low_stock = serializers.SerializerMethodField()

    class Meta:
        model = Inventory
        fields = [
            'id', 'part', 'part_code', 'part_name', 'unit', 'storage_location', 'safety_stock',
            'current_qty', 'reserved_qty', 'incoming_qty', 'available_qty', 'is_low_stock',
            'last_inbound_date', 'last_outbound_date', 'last_audit_date', 'last_audit_qty', 'updated_at'
        ]

    def get_is_low_stock(self, obj):
        return obj.current_qty <= obj.part.safety_stock


class TransactionSerializer(serializers.ModelSerializer):
    part_code = serializers.CharField(source='part.part_code', read_only=True)
    part_name = serializers.CharField(source='part.part_name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = Transaction
        fields = [
            'id', 'transaction_code', 'part', 'part_code', 'part_name', 'transaction_type', 'quantity',
            'before_qty', 'after_qty', 'reference_type', 'reference_id', 'unit_price', 'total_amount',
            'reason', 'performed_by', 'notes', 'transaction_date', 'created_by', 'created_by_username', 'created_at'
        ]


class TransactionCreateSerializer(serializers.Serializer):
    """Input for a stock movement; for adjustments quantity is the new stock level"""
    part = serializers.IntegerField()
    transaction_type = serializers.ChoiceField(choices=[c[0] for c in Transaction.TYPE_CHOICES])
    quantity = serializers.IntegerField(min_value=0)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True)
    reference_type = serializers.ChoiceField(choices=[c[0] for c in Transaction.REFERENCE_CHOICES], required=False, default='MANUAL')
    reference_id = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=50)
    performed_by = serializers.CharField(required=False, allow_blank=True, max_length=100)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, min_value=0)
    transaction_date = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        if attrs['transaction_type'] != 'adjustment' and attrs['quantity'] <= 0:
            raise serializers.ValidationError({'quantity': 'Quantity must be greater than zero'})
        return attrs


class TransactionUpdateSerializer(serializers.Serializer):
    transaction_type = serializers.ChoiceField(choices=[c[0] for c in Transaction.TYPE_CHOICES], required=False)
    quantity = serializers.IntegerField(min_value=0, required=False)
    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)
    notes = serializers.CharField(required=False, allow_blank=True)
    performed_by = serializers.CharField(required=False, allow_blank=True, max_length=100)


class StockAuditItemSerializer(serializers.ModelSerializer):
    part_code = serializers.CharField(source='part.part_code', read_only=True)
    part_name = serializers.CharField(source='part.part_name', read_only=True)
    storage_location = serializers.CharField(source='part.storage_location', read_only=True)

    class Meta:
        model = StockAuditItem
        fields = ['id', 'audit', 'part', 'part_code', 'part_name', 'storage_location', 'system_qty',
                  'counted_qty', 'discrepancy', 'notes', 'counted_at']
        read_only_fields = ['audit', 'part', 'system_qty', 'discrepancy', 'counted_at']


class StockAuditSerializer(serializers.ModelSerializer):
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)
    approved_by_username = serializers.CharField(source='approved_by.username', read_only=True, default=None)
    matched_items = serializers.SerializerMethodField()

    class Meta:
        model = StockAudit
        fields = [
            'id', 'audit_code', 'audit_date', 'audit_type', 'status', 'total_items', 'checked_items',
            'matched_items', 'discrepancy_count', 'notes', 'created_by', 'created_by_username',
            'completed_at', 'approved_by', 'approved_by_username', 'approved_at', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'audit_code', 'status', 'total_items', 'checked_items', 'discrepancy_count', 'created_by',
            'completed_at', 'approved_by', 'approved_at', 'created_at', 'updated_at'
        ]

    def get_matched_items(self, obj):
        return obj.checked_items - obj.discrepancy_count


class StockAuditDetailSerializer(StockAuditSerializer):
    items = StockAuditItemSerializer(many=True, read_only=True)

    class Meta(StockAuditSerializer.Meta):
        fields = StockAuditSerializer.Meta.fields + ['items']
