from django.contrib import admin
from .models import Inventory, Transaction, StockAudit, StockAuditItem


@admin.register(Inventory)
class InventoryAdmin(admin.ModelAdmin):
    list_display = ['part', 'current_qty', 'reserved_qty', 'incoming_qty', 'last_inbound_date', 'last_outbound_date']
    search_fields = ['part__part_code', 'part__part_name']
    readonly_fields = ['updated_at']


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    list_display = ['transaction_code', 'part', 'transaction_type', 'quantity', 'before_qty', 'after_qty',
                    'reference_type', 'reference_id', 'transaction_date']
    list_filter = ['transaction_type', 'reference_type', 'transaction_date']
    search_fields = ['transaction_code', 'part__part_code', 'reference_id']
    date_hierarchy = 'transaction_date'


class StockAuditItemInline(admin.TabularInline):
    model = StockAuditItem
    extra = 0
    readonly_fields = ['part', 'system_qty', 'discrepancy', 'counted_at']


@admin.register(StockAudit)
class StockAuditAdmin(admin.ModelAdmin):
    list_display = ['audit_code', 'audit_date', 'audit_type', 'status', 'total_items', 'checked_items', 'discrepancy_count']
    list_filter = ['status', 'audit_type']
    search_fields = ['audit_code']
    inlines = [StockAuditItemInline]
