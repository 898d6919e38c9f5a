from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderItem


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 0
    raw_id_fields = ['part', 'sales_order']
    readonly_fields = ['total_price']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['order_code', 'supplier', 'project', 'order_date', 'expected_date', 'status', 'total_amount']
    list_filter = ['status', 'supplier']
    search_fields = ['order_code', 'project', 'supplier__name']
    date_hierarchy = 'order_date'
    inlines = [PurchaseOrderItemInline]
