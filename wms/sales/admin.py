from django.contrib import admin
from .models import SalesOrder, SalesOrderItem


class SalesOrderItemInline(admin.TabularInline):
    model = SalesOrderItem
    extra = 0


@admin.register(SalesOrder)
class SalesOrderAdmin(admin.ModelAdmin):
    list_display = ['order_code', 'order_date', 'project', 'due_date', 'status', 'total_qty', 'created_by']
    list_filter = ['status', 'division']
    search_fields = ['order_code', 'project', 'manager']
    date_hierarchy = 'order_date'
    inlines = [SalesOrderItemInline]
