from django.contrib import admin
from .models import PickingTask, PickingItem


class PickingItemInline(admin.TabularInline):
    model = PickingItem
    extra = 0
    raw_id_fields = ['part']


@admin.register(PickingTask)
class PickingTaskAdmin(admin.ModelAdmin):
    list_display = ['task_code', 'sales_order', 'priority', 'status', 'assigned_to', 'picked_items', 'total_items',
                    'created_at']
    list_filter = ['status', 'priority']
    search_fields = ['task_code', 'sales_order__order_code', 'assigned_to']
    inlines = [PickingItemInline]
