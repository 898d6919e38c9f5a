from django.contrib import admin
from .models import MrpResult


@admin.register(MrpResult)
class MrpResultAdmin(admin.ModelAdmin):
    list_display = ['part', 'sales_order', 'net_requirement', 'suggested_order_qty', 'suggested_order_date',
                    'urgency', 'status', 'calculation_date']
    list_filter = ['urgency', 'status']
    search_fields = ['part__part_code', 'part__part_name']
    raw_id_fields = ['part', 'sales_order']
