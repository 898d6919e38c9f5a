from django.contrib import admin
from .models import Category, Part, Product, BomItem


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'parent', 'created_at']
    search_fields = ['code', 'name']


@admin.register(Part)
class PartAdmin(admin.ModelAdmin):
    list_display = ['part_code', 'part_name', 'category', 'supplier', 'safety_stock', 'min_order_qty',
                    'lead_time_days', 'storage_location', 'is_active']
    list_filter = ['is_active', 'category', 'supplier']
    search_fields = ['part_code', 'part_name', 'storage_location']
    ordering = ['part_code']


class BomItemInline(admin.TabularInline):
    model = BomItem
    extra = 0
    autocomplete_fields = ['part']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['product_code', 'product_name', 'category', 'unit', 'is_active']
    list_filter = ['is_active', 'category']
    search_fields = ['product_code', 'product_name']
    inlines = [BomItemInline]
