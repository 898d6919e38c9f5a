from django.contrib import admin
from .models import Warehouse, Zone, Rack, Shelf


@admin.register(Warehouse)
class WarehouseAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'width', 'height', 'is_active']
    search_fields = ['code', 'name']


@admin.register(Zone)
class ZoneAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'warehouse', 'color', 'pos_x', 'pos_y']
    list_filter = ['warehouse']
    search_fields = ['code', 'name']


class ShelfInline(admin.TabularInline):
    model = Shelf
    extra = 0


@admin.register(Rack)
class RackAdmin(admin.ModelAdmin):
    list_display = ['zone', 'row_number', 'shelf_count', 'pos_x', 'pos_y', 'is_active']
    list_filter = ['zone__warehouse', 'zone']
    inlines = [ShelfInline]
