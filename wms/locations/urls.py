from django.urls import path
from .views import (
    warehouse_list_create, warehouse_detail, warehouse_layout,
    zone_list_create, zone_detail, zone_bulk_arrange,
    rack_list_create, rack_detail, location_lookup
)

urlpatterns = [
    path('warehouses/', warehouse_list_create, name='warehouse-list-create'),
    path('warehouses/<int:pk>/', warehouse_detail, name='warehouse-detail'),
    path('warehouses/<int:pk>/layout/', warehouse_layout, name='warehouse-layout'),
    path('zones/', zone_list_create, name='zone-list-create'),
    path('zones/<int:pk>/', zone_detail, name='zone-detail'),
    path('zones/<int:pk>/bulk-arrange/', zone_bulk_arrange, name='zone-bulk-arrange'),
    path('racks/', rack_list_create, name='rack-list-create'),
    path('racks/<int:pk>/', rack_detail, name='rack-detail'),
    path('locations/', location_lookup, name='location-lookup'),
]
