"""
URL configuration for the WMS backend.

Every app exposes its endpoints under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "WMS Administration"
admin.site.site_title = "WMS Admin Portal"
admin.site.index_title = "Warehouse Management"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('wms.core.urls')),
    path('api/v1/', include('wms.catalog.urls')),
    path('api/v1/', include('wms.parties.urls')),
    path('api/v1/', include('wms.inventory.urls')),
    path('api/v1/', include('wms.sales.urls')),
    path('api/v1/', include('wms.purchasing.urls')),
    path('api/v1/', include('wms.locations.urls')),
    path('api/v1/', include('wms.picking.urls')),
    path('api/v1/', include('wms.mrp.urls')),
    path('api/v1/', include('wms.reports.urls')),
]
