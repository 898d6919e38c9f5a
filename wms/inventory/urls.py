from django.urls import path
from .views import (
    inventory_list, inventory_detail, inventory_adjust, inventory_reserve, inventory_release, low_stock_alerts,
    transaction_list_create, transaction_detail, transaction_bulk,
    stock_audit_list_create, stock_audit_detail, stock_audit_item_detail,
    stock_audit_complete, stock_audit_approve
)

urlpatterns = [
    # Inventory endpoints
    path('inventory/', inventory_list, name='inventory-list'),
    path('inventory/adjust/', inventory_adjust, name='inventory-adjust'),
    path('inventory/reserve/', inventory_reserve, name='inventory-reserve'),
    path('inventory/release/', inventory_release, name='inventory-release'),
    path('inventory/low-stock/', low_stock_alerts, name='inventory-low-stock'),
    path('inventory/<int:part_id>/', inventory_detail, name='inventory-detail'),

    # Transaction endpoints
    path('transactions/', transaction_list_create, name='transaction-list-create'),
    path('transactions/bulk/', transaction_bulk, name='transaction-bulk'),
    path('transactions/<int:pk>/', transaction_detail, name='transaction-detail'),

    # Stock audit endpoints
    path('stock-audits/', stock_audit_list_create, name='stock-audit-list-create'),
    path('stock-audits/<int:pk>/', stock_audit_detail, name='stock-audit-detail'),
    path('stock-audits/<int:pk>/complete/', stock_audit_complete, name='stock-audit-complete'),
    path('stock-audits/<int:pk>/approve/', stock_audit_approve, name='stock-audit-approve'),
    path('stock-audits/items/<int:pk>/', stock_audit_item_detail, name='stock-audit-item-detail'),
]
