from django.urls import path
from .views import (
    purchase_order_list_create, purchase_order_detail, purchase_order_status,
    purchase_order_receive, purchase_order_from_mrp
)

urlpatterns = [
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/from-mrp/', purchase_order_from_mrp, name='purchase-order-from-mrp'),
    path('purchase-orders/<int:pk>/', purchase_order_detail, name='purchase-order-detail'),
    path('purchase-orders/<int:pk>/status/', purchase_order_status, name='purchase-order-status'),
    path('purchase-orders/<int:pk>/receive/', purchase_order_receive, name='purchase-order-receive'),
]
