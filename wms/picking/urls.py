from django.urls import path
from .views import (
    picking_task_list_create, picking_task_from_sales_order, picking_task_detail, picking_item_action,
    picking_task_complete, picking_task_revert, picking_task_cancel, picking_task_active
)

urlpatterns = [
    path('picking-tasks/', picking_task_list_create, name='picking-task-list-create'),
    path('picking-tasks/active/', picking_task_active, name='picking-task-active'),
    path('picking-tasks/from-sales-order/<int:sales_order_id>/', picking_task_from_sales_order,
         name='picking-task-from-sales-order'),
    path('picking-tasks/<int:pk>/', picking_task_detail, name='picking-task-detail'),
    path('picking-tasks/<int:pk>/complete/', picking_task_complete, name='picking-task-complete'),
    path('picking-tasks/<int:pk>/revert/', picking_task_revert, name='picking-task-revert'),
    path('picking-tasks/<int:pk>/cancel/', picking_task_cancel, name='picking-task-cancel'),
    path('picking-items/<int:pk>/action/', picking_item_action, name='picking-item-action'),
]
