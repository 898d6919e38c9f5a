from django.urls import path
from .views import (
    category_list_create, category_detail,
    part_list_create, part_detail, part_timeline,
    product_list_create, product_detail,
    bom_list_create, bom_detail
)

urlpatterns = [
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),
    path('parts/', part_list_create, name='part-list-create'),
    path('parts/<int:pk>/', part_detail, name='part-detail'),
    path('parts/<int:pk>/timeline/', part_timeline, name='part-timeline'),
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('bom/', bom_list_create, name='bom-list-create'),
    path('bom/<int:pk>/', bom_detail, name='bom-detail'),
]
