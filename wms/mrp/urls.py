from django.urls import path
from .views import mrp_result_list, mrp_calculate, mrp_result_detail, mrp_summary, mrp_low_stock

urlpatterns = [
    path('mrp/', mrp_result_list, name='mrp-result-list'),
    path('mrp/calculate/', mrp_calculate, name='mrp-calculate'),
    path('mrp/summary/', mrp_summary, name='mrp-summary'),
    path('mrp/low-stock/', mrp_low_stock, name='mrp-low-stock'),
    path('mrp/results/<int:pk>/', mrp_result_detail, name='mrp-result-detail'),
]
