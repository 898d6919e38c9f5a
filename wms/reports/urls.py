from django.urls import path
from . import views

urlpatterns = [
    path('dashboard/kpis/', views.dashboard_kpis, name='dashboard-kpis'),
    path('dashboard/charts/', views.dashboard_charts, name='dashboard-charts'),
    path('reports/<slug:report_type>/', views.report_detail, name='report-detail'),
]
