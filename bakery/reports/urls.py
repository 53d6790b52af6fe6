from django.urls import path
from .views import sales_summary

urlpatterns = [
    path('reports/sales-summary/', sales_summary, name='sales-summary'),
]
