"""
URL configuration for the bakery back-office API.

Every app mounts its routes under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Bakery Back-office Admin"
admin.site.site_title = "Bakery Back-office Admin Portal"
admin.site.index_title = "Welcome to the Bakery Back-office"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('bakery.core.urls')),
    path('api/v1/', include('bakery.catalog.urls')),
    path('api/v1/', include('bakery.parties.urls')),
    path('api/v1/', include('bakery.quoting.urls')),
    path('api/v1/', include('bakery.orders.urls')),
    path('api/v1/', include('bakery.reports.urls')),
]
