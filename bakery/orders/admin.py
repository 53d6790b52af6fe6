from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ['product_reference', 'quote_breakdown']


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer_name', 'owner', 'total_amount', 'status', 'source', 'created_at']
    list_filter = ['status', 'source', 'created_at']
    search_fields = ['customer_name']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [OrderItemInline]
    date_hierarchy = 'created_at'
