from django.contrib import admin
from .models import Product, Ingredient


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'unit_price', 'stock_quantity', 'updated_at']
    list_filter = ['owner', 'created_at']
    search_fields = ['name', 'description']
    ordering = ['name']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Ingredient)
class IngredientAdmin(admin.ModelAdmin):
    list_display = ['name', 'owner', 'unit', 'stock', 'min_stock_level', 'is_critical']
    list_filter = ['owner', 'unit']
    search_fields = ['name']
    ordering = ['name']

    @admin.display(boolean=True, description='Critical')
    def is_critical(self, obj):
        return obj.is_critical
