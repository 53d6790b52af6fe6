from rest_framework import serializers
from .models import Product, Ingredient


class ProductSerializer(serializers.ModelSerializer):
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'unit_price', 'stock_quantity', 'image_url', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']


class IngredientSerializer(serializers.ModelSerializer):
    stock = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=0)
    min_stock_level = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=0, required=False)
    is_critical = serializers.BooleanField(read_only=True)

    class Meta:
        model = Ingredient
        fields = ['id', 'name', 'unit', 'stock', 'min_stock_level', 'is_critical', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']
