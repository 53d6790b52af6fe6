from django.urls import path
from .views import (
    product_list_create, product_detail,
    ingredient_list_create, ingredient_detail, critical_ingredients,
)

urlpatterns = [
    # Product endpoints
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),

    # Ingredient endpoints
    path('ingredients/', ingredient_list_create, name='ingredient-list-create'),
    path('ingredients/critical/', critical_ingredients, name='ingredient-critical'),
    path('ingredients/<int:pk>/', ingredient_detail, name='ingredient-detail'),
]
