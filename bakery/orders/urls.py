from django.urls import path
from .views import (
    order_list_create, order_detail,
    pos_products, pos_cart_preview, pos_checkout,
)

urlpatterns = [
    # Order endpoints
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),

    # POS endpoints
    path('pos/products/', pos_products, name='pos-products'),
    path('pos/cart/preview/', pos_cart_preview, name='pos-cart-preview'),
    path('pos/checkout/', pos_checkout, name='pos-checkout'),
]
