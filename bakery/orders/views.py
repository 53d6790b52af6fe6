import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bakery.catalog.reader import get_product_snapshots, list_available_products
from bakery.core.exceptions import ValidationError
from bakery.core.permissions import IsApprovedUser
from bakery.core.utils import create_audit_log
from .cart import Cart
from .filters import OrderFilter
from .models import Order
from .serializers import (
    OrderSerializer, OrderLinesSerializer, OrderEditSerializer, OrderPatchSerializer,
)
from .writer import OrderWriter

logger = logging.getLogger(__name__)


def build_cart(owner, lines, enforce_stock=True):
    """Fill a cart from [{'product', 'quantity'}] using fresh catalog snapshots"""
    cart = Cart(enforce_stock=enforce_stock)
    if not lines:
        return cart
    snapshots = get_product_snapshots(owner, [line['product'] for line in lines])
    for line in lines:
        cart.add(snapshots[line['product']], line['quantity'])
    return cart


def checkout_response(result, success_status=status.HTTP_201_CREATED):
    """201 for a clean commit, 207 when the order exists but some steps failed"""
    payload = OrderSerializer(result.order).data
    if not result.is_partial:
        return Response(payload, status=success_status)
    return Response({
        'error': 'Partial failure',
        'message': f'Order #{result.order.pk} was saved, but {len(result.failures)} step(s) failed',
        'outcome': result.outcome,
        'order': payload,
        'failures': result.failures_as_dicts(),
    }, status=status.HTTP_207_MULTI_STATUS)


# Order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def order_list_create(request):
    """List the caller's orders or create a pending order from product lines"""
    if request.method == 'GET':
        queryset = Order.objects.filter(owner=request.user).prefetch_related('items').order_by('-created_at')
        filterset = OrderFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = OrderSerializer(filterset.qs, many=True)
        return Response(serializer.data)
    else:  # POST
        serializer = OrderLinesSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        cart = build_cart(request.user, data['lines'], enforce_stock=False)
        result = OrderWriter(request.user, request=request).checkout(
            cart.lines,
            source=Order.SOURCE_MANUAL,
            customer_name=data.get('customer_name'),
            customer_id=data.get('customer'),
        )
        return checkout_response(result)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def order_detail(request, pk):
    """
    Retrieve, edit or delete one of the caller's orders.

    PUT replaces the full item list and recomputes the total. PATCH changes
    only the status and/or customer; items and total are left alone.
    """
    order = get_object_or_404(Order, pk=pk, owner=request.user)
    writer = OrderWriter(request.user, request=request)

    if request.method == 'GET':
        return Response(OrderSerializer(order).data)
    elif request.method == 'PUT':
        serializer = OrderEditSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        cart = build_cart(request.user, data['lines'], enforce_stock=False)
        result = writer.edit_order(
            order,
            cart.lines,
            customer_name=data.get('customer_name'),
            customer_id=data.get('customer'),
            status=data.get('status'),
        )
        return checkout_response(result, success_status=status.HTTP_200_OK)
    elif request.method == 'PATCH':
        serializer = OrderPatchSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        if 'customer' in data or 'customer_name' in data:
            writer.change_customer(order, data.get('customer_name'), data.get('customer'))
        if 'status' in data:
            writer.change_status(order, data['status'])
        return Response(OrderSerializer(order).data)
    else:  # DELETE
        create_audit_log(request=request, action='delete', instance=order)
        order.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# POS views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def pos_products(request):
    """Products with stock, as offered on the POS screen"""
    products = list_available_products(request.user)
    return Response([
        {
            'id': product.id,
            'name': product.name,
            'unit_price': str(product.unit_price),
            'stock_quantity': product.stock_quantity,
        }
        for product in products
    ])


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def pos_cart_preview(request):
    """Merge the submitted lines against current stock and price them"""
    serializer = OrderLinesSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    cart = build_cart(request.user, serializer.validated_data['lines'])
    return Response({
        'lines': [line.as_dict() for line in cart.lines],
        'item_count': sum(line.quantity for line in cart.lines),
        'total': str(cart.total()),
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def pos_checkout(request):
    """Record a completed sale and take the sold quantities out of stock"""
    serializer = OrderLinesSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    if not data['lines']:
        raise ValidationError('The cart is empty')
    cart = build_cart(request.user, data['lines'])
    logger.info("POS checkout by user %s: %s line(s), total %s", request.user.pk, len(cart), cart.total())
    result = OrderWriter(request.user, request=request).checkout(
        cart.lines,
        source=Order.SOURCE_POS,
        customer_name=data.get('customer_name'),
        customer_id=data.get('customer'),
    )
    return checkout_response(result)
