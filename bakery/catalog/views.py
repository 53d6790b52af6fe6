from django.db.models import F
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bakery.core.permissions import IsApprovedUser
from bakery.core.utils import create_audit_log
from .filters import ProductFilter, IngredientFilter
from .models import Product, Ingredient
from .serializers import ProductSerializer, IngredientSerializer


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def product_list_create(request):
    """List the caller's products or create a new product"""
    if request.method == 'GET':
        queryset = Product.objects.filter(owner=request.user).order_by('name')
        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = ProductSerializer(filterset.qs, many=True)
        return Response(serializer.data)
    else:  # POST
        serializer = ProductSerializer(data=request.data)
        if serializer.is_valid():
            product = serializer.save(owner=request.user)
            create_audit_log(request=request, action='create', instance=product)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def product_detail(request, pk):
    """Retrieve, update or delete one of the caller's products"""
    product = get_object_or_404(Product, pk=pk, owner=request.user)

    if request.method == 'GET':
        serializer = ProductSerializer(product)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        old_price = product.unit_price
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            product = serializer.save()
            changes = {}
            if product.unit_price != old_price:
                changes['unit_price'] = [str(old_price), str(product.unit_price)]
            create_audit_log(request=request, action='update', instance=product, changes=changes)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request=request, action='delete', instance=product)
        product.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Ingredient views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def ingredient_list_create(request):
    """List the caller's ingredients or create a new one"""
    if request.method == 'GET':
        queryset = Ingredient.objects.filter(owner=request.user).order_by('name')
        filterset = IngredientFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer = IngredientSerializer(filterset.qs, many=True)
        return Response(serializer.data)
    else:  # POST
        serializer = IngredientSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save(owner=request.user)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def ingredient_detail(request, pk):
    """Retrieve, update or delete one of the caller's ingredients"""
    ingredient = get_object_or_404(Ingredient, pk=pk, owner=request.user)

    if request.method == 'GET':
        serializer = IngredientSerializer(ingredient)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = IngredientSerializer(ingredient, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        ingredient.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def critical_ingredients(request):
    """Ingredients whose stock is at or below their minimum level"""
    queryset = Ingredient.objects.filter(
        owner=request.user,
        stock__lte=F('min_stock_level'),
    ).order_by('stock', 'name')
    serializer = IngredientSerializer(queryset, many=True)
    return Response({
        'count': len(serializer.data),
        'ingredients': serializer.data,
    })
