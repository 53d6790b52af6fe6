from django.conf import settings
from django.core.cache import cache
from django.db.models import Q
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bakery.core.cache_utils import owner_cache_key
from bakery.core.permissions import IsApprovedUser
from .models import Customer
from .serializers import CustomerSerializer
from .signals import CUSTOMER_LIST_CACHE_PREFIX


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def customer_list_create(request):
    """List the caller's customers or create a new customer"""
    if request.method == 'GET':
        search = request.query_params.get('search', '').strip()

        cache_key = owner_cache_key(CUSTOMER_LIST_CACHE_PREFIX, request.user.pk, search=search)
        cached_data = cache.get(cache_key)
        if cached_data is not None:
            response = Response(cached_data)
            response['Cache-Control'] = 'private, max-age=60'
            return response

        queryset = Customer.objects.filter(owner=request.user).order_by('name')
        if search:
            queryset = queryset.filter(
                Q(name__icontains=search) |
                Q(phone__icontains=search) |
                Q(email__icontains=search)
            )
        response_data = CustomerSerializer(queryset, many=True).data
        cache.set(cache_key, response_data, settings.BAKERY['CUSTOMER_LIST_CACHE_TTL'])

        response = Response(response_data)
        response['Cache-Control'] = 'private, max-age=60'
        return response
    else:
        serializer = CustomerSerializer(data=request.data, context={'owner': request.user})
        if serializer.is_valid():
            serializer.save(owner=request.user)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def customer_detail(request, pk):
    """Retrieve, update or delete one of the caller's customers"""
    customer = get_object_or_404(Customer, pk=pk, owner=request.user)

    if request.method == 'GET':
        serializer = CustomerSerializer(customer)
        return Response(serializer.data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CustomerSerializer(
            customer,
            data=request.data,
            partial=request.method == 'PATCH',
            context={'owner': request.user},
        )
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        customer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
