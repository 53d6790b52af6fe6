import logging

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from bakery.core.permissions import IsApprovedUser
from bakery.orders.serializers import OrderSerializer
from bakery.orders.writer import OrderWriter
from .models import (
    QuoteOption, QuoteCategoryRule, CATEGORY_CHOICES,
    SINGLE_SELECT_CATEGORIES, MULTI_SELECT_CATEGORIES, category_rules_for, required_categories_for,
)
from .serializers import QuoteOptionSerializer, QuoteRuleSerializer, QuoteSelectionSerializer

logger = logging.getLogger(__name__)


# Option catalogue
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def quote_option_list_create(request):
    """List the caller's quoter options (optionally one category) or add an option"""
    if request.method == 'GET':
        queryset = QuoteOption.objects.filter(owner=request.user)
        category = request.query_params.get('category')
        if category:
            if category not in dict(CATEGORY_CHOICES):
                return Response(
                    {'error': 'Invalid category', 'message': f'Unknown category: {category}'},
                    status=status.HTTP_400_BAD_REQUEST,
                )
            queryset = queryset.filter(category=category)
        serializer = QuoteOptionSerializer(queryset.order_by('category', 'price', 'name'), many=True)
        return Response(serializer.data)
    else:  # POST
        serializer = QuoteOptionSerializer(data=request.data, context={'owner': request.user})
        if serializer.is_valid():
            serializer.save(owner=request.user)
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def quote_option_detail(request, pk):
    option = get_object_or_404(QuoteOption, pk=pk, owner=request.user)

    if request.method == 'GET':
        return Response(QuoteOptionSerializer(option).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = QuoteOptionSerializer(
            option,
            data=request.data,
            partial=request.method == 'PATCH',
            context={'owner': request.user},
        )
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        option.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


def _rules_payload(owner):
    effective = category_rules_for(owner)
    rules = [
        {'category': category, 'is_required': True, 'locked': True}
        for category in SINGLE_SELECT_CATEGORIES
    ]
    rules.extend(
        {'category': category, 'is_required': effective[category], 'locked': False}
        for category in MULTI_SELECT_CATEGORIES
    )
    return QuoteRuleSerializer(rules, many=True).data


@api_view(['GET', 'PUT'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def quote_rules(request):
    """
    Which categories must be filled before a quote can become an order.

    Size and flavor are always required. PUT takes a list of
    {"category", "is_required"} entries for the other categories.
    """
    if request.method == 'PUT':
        serializer = QuoteRuleSerializer(data=request.data, many=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        for rule in serializer.validated_data:
            if rule['category'] in SINGLE_SELECT_CATEGORIES and not rule['is_required']:
                return Response(
                    {'error': 'Invalid rule', 'message': f"{rule['category']} is always required"},
                    status=status.HTTP_400_BAD_REQUEST,
                )

        with transaction.atomic():
            for rule in serializer.validated_data:
                if rule['category'] in MULTI_SELECT_CATEGORIES:
                    QuoteCategoryRule.objects.update_or_create(
                        owner=request.user,
                        category=rule['category'],
                        defaults={'is_required': rule['is_required']},
                    )
        logger.info("Quote rules updated for user %s", request.user.pk)

    return Response(_rules_payload(request.user))


# Quoter
@api_view(['POST'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def quote_preview(request):
    """Price the current selection and say whether it can be converted yet"""
    serializer = QuoteSelectionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    builder = serializer.build_quote(request.user)
    required = required_categories_for(request.user)
    missing = builder.missing_categories(required)
    total = builder.total()
    return Response({
        'breakdown': builder.breakdown(),
        'total': str(total),
        'required_categories': sorted(required),
        'missing_categories': missing,
        'ready': not missing and total > 0,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsApprovedUser])
def quote_convert(request):
    """Turn a complete quote into a pending order with one custom-cake item"""
    serializer = QuoteSelectionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    builder = serializer.build_quote(request.user)
    writer = OrderWriter(request.user, request=request)
    result = writer.convert_quote(
        builder,
        customer_name=serializer.validated_data.get('customer_name'),
        customer_id=serializer.validated_data.get('customer'),
        required_categories=required_categories_for(request.user),
    )
    return Response(OrderSerializer(result.order).data, status=status.HTTP_201_CREATED)
