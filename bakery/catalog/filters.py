import django_filters
from django.db.models import F, Q
from .models import Product, Ingredient


def _truthy(value):
    return str(value).lower() in ('true', '1', 'yes')


class ProductFilter(django_filters.FilterSet):
    """
    Filters for the product list.

    search   - name or description contains the text
    in_stock - 'true' for stock above zero, 'false' for sold-out products
    min_price / max_price - unit price bounds (inclusive)
    """
    search = django_filters.CharFilter(method='filter_search', label='Search')
    in_stock = django_filters.CharFilter(method='filter_in_stock', label='In Stock')
    min_price = django_filters.NumberFilter(field_name='unit_price', lookup_expr='gte')
    max_price = django_filters.NumberFilter(field_name='unit_price', lookup_expr='lte')

    class Meta:
        model = Product
        fields = ['search', 'in_stock', 'min_price', 'max_price']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(description__icontains=value))

    def filter_in_stock(self, queryset, name, value):
        if _truthy(value):
            return queryset.filter(stock_quantity__gt=0)
        return queryset.filter(stock_quantity=0)


class IngredientFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')
    critical = django_filters.CharFilter(method='filter_critical', label='Critical')

    class Meta:
        model = Ingredient
        fields = ['search', 'critical', 'unit']

    def filter_critical(self, queryset, name, value):
        if _truthy(value):
            return queryset.filter(stock__lte=F('min_stock_level'))
        return queryset.filter(stock__gt=F('min_stock_level'))
