import django_filters
from .models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Order.STATUS_CHOICES)
    source = django_filters.ChoiceFilter(choices=Order.SOURCE_CHOICES)
    date_from = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    date_to = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    search = django_filters.CharFilter(field_name='customer_name', lookup_expr='icontains')

    class Meta:
        model = Order
        fields = ['status', 'source']
