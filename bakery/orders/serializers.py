from rest_framework import serializers
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            'id', 'product', 'product_reference', 'description', 'quantity',
            'price_at_order', 'subtotal', 'quote_breakdown',
        ]


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'customer', 'customer_name', 'total_amount', 'status', 'source',
            'items', 'item_count', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_item_count(self, obj):
        return len(obj.items.all())


class OrderLineInputSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)


class OrderLinesSerializer(serializers.Serializer):
    """Lines plus customer, as sent by the POS screen and the order form"""
    lines = OrderLineInputSerializer(many=True)
    customer_name = serializers.CharField(required=False, allow_blank=True, max_length=200)
    customer = serializers.IntegerField(required=False, allow_null=True)


class OrderEditSerializer(OrderLinesSerializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES, required=False)


class OrderPatchSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES, required=False)
    customer_name = serializers.CharField(required=False, allow_blank=True, max_length=200)
    customer = serializers.IntegerField(required=False, allow_null=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Provide a status or customer to change')
        return attrs
