from django.db import models
from decimal import Decimal
from bakery.core.models import User
from bakery.catalog.models import Product
from bakery.parties.models import Customer


class Order(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    SOURCE_MANUAL = 'manual'
    SOURCE_POS = 'pos'
    SOURCE_QUOTE = 'quote'
    SOURCE_CHOICES = [
        (SOURCE_MANUAL, 'Manual order'),
        (SOURCE_POS, 'Point of sale'),
        (SOURCE_QUOTE, 'Cake quote'),
    ]

    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='orders')
    customer = models.ForeignKey(Customer, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    customer_name = models.CharField(max_length=200, blank=True)
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    source = models.CharField(max_length=20, choices=SOURCE_CHOICES, default=SOURCE_MANUAL)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Order #{self.pk} - {self.customer_name or 'walk-in'} ({self.total_amount})"

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', 'status', 'created_at'], name='idx_order_owner_status'),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(total_amount__gte=0), name='order_total_non_negative'),
        ]


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    # Product id as text, or the custom-cake placeholder for quoted items
    product_reference = models.CharField(max_length=64)
    description = models.CharField(max_length=255, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    price_at_order = models.DecimalField(max_digits=10, decimal_places=2)
    quote_breakdown = models.JSONField(null=True, blank=True)

    @property
    def subtotal(self):
        return self.price_at_order * self.quantity

    def __str__(self):
        return f"{self.description or self.product_reference} x {self.quantity}"

    class Meta:
        db_table = 'order_items'
        ordering = ['id']
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name='order_item_quantity_positive'),
        ]
