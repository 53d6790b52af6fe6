from django.db import models
from decimal import Decimal
from bakery.core.models import User


class Product(models.Model):
    """Finished goods sold over the counter"""
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=200, db_index=True)
    description = models.TextField(blank=True)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    stock_quantity = models.PositiveIntegerField(default=0)
    image_url = models.URLField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'products'
        ordering = ['name']
        constraints = [
            models.CheckConstraint(condition=models.Q(unit_price__gte=0), name='product_unit_price_non_negative'),
            models.CheckConstraint(condition=models.Q(stock_quantity__gte=0), name='product_stock_non_negative'),
        ]
        indexes = [
            models.Index(fields=['owner', 'name'], name='idx_product_owner_name'),
        ]


class Ingredient(models.Model):
    """Raw ingredients; critical when stock is at or below the minimum level"""
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='ingredients')
    name = models.CharField(max_length=200)
    unit = models.CharField(max_length=50)  # e.g. kg, l, pcs
    stock = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal('0.000'))
    min_stock_level = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal('0.000'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.unit})"

    @property
    def is_critical(self):
        return self.stock <= self.min_stock_level

    class Meta:
        db_table = 'ingredients'
        ordering = ['name']
        constraints = [
            models.CheckConstraint(condition=models.Q(stock__gte=0), name='ingredient_stock_non_negative'),
            models.CheckConstraint(condition=models.Q(min_stock_level__gte=0), name='ingredient_min_stock_non_negative'),
        ]
