from django.db import models
from decimal import Decimal
from bakery.core.models import User

SIZE = 'size'
FLAVOR = 'flavor'
FILLING = 'filling'
COVERING = 'covering'
DECORATION = 'decoration'
SPECIAL = 'special'

CATEGORY_CHOICES = [
    (SIZE, 'Size'),
    (FLAVOR, 'Flavor'),
    (FILLING, 'Filling'),
    (COVERING, 'Covering'),
    (DECORATION, 'Decoration'),
    (SPECIAL, 'Special option'),
]

# Exactly one selection each, always required
SINGLE_SELECT_CATEGORIES = (SIZE, FLAVOR)
# Zero or more selections each, listed in breakdown order
MULTI_SELECT_CATEGORIES = (FILLING, COVERING, DECORATION, SPECIAL)


class QuoteOption(models.Model):
    """A priced choice in one quoter category (e.g. size 'Large' at 50.00)"""
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='quote_options')
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    name = models.CharField(max_length=200)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.get_category_display()}: {self.name} ({self.price})"

    class Meta:
        db_table = 'quote_options'
        ordering = ['category', 'price', 'name']
        constraints = [
            models.UniqueConstraint(fields=['owner', 'category', 'name'], name='unique_quote_option_per_owner'),
            models.CheckConstraint(condition=models.Q(price__gte=0), name='quote_option_price_non_negative'),
        ]


class QuoteCategoryRule(models.Model):
    """Per-owner flag making a multi-select category mandatory before a quote can become an order"""
    owner = models.ForeignKey(User, on_delete=models.CASCADE, related_name='quote_rules')
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES)
    is_required = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.category} ({'required' if self.is_required else 'optional'})"

    class Meta:
        db_table = 'quote_category_rules'
        constraints = [
            models.UniqueConstraint(fields=['owner', 'category'], name='unique_quote_rule_per_owner'),
        ]


def category_rules_for(owner):
    """
    Whether each multi-select category is required for ``owner``.

    A rule row is an explicit override. Without one, filling is required as
    soon as the owner has filling options to pick from; the rest are optional.
    """
    flagged = dict(
        QuoteCategoryRule.objects.filter(
            owner=owner, category__in=MULTI_SELECT_CATEGORIES,
        ).values_list('category', 'is_required')
    )
    if FILLING not in flagged:
        flagged[FILLING] = QuoteOption.objects.filter(owner=owner, category=FILLING).exists()
    return {category: flagged.get(category, False) for category in MULTI_SELECT_CATEGORIES}


def required_categories_for(owner):
    """Categories that must have a selection: size, flavor and every required multi-select category"""
    rules = category_rules_for(owner)
    return set(SINGLE_SELECT_CATEGORIES) | {category for category, required in rules.items() if required}
