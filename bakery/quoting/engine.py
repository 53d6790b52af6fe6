"""
Cake quote builder.

Selections are independent per category: one size, one flavor, and any
number of distinct fillings, coverings, decorations and special options.
The breakdown is always listed size, flavor, then the multi-select
categories in their declared order.
"""
from decimal import Decimal

from bakery.core.exceptions import ValidationError, DuplicateSelectionError
from .models import SINGLE_SELECT_CATEGORIES, MULTI_SELECT_CATEGORIES, CATEGORY_CHOICES

CATEGORY_LABELS = dict(CATEGORY_CHOICES)


class QuoteLine:
    """One selected option with its price frozen at selection time"""

    def __init__(self, reference_id, display_name, unit_price, category_tag):
        self.reference_id = reference_id
        self.display_name = display_name
        self.unit_price = unit_price
        self.quantity = 1
        self.category_tag = category_tag

    def as_breakdown_entry(self):
        return {
            'category': self.category_tag,
            'option_id': self.reference_id,
            'label': self.display_name,
            'price': str(self.unit_price),
        }

    def __repr__(self):
        return f"QuoteLine({self.category_tag}, {self.display_name!r}, {self.unit_price})"


class QuoteBuilder:
    def __init__(self, owner_id=None):
        self.owner_id = owner_id
        self._single = {category: None for category in SINGLE_SELECT_CATEGORIES}
        self._multi = {category: [] for category in MULTI_SELECT_CATEGORIES}

    def _line_for(self, category, option):
        if option is None:
            raise ValidationError(f'An option is required for {category}')
        if option.category != category:
            raise ValidationError(
                f'{option.name} is a {option.category} option, not a {category} option',
                option=option.pk,
            )
        if self.owner_id is not None and option.owner_id != self.owner_id:
            raise ValidationError(f'Option {option.pk} not found', option=option.pk)
        return QuoteLine(option.pk, option.name, option.price, category)

    def set_option(self, category, option):
        """Choose the size or flavor, replacing any previous choice"""
        if category not in SINGLE_SELECT_CATEGORIES:
            raise ValidationError(f'{category} allows several selections; use add_option')
        self._single[category] = self._line_for(category, option)

    def add_option(self, category, option):
        """Append a filling/covering/decoration/special option; re-adding one is an error"""
        if category not in MULTI_SELECT_CATEGORIES:
            raise ValidationError(f'{category} allows a single selection; use set_option')
        line = self._line_for(category, option)
        if any(existing.reference_id == line.reference_id for existing in self._multi[category]):
            raise DuplicateSelectionError(
                f'{option.name} has already been added to {CATEGORY_LABELS[category].lower()}',
                category=category,
                option=option.pk,
            )
        self._multi[category].append(line)

    def remove_option(self, category, option_id):
        """Drop a selection if present; unknown ids are ignored"""
        if category in SINGLE_SELECT_CATEGORIES:
            current = self._single[category]
            if current is not None and current.reference_id == option_id:
                self._single[category] = None
        elif category in MULTI_SELECT_CATEGORIES:
            self._multi[category] = [
                line for line in self._multi[category] if line.reference_id != option_id
            ]

    def selections(self, category):
        if category in SINGLE_SELECT_CATEGORIES:
            line = self._single[category]
            return [line] if line is not None else []
        return list(self._multi.get(category, []))

    def lines(self):
        ordered = []
        for category in SINGLE_SELECT_CATEGORIES + MULTI_SELECT_CATEGORIES:
            ordered.extend(self.selections(category))
        return ordered

    def breakdown(self):
        return [line.as_breakdown_entry() for line in self.lines()]

    def total(self):
        return sum((line.unit_price for line in self.lines()), Decimal('0.00'))

    def missing_categories(self, required_categories):
        """Required categories (in breakdown order) that still have no selection"""
        required = set(required_categories) | set(SINGLE_SELECT_CATEGORIES)
        return [
            category for category in SINGLE_SELECT_CATEGORIES + MULTI_SELECT_CATEGORIES
            if category in required and not self.selections(category)
        ]

    def validate_for_commit(self, required_categories=()):
        missing = self.missing_categories(required_categories)
        if missing:
            labels = ', '.join(CATEGORY_LABELS[category].lower() for category in missing)
            raise ValidationError(f'Select at least one option for: {labels}', missing=missing)
        if self.total() <= 0:
            raise ValidationError('Quote total must be greater than zero')
