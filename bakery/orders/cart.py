"""
In-memory cart for POS sales and manual orders.

Lines are keyed by product id and kept in insertion order. Adding a product
that is already in the cart merges quantities; the price and stock captured
on the first add are kept for the rest of the session.
"""
from decimal import Decimal

from bakery.core.exceptions import ValidationError, StockExceededError

PRODUCT_LINE = 'product'


class CartLine:
    def __init__(self, reference_id, display_name, unit_price, quantity, stock_snapshot,
                 category_tag=PRODUCT_LINE):
        self.reference_id = reference_id
        self.display_name = display_name
        self.unit_price = unit_price
        self.quantity = quantity
        self.stock_snapshot = stock_snapshot
        self.category_tag = category_tag

    @property
    def subtotal(self):
        return self.unit_price * self.quantity

    def as_dict(self):
        return {
            'product': self.reference_id,
            'name': self.display_name,
            'unit_price': str(self.unit_price),
            'quantity': self.quantity,
            'available': self.stock_snapshot,
            'subtotal': str(self.subtotal),
        }

    def __repr__(self):
        return f"CartLine({self.reference_id}, {self.display_name!r}, {self.quantity} x {self.unit_price})"


class Cart:
    def __init__(self, enforce_stock=True):
        # Pending (manual) orders do not consume stock, so they skip the bound
        self.enforce_stock = enforce_stock
        self._lines = {}

    def add(self, product, requested_qty):
        """
        Add ``requested_qty`` of ``product`` (anything with id, name,
        unit_price and stock_quantity, e.g. a ProductSnapshot).

        Raises ValidationError for a missing product or non-positive
        quantity, StockExceededError when the merged quantity would exceed
        the stock snapshot. The cart is unchanged when either is raised.
        """
        if product is None:
            raise ValidationError('Select a product first')
        if isinstance(requested_qty, bool) or not isinstance(requested_qty, int) or requested_qty <= 0:
            raise ValidationError('Quantity must be a positive whole number', quantity=requested_qty)

        existing = self._lines.get(product.id)
        if existing is not None:
            new_quantity = existing.quantity + requested_qty
            available = existing.stock_snapshot
        else:
            new_quantity = requested_qty
            available = product.stock_quantity

        if self.enforce_stock and new_quantity > available:
            raise StockExceededError(product.name, new_quantity, available)

        if existing is not None:
            existing.quantity = new_quantity
            return existing

        line = CartLine(
            reference_id=product.id,
            display_name=product.name,
            unit_price=product.unit_price,
            quantity=requested_qty,
            stock_snapshot=product.stock_quantity,
        )
        self._lines[product.id] = line
        return line

    def remove(self, reference_id):
        self._lines.pop(reference_id, None)

    def clear(self):
        self._lines.clear()

    def total(self):
        return sum((line.subtotal for line in self._lines.values()), Decimal('0.00'))

    @property
    def lines(self):
        return tuple(self._lines.values())

    def is_empty(self):
        return not self._lines

    def __len__(self):
        return len(self._lines)
