"""
Read-only, owner-scoped access to products for the cart and checkout flow.

Each call returns a fresh point-in-time snapshot. Snapshots are never cached;
the price and stock they carry are what the cart freezes at add-time.
"""
from collections import namedtuple

from bakery.core.exceptions import ValidationError
from .models import Product

ProductSnapshot = namedtuple('ProductSnapshot', ['id', 'name', 'unit_price', 'stock_quantity'])


def _snapshot(product):
    return ProductSnapshot(
        id=product.id,
        name=product.name,
        unit_price=product.unit_price,
        stock_quantity=product.stock_quantity,
    )


def get_product_snapshot(owner, product_id):
    """Snapshot of one of the owner's products; unknown or foreign ids are a ValidationError"""
    try:
        product = Product.objects.get(pk=product_id, owner=owner)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise ValidationError(f'Product {product_id} not found', product=product_id)
    return _snapshot(product)


def get_product_snapshots(owner, product_ids):
    """Snapshots keyed by id for every requested product; all ids must belong to the owner"""
    wanted = set(product_ids)
    products = Product.objects.filter(owner=owner, pk__in=wanted)
    snapshots = {product.id: _snapshot(product) for product in products}
    missing = sorted(str(pk) for pk in wanted if pk not in snapshots)
    if missing:
        raise ValidationError(f"Product(s) not found: {', '.join(missing)}", products=missing)
    return snapshots


def list_available_products(owner):
    """Products that can currently be sold (stock above zero), by name"""
    products = Product.objects.filter(owner=owner, stock_quantity__gt=0).order_by('name')
    return [_snapshot(product) for product in products]
