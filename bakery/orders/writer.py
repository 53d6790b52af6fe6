"""
Commits carts and quotes as orders.

A checkout is a sequence of independent writes: the order row, then one
item per line, then (for POS sales) a stock decrement after each item.
There is no transaction around the whole sequence. Item and stock failures
are collected and the remaining lines are still attempted; the order is
removed again only when none of its items could be written.
"""
import logging
from collections import namedtuple
from decimal import Decimal

from django.conf import settings
from django.utils import timezone

from bakery.catalog.models import Product
from bakery.core.exceptions import ValidationError, OrderCreationError, OrderUpdateError, RecordStoreError
from bakery.core.utils import create_audit_log
from bakery.parties.models import Customer
from .models import Order, OrderItem
from .store import RecordStore

logger = logging.getLogger(__name__)

STAGE_ITEM = 'item'
STAGE_STOCK = 'stock'

# What gets written as one OrderItem
ItemSpec = namedtuple(
    'ItemSpec',
    ['product_id', 'product_reference', 'description', 'quantity', 'unit_price', 'quote_breakdown'],
)

LineFailure = namedtuple('LineFailure', ['line', 'stage', 'message'])


def item_from_cart_line(line):
    return ItemSpec(
        product_id=line.reference_id,
        product_reference=str(line.reference_id),
        description=line.display_name,
        quantity=line.quantity,
        unit_price=line.unit_price,
        quote_breakdown=None,
    )


def failure_as_dict(failure):
    return {
        'product_reference': failure.line.product_reference,
        'description': failure.line.description,
        'quantity': failure.line.quantity,
        'stage': failure.stage,
        'message': failure.message,
    }


class CheckoutResult:
    SUCCESS = 'success'
    PARTIAL_FAILURE = 'partial_failure'

    def __init__(self, order, failures=()):
        self.order = order
        self.failures = list(failures)

    @property
    def outcome(self):
        return self.PARTIAL_FAILURE if self.failures else self.SUCCESS

    @property
    def is_partial(self):
        return bool(self.failures)

    def failures_as_dicts(self):
        return [failure_as_dict(failure) for failure in self.failures]

    def __repr__(self):
        return f"CheckoutResult({self.outcome}, order={self.order.pk}, failures={len(self.failures)})"


class OrderWriter:
    def __init__(self, owner, store=None, request=None):
        self.owner = owner
        self.store = store or RecordStore()
        self.request = request

    # Public entry points

    def checkout(self, lines, source=Order.SOURCE_MANUAL, customer_name=None, customer_id=None):
        """
        Persist cart lines as a new order.

        POS sales are written as completed and consume stock; manual orders
        are written as pending and leave stock alone.
        """
        items = [item_from_cart_line(line) for line in lines]
        is_sale = source == Order.SOURCE_POS
        self._check_preconditions(items)
        customer, customer_name = self._resolve_customer(customer_name, customer_id)

        order = self._insert_order(
            total=self._total(items),
            status=Order.STATUS_COMPLETED if is_sale else Order.STATUS_PENDING,
            source=source,
            customer=customer,
            customer_name=customer_name,
        )
        persisted, failures = self._insert_items(order, items, decrement_stock=is_sale)
        return self._finish(
            order, items, persisted, failures,
            action='pos_checkout' if is_sale else 'order_create',
        )

    def convert_quote(self, builder, customer_name=None, customer_id=None, required_categories=()):
        """Persist a complete quote as a pending order with one custom-cake item"""
        builder.validate_for_commit(required_categories)
        breakdown = builder.breakdown()
        labels = ', '.join(entry['label'] for entry in breakdown[:2])
        total = builder.total()
        item = ItemSpec(
            product_id=None,
            product_reference=settings.BAKERY['CUSTOM_CAKE_REFERENCE'],
            description=f'Custom cake ({labels})',
            quantity=1,
            unit_price=total,
            quote_breakdown=breakdown,
        )
        self._check_preconditions([item])
        customer, customer_name = self._resolve_customer(customer_name, customer_id)

        order = self._insert_order(
            total=total,
            status=Order.STATUS_PENDING,
            source=Order.SOURCE_QUOTE,
            customer=customer,
            customer_name=customer_name or settings.BAKERY['DEFAULT_QUOTE_CUSTOMER'],
        )
        persisted, failures = self._insert_items(order, [item], decrement_stock=False)
        return self._finish(order, [item], persisted, failures, action='quote_convert')

    def edit_order(self, order, lines, customer_name=None, customer_id=None, status=None):
        """
        Replace an existing order's items with ``lines`` and recompute its
        total. The order row is kept even if some items cannot be rewritten.

        Items are replaced first and the order row is written last, so the
        stored total only changes once the new items are in place. If the old
        items cannot be removed, or none of the new ones can be written, the
        previous items are put back and OrderUpdateError is raised.
        """
        items = [item_from_cart_line(line) for line in lines]
        self._check_preconditions(items)
        if status is not None and status not in dict(Order.STATUS_CHOICES):
            raise ValidationError(f'Invalid status: {status}', status=status)
        if customer_name is None and customer_id is None:
            customer, customer_name = order.customer, order.customer_name
        else:
            customer, customer_name = self._resolve_customer(customer_name, customer_id)

        total = self._total(items)
        changes = {'total_amount': [str(order.total_amount), str(total)]}
        if status is not None and status != order.status:
            changes['status'] = [order.status, status]

        previous = self.store.query(OrderItem, order_id=order.pk)
        try:
            self.store.delete(OrderItem, order_id=order.pk)
        except RecordStoreError as e:
            logger.error("Order %s: old items could not be removed: %s", order.pk, e)
            raise OrderUpdateError(f'The order items could not be replaced: {e}')
        logger.info("Order %s: replacing %s item(s) with %s", order.pk, len(previous), len(items))

        persisted, failures = self._insert_items(order, items, decrement_stock=False)
        if persisted == 0:
            self._restore_items(order, previous)
            raise OrderUpdateError(
                'None of the new items could be saved; the order was left unchanged',
                failures=[failure_as_dict(failure) for failure in failures],
            )

        try:
            self.store.update(
                Order, order.pk,
                customer=customer,
                customer_name=customer_name or '',
                total_amount=total,
                status=status or order.status,
                updated_at=timezone.now(),
            )
        except RecordStoreError as e:
            logger.error("Order %s: row update failed after replacing items: %s", order.pk, e)
            self._restore_items(order, previous)
            raise OrderUpdateError(f'The order could not be updated: {e}')

        order.refresh_from_db()
        create_audit_log(
            request=self.request, user=self.owner, action='order_update',
            instance=order, changes=changes,
        )
        if failures:
            self._log_partial_failure(order, failures)
        return CheckoutResult(order, failures)

    def change_status(self, order, status):
        if status not in dict(Order.STATUS_CHOICES):
            raise ValidationError(f'Invalid status: {status}', status=status)
        previous = order.status
        if previous != status:
            self.store.update(Order, order.pk, status=status, updated_at=timezone.now())
            order.refresh_from_db()
            create_audit_log(
                request=self.request, user=self.owner, action='order_status',
                instance=order, changes={'status': [previous, status]},
            )
        return order

    def change_customer(self, order, customer_name=None, customer_id=None):
        customer, customer_name = self._resolve_customer(customer_name, customer_id)
        self.store.update(
            Order, order.pk,
            customer=customer, customer_name=customer_name, updated_at=timezone.now(),
        )
        order.refresh_from_db()
        return order

    # Steps

    def _total(self, items):
        return sum((item.unit_price * item.quantity for item in items), Decimal('0.00'))

    def _check_preconditions(self, items):
        if self.owner is None or not self.owner.is_authenticated:
            raise ValidationError('You must be signed in to create orders')
        if not items:
            raise ValidationError('Add at least one item before saving the order')
        if self._total(items) <= 0:
            raise ValidationError('Order total must be greater than zero')

    def _resolve_customer(self, customer_name, customer_id):
        customer_name = (customer_name or '').strip()
        if customer_id is None:
            return None, customer_name
        matches = self.store.query(Customer, pk=customer_id, owner=self.owner)
        if not matches:
            raise ValidationError(f'Customer {customer_id} not found', customer=customer_id)
        customer = matches[0]
        return customer, customer_name or customer.name

    def _insert_order(self, total, status, source, customer, customer_name):
        try:
            order = self.store.insert(
                Order,
                owner=self.owner,
                customer=customer,
                customer_name=customer_name or '',
                total_amount=total,
                status=status,
                source=source,
            )
        except RecordStoreError as e:
            logger.error("Order insert failed for user %s: %s", self.owner.pk, e)
            raise OrderCreationError(f'The order could not be created: {e}')
        logger.info("Order %s created (%s, %s, total %s)", order.pk, source, status, total)
        return order

    def _insert_items(self, order, items, decrement_stock):
        persisted = 0
        failures = []
        for item in items:
            try:
                self.store.insert(
                    OrderItem,
                    order=order,
                    product_id=item.product_id,
                    product_reference=item.product_reference,
                    description=item.description,
                    quantity=item.quantity,
                    price_at_order=item.unit_price,
                    quote_breakdown=item.quote_breakdown,
                )
            except RecordStoreError as e:
                logger.warning("Order %s: item %s not saved: %s", order.pk, item.product_reference, e)
                failures.append(LineFailure(item, STAGE_ITEM, str(e)))
                continue
            persisted += 1

            if decrement_stock and item.product_id is not None:
                failure = self._decrement_stock(order, item)
                if failure is not None:
                    failures.append(failure)
        return persisted, failures

    def _decrement_stock(self, order, item):
        try:
            decremented = self.store.decrement(
                Product, item.product_id, 'stock_quantity', item.quantity, owner=self.owner,
            )
        except RecordStoreError as e:
            logger.warning("Order %s: stock update for %s failed: %s", order.pk, item.product_reference, e)
            return LineFailure(item, STAGE_STOCK, str(e))
        if not decremented:
            logger.warning(
                "Order %s: stock for %s not reduced by %s (insufficient or missing)",
                order.pk, item.product_reference, item.quantity,
            )
            return LineFailure(item, STAGE_STOCK, f'Insufficient stock to remove {item.quantity}')
        create_audit_log(
            request=self.request, user=self.owner, action='stock_sale',
            model_name='Product', object_id=item.product_id, object_name=item.description,
            object_reference=f'order:{order.pk}', changes={'quantity': -item.quantity},
        )
        return None

    def _finish(self, order, items, persisted, failures, action):
        if persisted == 0:
            self._compensate(order)
            raise OrderCreationError(
                'None of the order items could be saved; the order was not created',
                failures=[failure_as_dict(failure) for failure in failures],
            )

        create_audit_log(
            request=self.request, user=self.owner, action=action, instance=order,
            changes={'total': str(order.total_amount), 'items': persisted},
        )
        if failures:
            self._log_partial_failure(order, failures)
        else:
            logger.info("Order %s committed with %s item(s)", order.pk, len(items))
        return CheckoutResult(order, failures)

    def _compensate(self, order):
        try:
            self.store.delete(Order, pk=order.pk)
            logger.warning("Order %s removed: no items could be saved", order.pk)
        except RecordStoreError as e:
            logger.error("Order %s could not be removed after item failures: %s", order.pk, e)

    def _restore_items(self, order, previous):
        """Put an order's earlier items back after a failed edit"""
        try:
            self.store.delete(OrderItem, order_id=order.pk)
            for item in previous:
                self.store.insert(
                    OrderItem,
                    order=order,
                    product_id=item.product_id,
                    product_reference=item.product_reference,
                    description=item.description,
                    quantity=item.quantity,
                    price_at_order=item.price_at_order,
                    quote_breakdown=item.quote_breakdown,
                )
        except RecordStoreError as e:
            logger.error("Order %s: previous items could not be restored: %s", order.pk, e)
            return
        logger.warning("Order %s: edit abandoned, %s previous item(s) restored", order.pk, len(previous))

    def _log_partial_failure(self, order, failures):
        logger.warning("Order %s saved with %s failed step(s)", order.pk, len(failures))
        create_audit_log(
            request=self.request, user=self.owner, action='partial_failure', instance=order,
            changes={'failures': [failure_as_dict(failure) for failure in failures]},
        )
