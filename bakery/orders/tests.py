"""
Test suite for orders and the POS
Tests: cart, record store, order writer (success, partial failure, compensation), order and POS endpoints
"""
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from rest_framework import status

from bakery.catalog.models import Product
from bakery.catalog.reader import ProductSnapshot
from bakery.core.exceptions import (
    ValidationError, StockExceededError, OrderCreationError, OrderUpdateError, RecordStoreError,
)
from bakery.core.models import AuditLog
from bakery.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from bakery.orders.cart import Cart
from bakery.orders.models import Order, OrderItem
from bakery.orders.store import RecordStore
from bakery.orders.writer import OrderWriter, CheckoutResult


def snapshot(pk, name='Cake', price='10.00', stock=10):
    return ProductSnapshot(id=pk, name=name, unit_price=Decimal(price), stock_quantity=stock)


def fail_nth_item_insert(n):
    """Patch RecordStore.insert so the n-th OrderItem insert raises"""
    original_insert = RecordStore.insert
    calls = {'items': 0}

    def insert(store, model, **values):
        if model is OrderItem:
            calls['items'] += 1
            if calls['items'] == n:
                raise RecordStoreError('simulated item failure')
        return original_insert(store, model, **values)

    return mock.patch.object(RecordStore, 'insert', autospec=True, side_effect=insert)


def fail_item_inserts_for(description):
    """Patch RecordStore.insert so every OrderItem insert for ``description`` raises"""
    original_insert = RecordStore.insert

    def insert(store, model, **values):
        if model is OrderItem and values.get('description') == description:
            raise RecordStoreError('simulated item failure')
        return original_insert(store, model, **values)

    return mock.patch.object(RecordStore, 'insert', autospec=True, side_effect=insert)


def fail_item_delete():
    """Patch RecordStore.delete so removing OrderItem rows raises"""
    original_delete = RecordStore.delete

    def delete(store, model, **filters):
        if model is OrderItem:
            raise RecordStoreError('simulated delete failure')
        return original_delete(store, model, **filters)

    return mock.patch.object(RecordStore, 'delete', autospec=True, side_effect=delete)


class CartTests(TestCase):
    """Test the in-memory cart"""

    def test_total_is_price_times_quantity(self):
        cart = Cart()
        cart.add(snapshot(1, price='20.00'), 2)
        cart.add(snapshot(2, price='3.50'), 3)
        self.assertEqual(cart.total(), Decimal('50.50'))
        cart.remove(1)
        self.assertEqual(cart.total(), Decimal('10.50'))

    def test_same_product_merges(self):
        cart = Cart()
        cart.add(snapshot(1, stock=5), 2)
        cart.add(snapshot(1, stock=5), 3)
        self.assertEqual(len(cart), 1)
        self.assertEqual(cart.lines[0].quantity, 5)

    def test_merge_beyond_stock_leaves_cart_unchanged(self):
        cart = Cart()
        cart.add(snapshot(1, stock=5), 4)
        with self.assertRaises(StockExceededError) as ctx:
            cart.add(snapshot(1, stock=5), 2)
        self.assertEqual(ctx.exception.shortfall, 1)
        self.assertEqual(cart.lines[0].quantity, 4)

    def test_first_add_beyond_stock(self):
        cart = Cart()
        with self.assertRaises(StockExceededError):
            cart.add(snapshot(1, stock=1), 2)
        self.assertTrue(cart.is_empty())

    def test_price_frozen_at_first_add(self):
        cart = Cart()
        cart.add(snapshot(1, price='10.00'), 1)
        cart.add(snapshot(1, price='99.00'), 1)
        self.assertEqual(cart.lines[0].unit_price, Decimal('10.00'))

    def test_invalid_quantity_and_product(self):
        cart = Cart()
        for quantity in (0, -1, 1.5, True):
            with self.assertRaises(ValidationError):
                cart.add(snapshot(1), quantity)
        with self.assertRaises(ValidationError):
            cart.add(None, 1)

    def test_remove_missing_is_noop(self):
        cart = Cart()
        cart.add(snapshot(1), 1)
        cart.remove(42)
        self.assertEqual(len(cart), 1)

    def test_clear(self):
        cart = Cart()
        cart.add(snapshot(1), 1)
        cart.clear()
        self.assertTrue(cart.is_empty())
        self.assertEqual(cart.total(), Decimal('0.00'))

    def test_stock_not_enforced_when_disabled(self):
        cart = Cart(enforce_stock=False)
        cart.add(snapshot(1, stock=0), 3)
        self.assertEqual(cart.lines[0].quantity, 3)


class RecordStoreTests(TestCase):
    """Test the single-record store"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.store = RecordStore()

    def test_decrement_refuses_to_go_negative(self):
        product = TestDataFactory.create_product(self.user, stock_quantity=3)
        self.assertTrue(self.store.decrement(Product, product.pk, 'stock_quantity', 2, owner=self.user))
        self.assertFalse(self.store.decrement(Product, product.pk, 'stock_quantity', 2, owner=self.user))
        product.refresh_from_db()
        self.assertEqual(product.stock_quantity, 1)

    def test_decrement_is_owner_scoped(self):
        product = TestDataFactory.create_product(self.user, stock_quantity=3)
        other = TestDataFactory.create_user()
        self.assertFalse(self.store.decrement(Product, product.pk, 'stock_quantity', 1, owner=other))

    def test_database_error_is_wrapped(self):
        with self.assertRaises(RecordStoreError):
            self.store.insert(Order, owner=self.user, total_amount=Decimal('-1.00'))


class OrderWriterTests(TestCase):
    """Test the multi-step order commit"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.writer = OrderWriter(self.user)
        self.cake = TestDataFactory.create_product(self.user, name='Cake A', unit_price='20.00', stock_quantity=5)
        self.bread = TestDataFactory.create_product(self.user, name='Bread', unit_price='2.00', stock_quantity=50)
        self.pie = TestDataFactory.create_product(self.user, name='Pie', unit_price='8.00', stock_quantity=4)

    def cart_of(self, *pairs, enforce_stock=True):
        cart = Cart(enforce_stock=enforce_stock)
        for product, quantity in pairs:
            cart.add(snapshot(product.pk, product.name, str(product.unit_price), product.stock_quantity), quantity)
        return cart

    def test_empty_checkout_writes_nothing(self):
        with self.assertRaises(ValidationError):
            self.writer.checkout([], source=Order.SOURCE_POS)
        self.assertEqual(Order.objects.count(), 0)
        self.assertEqual(OrderItem.objects.count(), 0)

    def test_pos_sale(self):
        cart = self.cart_of((self.cake, 2))
        result = self.writer.checkout(cart.lines, source=Order.SOURCE_POS)
        self.assertEqual(result.outcome, CheckoutResult.SUCCESS)
        order = result.order
        self.assertEqual(order.total_amount, Decimal('40.00'))
        self.assertEqual(order.status, 'completed')
        item = order.items.get()
        self.assertEqual((item.quantity, item.price_at_order), (2, Decimal('20.00')))
        self.cake.refresh_from_db()
        self.assertEqual(self.cake.stock_quantity, 3)
        self.assertTrue(AuditLog.objects.filter(action='pos_checkout', object_id=str(order.pk)).exists())

    def test_manual_order_is_pending_and_keeps_stock(self):
        cart = self.cart_of((self.cake, 2), enforce_stock=False)
        result = self.writer.checkout(cart.lines, source=Order.SOURCE_MANUAL)
        self.assertEqual(result.order.status, 'pending')
        self.cake.refresh_from_db()
        self.assertEqual(self.cake.stock_quantity, 5)

    def test_total_uses_snapshot_prices(self):
        cart = self.cart_of((self.cake, 1), (self.bread, 3))
        Product.objects.filter(pk=self.cake.pk).update(unit_price=Decimal('99.00'))
        result = self.writer.checkout(cart.lines, source=Order.SOURCE_POS)
        self.assertEqual(result.order.total_amount, Decimal('26.00'))
        self.assertEqual(result.order.items.get(product=self.cake).price_at_order, Decimal('20.00'))

    def test_second_of_three_items_fails(self):
        cart = self.cart_of((self.cake, 1), (self.bread, 2), (self.pie, 1))
        with fail_nth_item_insert(2):
            result = self.writer.checkout(cart.lines, source=Order.SOURCE_POS)

        self.assertTrue(result.is_partial)
        self.assertEqual(result.outcome, CheckoutResult.PARTIAL_FAILURE)
        self.assertEqual(len(result.failures), 1)
        failure = result.failures[0]
        self.assertEqual((failure.line.description, failure.stage), ('Bread', 'item'))

        order = Order.objects.get(pk=result.order.pk)
        self.assertEqual(order.total_amount, Decimal('32.00'))
        self.assertEqual(
            sorted(order.items.values_list('description', flat=True)),
            ['Cake A', 'Pie'],
        )
        self.bread.refresh_from_db()
        self.assertEqual(self.bread.stock_quantity, 50)
        self.assertTrue(AuditLog.objects.filter(action='partial_failure').exists())

    def test_all_items_fail_removes_order(self):
        cart = self.cart_of((self.cake, 1))
        with fail_nth_item_insert(1):
            with self.assertRaises(OrderCreationError):
                self.writer.checkout(cart.lines, source=Order.SOURCE_POS)
        self.assertEqual(Order.objects.count(), 0)

    def test_order_insert_failure(self):
        cart = self.cart_of((self.cake, 1))
        with mock.patch.object(RecordStore, 'insert', side_effect=RecordStoreError('down')):
            with self.assertRaises(OrderCreationError):
                self.writer.checkout(cart.lines, source=Order.SOURCE_POS)
        self.assertEqual(Order.objects.count(), 0)

    def test_stock_shortfall_at_commit_is_reported(self):
        cart = self.cart_of((self.cake, 2))
        # Stock sold elsewhere between cart and checkout
        Product.objects.filter(pk=self.cake.pk).update(stock_quantity=1)
        result = self.writer.checkout(cart.lines, source=Order.SOURCE_POS)
        self.assertTrue(result.is_partial)
        self.assertEqual(result.failures[0].stage, 'stock')
        self.assertEqual(result.order.items.count(), 1)
        self.cake.refresh_from_db()
        self.assertEqual(self.cake.stock_quantity, 1)

    def test_unknown_customer_rejected_before_writes(self):
        cart = self.cart_of((self.cake, 1))
        foreign = TestDataFactory.create_customer(TestDataFactory.create_user())
        with self.assertRaises(ValidationError):
            self.writer.checkout(cart.lines, source=Order.SOURCE_POS, customer_id=foreign.pk)
        self.assertEqual(Order.objects.count(), 0)

    def test_customer_name_from_customer(self):
        customer = TestDataFactory.create_customer(self.user, name='Ana')
        cart = self.cart_of((self.cake, 1))
        result = self.writer.checkout(cart.lines, source=Order.SOURCE_POS, customer_id=customer.pk)
        self.assertEqual((result.order.customer, result.order.customer_name), (customer, 'Ana'))

    def test_edit_replaces_items(self):
        cart = self.cart_of((self.cake, 1), (self.bread, 1), enforce_stock=False)
        order = self.writer.checkout(cart.lines).order

        new_cart = self.cart_of((self.pie, 3), enforce_stock=False)
        result = self.writer.edit_order(order, new_cart.lines, status='completed')
        self.assertFalse(result.is_partial)
        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal('24.00'))
        self.assertEqual(order.status, 'completed')
        self.assertEqual(list(order.items.values_list('description', 'quantity')), [('Pie', 3)])

    def pending_cake_order(self):
        cart = self.cart_of((self.cake, 1), enforce_stock=False)
        return self.writer.checkout(cart.lines).order

    def test_edit_keeps_order_when_old_items_cannot_be_removed(self):
        order = self.pending_cake_order()
        new_cart = self.cart_of((self.pie, 3), enforce_stock=False)
        with fail_item_delete():
            with self.assertRaises(OrderUpdateError):
                self.writer.edit_order(order, new_cart.lines)

        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal('20.00'))
        self.assertEqual(list(order.items.values_list('description', 'quantity')), [('Cake A', 1)])

    def test_edit_with_no_new_items_saved_restores_previous(self):
        order = self.pending_cake_order()
        new_cart = self.cart_of((self.pie, 3), enforce_stock=False)
        with fail_item_inserts_for('Pie'):
            with self.assertRaises(OrderUpdateError) as ctx:
                self.writer.edit_order(order, new_cart.lines, status='completed')
        self.assertEqual(ctx.exception.details['failures'][0]['description'], 'Pie')

        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal('20.00'))
        self.assertEqual(order.status, 'pending')
        self.assertEqual(list(order.items.values_list('description', 'price_at_order')), [('Cake A', Decimal('20.00'))])

    def test_edit_partial_failure(self):
        order = self.pending_cake_order()
        new_cart = self.cart_of((self.pie, 1), (self.bread, 2), enforce_stock=False)
        with fail_item_inserts_for('Bread'):
            result = self.writer.edit_order(order, new_cart.lines)

        self.assertTrue(result.is_partial)
        self.assertEqual([(f.line.description, f.stage) for f in result.failures], [('Bread', 'item')])
        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal('12.00'))
        self.assertEqual(list(order.items.values_list('description', flat=True)), ['Pie'])

    def test_edit_row_failure_restores_previous_items(self):
        order = self.pending_cake_order()
        new_cart = self.cart_of((self.pie, 3), enforce_stock=False)
        with mock.patch.object(RecordStore, 'update', side_effect=RecordStoreError('down')):
            with self.assertRaises(OrderUpdateError):
                self.writer.edit_order(order, new_cart.lines)

        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal('20.00'))
        self.assertEqual(list(order.items.values_list('description', flat=True)), ['Cake A'])

    def test_change_status(self):
        order = TestDataFactory.create_order(self.user, status='pending')
        self.writer.change_status(order, 'cancelled')
        self.assertEqual(Order.objects.get(pk=order.pk).status, 'cancelled')
        with self.assertRaises(ValidationError):
            self.writer.change_status(order, 'shipped')


class OrderApiTests(TestCase):
    """Test order endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.cake = TestDataFactory.create_product(self.user, name='Cake A', unit_price='20.00', stock_quantity=5)

    def test_create_manual_order(self):
        response = self.client.post('/api/v1/orders/', {
            'customer_name': 'Ana',
            'lines': [{'product': self.cake.pk, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['total_amount'], '40.00')
        self.assertEqual(response.data['item_count'], 1)

    def test_create_with_no_lines_is_400(self):
        response = self.client.post('/api/v1/orders/', {'lines': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_list_filters_and_scoping(self):
        TestDataFactory.create_order(self.user, status='completed')
        TestDataFactory.create_order(self.user, status='pending')
        TestDataFactory.create_order(TestDataFactory.create_user(), status='completed')
        response = self.client.get('/api/v1/orders/?status=completed')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)

    def test_other_owners_order_is_404(self):
        order = TestDataFactory.create_order(TestDataFactory.create_user())
        self.assertEqual(self.client.get(f'/api/v1/orders/{order.pk}/').status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(
            self.client.patch(f'/api/v1/orders/{order.pk}/', {'status': 'cancelled'}, format='json').status_code,
            status.HTTP_404_NOT_FOUND,
        )

    def test_patch_status_leaves_items(self):
        order = TestDataFactory.create_order(self.user, status='pending', product=self.cake, total_amount='20.00')
        response = self.client.patch(f'/api/v1/orders/{order.pk}/', {'status': 'completed'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['total_amount'], '20.00')
        self.assertEqual(response.data['item_count'], 1)

    def test_put_replaces_items(self):
        order = TestDataFactory.create_order(self.user, status='pending', product=self.cake, total_amount='20.00')
        bread = TestDataFactory.create_product(self.user, name='Bread', unit_price='2.50')
        response = self.client.put(f'/api/v1/orders/{order.pk}/', {
            'lines': [{'product': bread.pk, 'quantity': 4}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_amount'], '10.00')
        self.assertEqual([item['description'] for item in response.data['items']], ['Bread'])

    def test_put_with_no_items_saved_is_500_and_order_unchanged(self):
        order = TestDataFactory.create_order(self.user, status='pending', product=self.cake, total_amount='20.00')
        bread = TestDataFactory.create_product(self.user, name='Bread', unit_price='2.50')
        with fail_item_inserts_for('Bread'):
            response = self.client.put(f'/api/v1/orders/{order.pk}/', {
                'lines': [{'product': bread.pk, 'quantity': 4}],
            }, format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Order could not be updated')
        order.refresh_from_db()
        self.assertEqual(order.total_amount, Decimal('20.00'))
        self.assertEqual(order.items.get().product, self.cake)

    def test_delete_order(self):
        order = TestDataFactory.create_order(self.user)
        response = self.client.delete(f'/api/v1/orders/{order.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(OrderItem.objects.filter(order_id=order.pk).exists())


class POSApiTests(TestCase):
    """Test POS endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.cake = TestDataFactory.create_product(self.user, name='Cake A', unit_price='20.00', stock_quantity=5)
        self.bread = TestDataFactory.create_product(self.user, name='Bread', unit_price='2.00', stock_quantity=10)
        self.pie = TestDataFactory.create_product(self.user, name='Pie', unit_price='8.00', stock_quantity=3)

    def test_products_with_stock(self):
        TestDataFactory.create_product(self.user, name='Sold out', stock_quantity=0)
        response = self.client.get('/api/v1/pos/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertNotIn('Sold out', [row['name'] for row in response.data])

    def test_cart_preview_merges_lines(self):
        response = self.client.post('/api/v1/pos/cart/preview/', {'lines': [
            {'product': self.cake.pk, 'quantity': 1},
            {'product': self.cake.pk, 'quantity': 2},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['lines']), 1)
        self.assertEqual(response.data['total'], '60.00')

    def test_cart_preview_stock_error(self):
        response = self.client.post('/api/v1/pos/cart/preview/', {'lines': [
            {'product': self.cake.pk, 'quantity': 6},
        ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['shortfall'], 1)

    def test_checkout(self):
        response = self.client.post('/api/v1/pos/checkout/', {
            'lines': [{'product': self.cake.pk, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_amount'], '40.00')
        self.assertEqual(response.data['status'], 'completed')
        self.assertEqual(response.data['source'], 'pos')
        self.cake.refresh_from_db()
        self.assertEqual(self.cake.stock_quantity, 3)

    def test_checkout_empty_cart(self):
        response = self.client.post('/api/v1/pos/checkout/', {'lines': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_checkout_foreign_product(self):
        foreign = TestDataFactory.create_product(TestDataFactory.create_user())
        response = self.client.post('/api/v1/pos/checkout/', {
            'lines': [{'product': foreign.pk, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_checkout_partial_failure_is_207(self):
        with fail_nth_item_insert(2):
            response = self.client.post('/api/v1/pos/checkout/', {'lines': [
                {'product': self.cake.pk, 'quantity': 1},
                {'product': self.bread.pk, 'quantity': 1},
                {'product': self.pie.pk, 'quantity': 1},
            ]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_207_MULTI_STATUS)
        self.assertEqual(response.data['outcome'], 'partial_failure')
        self.assertEqual([f['description'] for f in response.data['failures']], ['Bread'])
        self.assertEqual(len(response.data['order']['items']), 2)
