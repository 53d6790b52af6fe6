"""
Test suite for the cake quoter
Tests: quote builder, option catalogue, required-category rules, preview, conversion to order, seed command
"""
from decimal import Decimal
from unittest import mock

from django.conf import settings
from django.core.management import call_command
from django.test import TestCase
from rest_framework import status

from bakery.core.exceptions import ValidationError, DuplicateSelectionError, RecordStoreError
from bakery.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from bakery.orders.models import Order, OrderItem
from bakery.orders.store import RecordStore
from bakery.quoting.engine import QuoteBuilder
from bakery.quoting.models import QuoteOption, QuoteCategoryRule


class QuoteBuilderTests(TestCase):
    """Test the in-memory quote builder"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        option = TestDataFactory.create_quote_option
        self.small = option(self.user, 'size', 'Small', '20.00')
        self.large = option(self.user, 'size', 'Large', '50.00')
        self.chocolate = option(self.user, 'flavor', 'Chocolate', '5.00')
        self.cream = option(self.user, 'filling', 'Cream', '3.00')
        self.fruit = option(self.user, 'filling', 'Fruit', '7.00')
        self.fondant = option(self.user, 'decoration', 'Fondant figures', '15.00')
        self.covering = option(self.user, 'covering', 'Ganache', '9.00')
        self.builder = QuoteBuilder(owner_id=self.user.pk)

    def test_basic_quote_total(self):
        self.builder.set_option('size', self.small)
        self.builder.set_option('flavor', self.chocolate)
        self.builder.add_option('filling', self.cream)
        self.assertEqual(self.builder.total(), Decimal('28.00'))

    def test_set_option_replaces(self):
        self.builder.set_option('size', self.small)
        self.builder.set_option('size', self.large)
        self.assertEqual([line['label'] for line in self.builder.breakdown()], ['Large'])

    def test_breakdown_order_is_fixed(self):
        self.builder.add_option('decoration', self.fondant)
        self.builder.add_option('filling', self.fruit)
        self.builder.add_option('covering', self.covering)
        self.builder.set_option('flavor', self.chocolate)
        self.builder.set_option('size', self.small)
        self.assertEqual(
            [line['category'] for line in self.builder.breakdown()],
            ['size', 'flavor', 'filling', 'covering', 'decoration'],
        )

    def test_duplicate_selection_rejected(self):
        self.builder.add_option('filling', self.cream)
        with self.assertRaises(DuplicateSelectionError):
            self.builder.add_option('filling', self.cream)
        self.assertEqual(len(self.builder.selections('filling')), 1)

    def test_remove_option(self):
        self.builder.add_option('filling', self.cream)
        self.builder.add_option('filling', self.fruit)
        self.builder.remove_option('filling', self.cream.pk)
        self.builder.remove_option('filling', 999999)
        self.assertEqual([line.display_name for line in self.builder.selections('filling')], ['Fruit'])

    def test_wrong_category_rejected(self):
        with self.assertRaises(ValidationError):
            self.builder.set_option('size', self.chocolate)
        with self.assertRaises(ValidationError):
            self.builder.add_option('size', self.small)

    def test_other_owners_option_rejected(self):
        foreign = TestDataFactory.create_quote_option(TestDataFactory.create_user(), 'size', 'Small', '1.00')
        with self.assertRaises(ValidationError):
            self.builder.set_option('size', foreign)

    def test_validate_for_commit(self):
        self.builder.set_option('size', self.small)
        with self.assertRaises(ValidationError) as ctx:
            self.builder.validate_for_commit()
        self.assertEqual(ctx.exception.details['missing'], ['flavor'])

        self.builder.set_option('flavor', self.chocolate)
        self.builder.validate_for_commit()
        with self.assertRaises(ValidationError):
            self.builder.validate_for_commit({'filling'})


class QuoteApiTests(TestCase):
    """Test quoter endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        option = TestDataFactory.create_quote_option
        self.small = option(self.user, 'size', 'Small', '20.00')
        self.chocolate = option(self.user, 'flavor', 'Chocolate', '5.00')
        self.cream = option(self.user, 'filling', 'Cream', '3.00')

    def selection(self, **extra):
        data = {'size': self.small.pk, 'flavor': self.chocolate.pk, 'fillings': [self.cream.pk]}
        data.update(extra)
        return data

    def test_option_list_by_category(self):
        response = self.client.get('/api/v1/quote-options/?category=size')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data], ['Small'])

    def test_option_duplicate_name_rejected(self):
        response = self.client.post('/api/v1/quote-options/', {'category': 'size', 'name': 'small', 'price': '1.00'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_rules_default_and_update(self):
        response = self.client.get('/api/v1/quote-rules/')
        rules = {row['category']: row['is_required'] for row in response.data}
        self.assertTrue(rules['size'])
        # The owner has filling options, so a filling is required until switched off
        self.assertTrue(rules['filling'])
        self.assertFalse(rules['covering'])

        response = self.client.put('/api/v1/quote-rules/', [{'category': 'filling', 'is_required': False}], format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(QuoteCategoryRule.objects.get(owner=self.user, category='filling').is_required)
        rules = {row['category']: row['is_required'] for row in response.data}
        self.assertFalse(rules['filling'])

    def test_filling_optional_without_filling_options(self):
        self.cream.delete()
        response = self.client.get('/api/v1/quote-rules/')
        rules = {row['category']: row['is_required'] for row in response.data}
        self.assertFalse(rules['filling'])

        response = self.client.post('/api/v1/quotes/convert/', self.selection(fillings=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_size_cannot_be_made_optional(self):
        response = self.client.put('/api/v1/quote-rules/', [{'category': 'size', 'is_required': False}], format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_preview(self):
        response = self.client.post('/api/v1/quotes/preview/', {'size': self.small.pk}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['ready'])
        self.assertEqual(response.data['missing_categories'], ['flavor', 'filling'])

        response = self.client.post('/api/v1/quotes/preview/', self.selection(), format='json')
        self.assertEqual(response.data['total'], '28.00')
        self.assertTrue(response.data['ready'])

    def test_preview_duplicate_selection_is_400(self):
        response = self.client.post(
            '/api/v1/quotes/preview/',
            self.selection(fillings=[self.cream.pk, self.cream.pk]),
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Duplicate selection')

    def test_preview_foreign_option_is_400(self):
        foreign = TestDataFactory.create_quote_option(TestDataFactory.create_user(), 'size', 'Big', '1.00')
        response = self.client.post('/api/v1/quotes/preview/', self.selection(size=foreign.pk), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_convert_creates_pending_order(self):
        response = self.client.post('/api/v1/quotes/convert/', self.selection(customer_name='Ana'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order = Order.objects.get(pk=response.data['id'])
        self.assertEqual(order.status, 'pending')
        self.assertEqual(order.source, 'quote')
        self.assertEqual(order.total_amount, Decimal('28.00'))
        item = order.items.get()
        self.assertEqual(item.quantity, 1)
        self.assertEqual(item.price_at_order, Decimal('28.00'))
        self.assertEqual(item.product_reference, settings.BAKERY['CUSTOM_CAKE_REFERENCE'])
        self.assertEqual([entry['label'] for entry in item.quote_breakdown], ['Small', 'Chocolate', 'Cream'])

    def test_convert_defaults_customer_name(self):
        response = self.client.post('/api/v1/quotes/convert/', self.selection(), format='json')
        self.assertEqual(response.data['customer_name'], settings.BAKERY['DEFAULT_QUOTE_CUSTOMER'])

    def test_convert_respects_required_category(self):
        QuoteCategoryRule.objects.create(owner=self.user, category='covering', is_required=True)
        response = self.client.post('/api/v1/quotes/convert/', self.selection(), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

    def test_convert_requires_filling_when_options_exist(self):
        response = self.client.post('/api/v1/quotes/convert/', self.selection(fillings=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Order.objects.count(), 0)

        QuoteCategoryRule.objects.create(owner=self.user, category='filling', is_required=False)
        response = self.client.post('/api/v1/quotes/convert/', self.selection(fillings=[]), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_convert_item_failure_removes_order(self):
        original_insert = RecordStore.insert

        def failing_insert(store, model, **values):
            if model is OrderItem:
                raise RecordStoreError('insert failed')
            return original_insert(store, model, **values)

        with mock.patch.object(RecordStore, 'insert', autospec=True, side_effect=failing_insert):
            response = self.client.post('/api/v1/quotes/convert/', self.selection(), format='json')
        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(Order.objects.count(), 0)


class SeedQuoteOptionsCommandTests(TestCase):
    """Test the seed_quote_options management command"""

    def test_seed_is_idempotent(self):
        user = TestDataFactory.create_user(username='owner')
        call_command('seed_quote_options', 'owner')
        count = QuoteOption.objects.filter(owner=user).count()
        self.assertGreater(count, 0)
        call_command('seed_quote_options', 'owner')
        self.assertEqual(QuoteOption.objects.filter(owner=user).count(), count)
        self.assertEqual(QuoteOption.objects.get(owner=user, category='size', name='Small').price, Decimal('20.00'))

    def test_clear_removes_custom_options(self):
        user = TestDataFactory.create_user(username='owner')
        TestDataFactory.create_quote_option(user, 'special', 'Sparklers', '2.00')
        call_command('seed_quote_options', 'owner', '--clear')
        self.assertFalse(QuoteOption.objects.filter(owner=user, name='Sparklers').exists())
