"""
Test suite for the catalog
Tests: product CRUD and filters, owner scoping, ingredients, critical ingredients, catalog reader
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from bakery.catalog.models import Product
from bakery.catalog.reader import get_product_snapshot, get_product_snapshots, list_available_products
from bakery.core.exceptions import ValidationError
from bakery.core.models import AuditLog
from bakery.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ProductTests(TestCase):
    """Test product endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_product(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Concha',
            'unit_price': '12.50',
            'stock_quantity': 30,
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        product = Product.objects.get(pk=response.data['id'])
        self.assertEqual(product.owner, self.user)
        self.assertEqual(product.unit_price, Decimal('12.50'))

    def test_negative_price_rejected(self):
        response = self.client.post('/api/v1/products/', {'name': 'Bad', 'unit_price': '-1.00', 'stock_quantity': 1})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_is_owner_scoped(self):
        TestDataFactory.create_product(self.user, name='Mine')
        TestDataFactory.create_product(TestDataFactory.create_user(), name='Theirs')
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data], ['Mine'])

    def test_other_owners_product_is_404(self):
        other = TestDataFactory.create_product(TestDataFactory.create_user())
        response = self.client.get(f'/api/v1/products/{other.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.delete(f'/api/v1/products/{other.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Product.objects.filter(pk=other.pk).exists())

    def test_filters(self):
        TestDataFactory.create_product(self.user, name='Bolillo', unit_price='3.00', stock_quantity=0)
        TestDataFactory.create_product(self.user, name='Pastel', unit_price='250.00', stock_quantity=2)
        response = self.client.get('/api/v1/products/?in_stock=true')
        self.assertEqual([row['name'] for row in response.data], ['Pastel'])
        response = self.client.get('/api/v1/products/?max_price=10')
        self.assertEqual([row['name'] for row in response.data], ['Bolillo'])
        response = self.client.get('/api/v1/products/?search=past')
        self.assertEqual([row['name'] for row in response.data], ['Pastel'])

    def test_invalid_price_filter_is_400(self):
        response = self.client.get('/api/v1/products/?min_price=cheap')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('min_price', response.data)

    def test_price_change_is_audited(self):
        product = TestDataFactory.create_product(self.user, unit_price='10.00')
        response = self.client.patch(f'/api/v1/products/{product.pk}/', {'unit_price': '11.00'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(action='update', object_id=str(product.pk))
        self.assertEqual(log.changes['unit_price'], ['10.00', '11.00'])


class IngredientTests(TestCase):
    """Test ingredient endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_ingredient(self):
        response = self.client.post('/api/v1/ingredients/', {
            'name': 'Flour', 'unit': 'kg', 'stock': '25.000', 'min_stock_level': '5.000',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['is_critical'])

    def test_critical_ingredients(self):
        TestDataFactory.create_ingredient(self.user, name='Sugar', stock='1.000', min_stock_level='2.000')
        TestDataFactory.create_ingredient(self.user, name='Eggs', stock='2.000', min_stock_level='2.000')
        TestDataFactory.create_ingredient(self.user, name='Flour', stock='9.000', min_stock_level='2.000')
        TestDataFactory.create_ingredient(TestDataFactory.create_user(), name='Butter', stock='0', min_stock_level='1')
        response = self.client.get('/api/v1/ingredients/critical/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual([row['name'] for row in response.data['ingredients']], ['Sugar', 'Eggs'])


class CatalogReaderTests(TestCase):
    """Test the read-only product snapshots"""

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_snapshot_reflects_current_row(self):
        product = TestDataFactory.create_product(self.user, unit_price='20.00', stock_quantity=5)
        snapshot = get_product_snapshot(self.user, product.pk)
        self.assertEqual((snapshot.unit_price, snapshot.stock_quantity), (Decimal('20.00'), 5))
        Product.objects.filter(pk=product.pk).update(stock_quantity=3)
        self.assertEqual(get_product_snapshot(self.user, product.pk).stock_quantity, 3)
        # An earlier snapshot is not refreshed
        self.assertEqual(snapshot.stock_quantity, 5)

    def test_foreign_product_not_found(self):
        product = TestDataFactory.create_product(TestDataFactory.create_user())
        with self.assertRaises(ValidationError):
            get_product_snapshot(self.user, product.pk)

    def test_snapshots_require_every_id(self):
        product = TestDataFactory.create_product(self.user)
        with self.assertRaises(ValidationError):
            get_product_snapshots(self.user, [product.pk, 999999])

    def test_available_products_exclude_empty_stock(self):
        TestDataFactory.create_product(self.user, name='Sold out', stock_quantity=0)
        TestDataFactory.create_product(self.user, name='Available', stock_quantity=1)
        self.assertEqual([p.name for p in list_available_products(self.user)], ['Available'])
