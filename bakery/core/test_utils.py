"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from bakery.catalog.models import Product, Ingredient
from bakery.parties.models import Customer
from bakery.quoting.models import QuoteOption
from bakery.orders.models import Order, OrderItem
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', role='staff',
                    is_approved=True, is_superuser=False):
        """Create a test user (approved staff by default)"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            role=role,
            is_approved=is_approved,
            is_superuser=is_superuser,
        )

    @staticmethod
    def create_admin(username=None):
        """Create an approved admin"""
        return TestDataFactory.create_user(username=username, role='admin')

    @staticmethod
    def create_product(owner, name=None, unit_price='10.00', stock_quantity=10):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        return Product.objects.create(
            owner=owner,
            name=name,
            unit_price=Decimal(str(unit_price)),
            stock_quantity=stock_quantity,
        )

    @staticmethod
    def create_ingredient(owner, name=None, unit='kg', stock='5.000', min_stock_level='1.000'):
        """Create a test ingredient"""
        if not name:
            name = f'Ingredient_{TestDataFactory.random_string(6)}'
        return Ingredient.objects.create(
            owner=owner,
            name=name,
            unit=unit,
            stock=Decimal(str(stock)),
            min_stock_level=Decimal(str(min_stock_level)),
        )

    @staticmethod
    def create_customer(owner, name=None, phone=None, email=None):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'9{random.randint(100000000, 999999999)}'
        if not email:
            email = f'{name.lower()}@test.com'
        return Customer.objects.create(owner=owner, name=name, phone=phone, email=email)

    @staticmethod
    def create_quote_option(owner, category, name=None, price='5.00'):
        """Create a quoter option"""
        if not name:
            name = f'Option_{TestDataFactory.random_string(6)}'
        return QuoteOption.objects.create(
            owner=owner,
            category=category,
            name=name,
            price=Decimal(str(price)),
        )

    @staticmethod
    def create_order(owner, total_amount='10.00', status='completed', source='pos',
                     customer_name='', product=None, quantity=1):
        """Create an order with one item"""
        order = Order.objects.create(
            owner=owner,
            customer_name=customer_name,
            total_amount=Decimal(str(total_amount)),
            status=status,
            source=source,
        )
        if product is None:
            product = TestDataFactory.create_product(owner, unit_price=total_amount)
        OrderItem.objects.create(
            order=order,
            product=product,
            product_reference=str(product.pk),
            description=product.name,
            quantity=quantity,
            price_at_order=product.unit_price,
        )
        return order


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
