"""
Test suite for customers
Tests: CRUD, duplicate names, search, owner scoping, cached list invalidation
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status

from bakery.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from bakery.parties.models import Customer


class CustomerTests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_customer(self):
        response = self.client.post('/api/v1/customers/', {
            'name': 'María López',
            'email': 'maria@test.com',
            'phone': '5551234567',
        })
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Customer.objects.get(pk=response.data['id']).owner, self.user)

    def test_duplicate_name_rejected_case_insensitive(self):
        TestDataFactory.create_customer(self.user, name='Ana')
        response = self.client.post('/api/v1/customers/', {'name': 'ana'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_same_name_allowed_for_other_owner(self):
        TestDataFactory.create_customer(TestDataFactory.create_user(), name='Ana')
        response = self.client.post('/api/v1/customers/', {'name': 'Ana'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_search(self):
        TestDataFactory.create_customer(self.user, name='Ana', phone='111')
        TestDataFactory.create_customer(self.user, name='Beto', phone='222')
        response = self.client.get('/api/v1/customers/?search=22')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row['name'] for row in response.data], ['Beto'])

    def test_list_cache_invalidated_on_create(self):
        TestDataFactory.create_customer(self.user, name='Ana')
        first = self.client.get('/api/v1/customers/')
        self.assertEqual(len(first.data), 1)
        self.client.post('/api/v1/customers/', {'name': 'Beto'})
        second = self.client.get('/api/v1/customers/')
        self.assertEqual([row['name'] for row in second.data], ['Ana', 'Beto'])

    def test_other_owners_customer_is_404(self):
        other = TestDataFactory.create_customer(TestDataFactory.create_user())
        response = self.client.patch(f'/api/v1/customers/{other.pk}/', {'phone': '000'})
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete_customer(self):
        customer = TestDataFactory.create_customer(self.user)
        response = self.client.delete(f'/api/v1/customers/{customer.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Customer.objects.filter(pk=customer.pk).exists())
