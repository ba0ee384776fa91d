"""
Test suite for warehouses
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backend.core.permissions import ROLE_MANAGER, ROLE_WAREHOUSE, ROLE_SALES
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.locations.models import Warehouse


class WarehouseAPITests(TestCase):

    def setUp(self):
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)

    def test_create_requires_manager(self):
        data = {'name': 'Branch 2', 'code': 'BR2'}
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_WAREHOUSE]))
        response = self.client.post('/api/v1/warehouses/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.authenticate_user(self.manager)
        response = self.client.post('/api/v1/warehouses/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_b2b_warehouse(self):
        response = self.client.get('/api/v1/warehouses/b2b/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

        inactive = TestDataFactory.create_warehouse(is_b2b=True)
        inactive.is_active = False
        inactive.save()
        central = TestDataFactory.create_warehouse(is_b2b=True)
        response = self.client.get('/api/v1/warehouses/b2b/')
        self.assertEqual(response.data['id'], central.id)

    def test_active_only(self):
        TestDataFactory.create_warehouse()
        closed = TestDataFactory.create_warehouse()
        closed.is_active = False
        closed.save()
        response = self.client.get('/api/v1/warehouses/?active_only=true')
        self.assertEqual(len(response.data), 1)

    def test_warehouse_with_sales_cannot_be_deleted(self):
        cache.clear()
        warehouse = TestDataFactory.create_warehouse()
        product = TestDataFactory.create_product(retail_price='1000')
        TestDataFactory.set_stock(product, warehouse, 1)
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_SALES], warehouse=warehouse))
        TestDataFactory.create_fund()
        self.client.post('/api/v1/pos/checkout/', {'items': [{'product': product.id, 'quantity': 1}]}, format='json')

        self.client.authenticate_user(self.manager)
        response = self.client.delete(f'/api/v1/warehouses/{warehouse.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Warehouse.objects.filter(pk=warehouse.id).exists())

    def test_anonymous_request_is_rejected(self):
        self.client.logout()
        response = self.client.get('/api/v1/warehouses/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
