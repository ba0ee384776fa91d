"""
Test suite for the product catalog
"""
from unittest.mock import patch
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from rest_framework import status
from backend.core.exceptions import EdgeFunctionError
from backend.core.models import AuditLog
from backend.core.permissions import ROLE_MANAGER
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.catalog.models import Product
from backend.pos import services as pos_services


class ProductAPITests(TestCase):
    """Test product CRUD, search and filter options"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_product(self):
        response = self.client.post('/api/v1/products/', {
            'name': 'Panadol Extra', 'sku': 'PAN-EX', 'category': 'Analgesic', 'manufacturer': 'GSK',
            'unit': 'box', 'cost_price': '80000', 'retail_price': '105000',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['enable_lot_management'])

    def test_negative_price_rejected(self):
        response = self.client.post('/api/v1/products/', {'name': 'Bad', 'retail_price': '-1'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_blank_skus_do_not_collide(self):
        for name in ('Cotton swab', 'Gauze'):
            response = self.client.post('/api/v1/products/', {'name': name, 'sku': ''}, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Product.objects.filter(sku__isnull=True).count(), 2)

    def test_multi_word_search_and_stock(self):
        product = TestDataFactory.create_product(name='Vitamin C 500mg', manufacturer='DHG')
        TestDataFactory.create_product(name='Vitamin E 400IU', manufacturer='Mega')
        TestDataFactory.set_stock(product, TestDataFactory.create_warehouse(), 7)
        TestDataFactory.set_stock(product, TestDataFactory.create_warehouse(), 5)

        response = self.client.get('/api/v1/products/', {'search': 'vitamin dhg'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['total_stock'], 12)

    def test_active_filter(self):
        old = TestDataFactory.create_product(name='Old syrup')
        old.is_active = False
        old.save()
        TestDataFactory.create_product(name='New syrup')
        response = self.client.get('/api/v1/products/?active=true')
        self.assertEqual([p['name'] for p in response.data['results']], ['New syrup'])
        response = self.client.get('/api/v1/products/?active=all')
        self.assertEqual(response.data['count'], 2)

    def test_filter_options_follow_product_changes(self):
        TestDataFactory.create_product(category='Vitamin', manufacturer='DHG')
        response = self.client.get('/api/v1/products/filter-options/')
        self.assertEqual(response.data['categories'], ['Vitamin'])

        TestDataFactory.create_product(category='Antibiotic')
        response = self.client.get('/api/v1/products/filter-options/')
        self.assertEqual(response.data['categories'], ['Antibiotic', 'Vitamin'])

    def test_sold_product_cannot_be_deleted(self):
        product = TestDataFactory.create_product(retail_price='1000')
        warehouse = TestDataFactory.create_warehouse()
        TestDataFactory.set_stock(product, warehouse, 3)
        pos_services.process_sale([{'product': product, 'quantity': 1}], warehouse,
                                  fund=TestDataFactory.create_fund())
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_price_change_is_audited(self):
        product = TestDataFactory.create_product(retail_price='1000')
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'retail_price': '1200'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(model_name='Product', action='update', object_id=str(product.id))
        self.assertEqual(log.changes['retail_price'], {'old': '1000.00', 'new': '1200.00'})

        self.client.patch(f'/api/v1/products/{product.id}/', {'description': 'no tracked change'}, format='json')
        self.assertEqual(AuditLog.objects.filter(model_name='Product', action='update').count(), 1)


class ProductFunctionTests(TestCase):
    """Test the serverless enrichment and extraction endpoints"""

    def setUp(self):
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_MANAGER]))
        self.product = TestDataFactory.create_product(name='Berberin')

    @patch('backend.catalog.views.invoke_edge_function')
    def test_enrich_preview_does_not_write(self, mock_invoke):
        mock_invoke.return_value = {'description': 'Antidiarrheal', 'tags': ['digestive'], 'category': 'Digestive'}
        response = self.client.post(f'/api/v1/products/{self.product.id}/enrich/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['suggestion']['category'], 'Digestive')
        self.product.refresh_from_db()
        self.assertEqual(self.product.category, '')
        mock_invoke.assert_called_once_with('enrich-product-data', {'productName': 'Berberin'})

    @patch('backend.catalog.views.invoke_edge_function')
    def test_enrich_apply(self, mock_invoke):
        mock_invoke.return_value = {'description': 'Antidiarrheal', 'tags': ['digestive'], 'category': ''}
        self.client.post(f'/api/v1/products/{self.product.id}/enrich/', {'apply': True}, format='json')
        self.product.refresh_from_db()
        self.assertEqual(self.product.description, 'Antidiarrheal')
        self.assertEqual(self.product.tags, ['digestive'])
        self.assertEqual(self.product.category, '')

    @patch('backend.catalog.views.invoke_edge_function')
    def test_enrich_failure_is_bad_gateway(self, mock_invoke):
        mock_invoke.side_effect = EdgeFunctionError('enrich-product-data', 'quota exceeded', status_code=429)
        response = self.client.post(f'/api/v1/products/{self.product.id}/enrich/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)

    @patch('backend.catalog.views.invoke_edge_function')
    def test_extract_from_pdf(self, mock_invoke):
        mock_invoke.return_value = {'name': 'Smecta', 'manufacturer': 'Ipsen'}
        upload = SimpleUploadedFile('smecta.pdf', b'%PDF-1.4 data', content_type='application/pdf')
        response = self.client.post('/api/v1/products/extract-from-pdf/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Smecta')
        payload = mock_invoke.call_args[0][1]
        self.assertEqual(payload['mimeType'], 'application/pdf')
        self.assertEqual(payload['fileContent'], 'JVBERi0xLjQgZGF0YQ==')
