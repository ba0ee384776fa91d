"""
Test suite for suppliers, patients and loyalty points
"""
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from backend.core.exceptions import BusinessRuleError
from backend.core.models import Setting
from backend.core.permissions import ROLE_MANAGER, ROLE_SALES
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.parties import services
from backend.parties.models import Patient, PointsHistory, Supplier


class LoyaltyPointsTests(TestCase):
    """Test the points ledger"""

    def setUp(self):
        self.patient = TestDataFactory.create_patient(loyalty_points=10)

    def test_points_to_earn(self):
        self.assertEqual(services.calculate_points_to_earn(Decimal('99999')), 9)
        self.assertEqual(services.calculate_points_to_earn(Decimal('100000')), 10)
        self.assertEqual(services.calculate_points_to_earn(Decimal('0')), 0)
        self.assertEqual(services.calculate_points_to_earn(None), 0)

    def test_amount_per_point_setting(self):
        Setting.objects.create(key='loyalty_amount_per_point', value='5000')
        self.assertEqual(services.calculate_points_to_earn(Decimal('20000')), 4)

    def test_invalid_setting_falls_back(self):
        Setting.objects.create(key='loyalty_amount_per_point', value='abc')
        self.assertEqual(services.calculate_points_to_earn(Decimal('20000')), 2)

    def test_discount_from_points(self):
        self.assertEqual(services.calculate_discount_from_points(7), 7000)

    def test_add_and_redeem(self):
        services.add_points(self.patient.id, 5, reference_type='sales_order', reference_id='POS-1')
        entry = services.redeem_points(self.patient.id, 12)
        self.assertEqual((entry.balance_before, entry.balance_after, entry.points_amount), (15, 3, -12))
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.loyalty_points, 3)
        self.assertEqual(PointsHistory.objects.filter(patient=self.patient).count(), 2)

    def test_redeem_more_than_balance(self):
        with self.assertRaises(BusinessRuleError):
            services.redeem_points(self.patient.id, 11)
        self.patient.refresh_from_db()
        self.assertEqual(self.patient.loyalty_points, 10)
        self.assertFalse(PointsHistory.objects.exists())

    def test_non_positive_amounts(self):
        with self.assertRaises(BusinessRuleError):
            services.add_points(self.patient.id, 0)
        with self.assertRaises(BusinessRuleError):
            services.redeem_points(self.patient.id, -1)
        with self.assertRaises(BusinessRuleError):
            services.adjust_points(self.patient.id, 0, 'nothing')

    def test_negative_adjustment_cannot_overdraw(self):
        services.adjust_points(self.patient.id, -10, 'expired')
        with self.assertRaises(BusinessRuleError):
            services.adjust_points(self.patient.id, -1, 'expired')


class PatientAPITests(TestCase):
    """Test patient endpoints"""

    def setUp(self):
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)

    def test_create_and_search(self):
        response = self.client.post('/api/v1/patients/', {'full_name': 'Tran Thi Lan', 'phone': '0901112223',
                                                           'loyalty_points': 500}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['loyalty_points'], 0)

        response = self.client.get('/api/v1/patients/?search=lan')
        self.assertEqual(response.data['count'], 1)

    def test_blank_phones_do_not_collide(self):
        for name in ('A', 'B'):
            response = self.client.post('/api/v1/patients/', {'full_name': name, 'phone': ''}, format='json')
            self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Patient.objects.filter(phone__isnull=True).count(), 2)

    def test_points_adjust_endpoint(self):
        patient = TestDataFactory.create_patient(loyalty_points=4)
        url = f'/api/v1/patients/{patient.id}/points/adjust/'
        response = self.client.post(url, {'transaction_type': 'earn', 'points': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['balance_after'], 10)

        response = self.client.post(url, {'transaction_type': 'redeem', 'points': 20}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(f'/api/v1/patients/{patient.id}/points/')
        self.assertEqual(response.data['balance'], 10)
        self.assertEqual(response.data['count'], 1)

    def test_only_managers_adjust_points(self):
        patient = TestDataFactory.create_patient()
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_SALES]))
        response = self.client.post(f'/api/v1/patients/{patient.id}/points/adjust/',
                                    {'transaction_type': 'earn', 'points': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SupplierAPITests(TestCase):
    """Test supplier endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_and_list_active(self):
        response = self.client.post('/api/v1/suppliers/', {'name': 'Zuellig Pharma', 'code': 'ZP'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        old = TestDataFactory.create_supplier(name='Old supplier')
        old.is_active = False
        old.save()
        response = self.client.get('/api/v1/suppliers/?active_only=true')
        self.assertEqual([s['name'] for s in response.data], ['Zuellig Pharma'])

    def test_delete_unused_supplier(self):
        supplier = TestDataFactory.create_supplier()
        response = self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Supplier.objects.filter(pk=supplier.id).exists())

    def test_supplier_with_orders_cannot_be_deleted(self):
        supplier = TestDataFactory.create_supplier()
        TestDataFactory.create_purchase_order(supplier=supplier, user=self.user)
        response = self.client.delete(f'/api/v1/suppliers/{supplier.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Supplier.objects.filter(pk=supplier.id).exists())
