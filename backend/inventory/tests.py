"""
Test suite for the Inventory module
Tests: stock deduction, FEFO lot allocation, lot sync, lot management switching and adjustments
"""
from datetime import timedelta
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.exceptions import BusinessRuleError
from backend.core.permissions import ROLE_WAREHOUSE, ROLE_SALES
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory import services
from backend.inventory.models import Inventory, ProductLot


class StockDeductionTests(TestCase):
    """Test deduct_stock for plain and lot-managed products"""

    def setUp(self):
        self.warehouse = TestDataFactory.create_warehouse()
        self.today = timezone.localdate()

    def test_plain_product(self):
        product = TestDataFactory.create_product()
        TestDataFactory.set_stock(product, self.warehouse, 10)
        self.assertEqual(services.deduct_stock(product, self.warehouse, 4), [])
        self.assertEqual(Inventory.objects.get(product=product, warehouse=self.warehouse).quantity, 6)

    def test_stock_never_goes_negative(self):
        product = TestDataFactory.create_product()
        TestDataFactory.set_stock(product, self.warehouse, 3)
        with self.assertRaises(BusinessRuleError):
            services.deduct_stock(product, self.warehouse, 4)
        self.assertEqual(Inventory.objects.get(product=product, warehouse=self.warehouse).quantity, 3)

    def test_zero_quantity_rejected(self):
        product = TestDataFactory.create_product()
        with self.assertRaises(BusinessRuleError):
            services.deduct_stock(product, self.warehouse, 0)

    def test_fefo_order(self):
        """Earliest expiry goes first, lots without expiry go last"""
        product = TestDataFactory.create_product(enable_lot_management=True)
        late = TestDataFactory.create_lot(product, self.warehouse, 'LATE', 5, self.today + timedelta(days=300))
        no_expiry = TestDataFactory.create_lot(product, self.warehouse, 'NOEXP', 5)
        early = TestDataFactory.create_lot(product, self.warehouse, 'EARLY', 3, self.today + timedelta(days=30))

        allocations = services.deduct_stock(product, self.warehouse, 7)
        self.assertEqual([(lot.lot_number, qty) for lot, qty in allocations], [('EARLY', 3), ('LATE', 4)])

        early.refresh_from_db()
        late.refresh_from_db()
        no_expiry.refresh_from_db()
        self.assertEqual((early.quantity, early.status), (0, 'depleted'))
        self.assertEqual(late.quantity, 1)
        self.assertEqual(no_expiry.quantity, 5)
        self.assertEqual(Inventory.objects.get(product=product, warehouse=self.warehouse).quantity, 6)

    def test_expired_lots_are_not_sold(self):
        product = TestDataFactory.create_product(enable_lot_management=True)
        TestDataFactory.create_lot(product, self.warehouse, 'OLD', 10, self.today - timedelta(days=1))
        TestDataFactory.create_lot(product, self.warehouse, 'NEW', 2, self.today + timedelta(days=90))
        with self.assertRaises(BusinessRuleError):
            services.deduct_stock(product, self.warehouse, 3)
        allocations = services.deduct_stock(product, self.warehouse, 2)
        self.assertEqual([lot.lot_number for lot, _ in allocations], ['NEW'])

    def test_lot_expiring_today_is_still_sellable(self):
        product = TestDataFactory.create_product(enable_lot_management=True)
        TestDataFactory.create_lot(product, self.warehouse, 'TODAY', 1, self.today)
        allocations = services.deduct_stock(product, self.warehouse, 1)
        self.assertEqual(allocations[0][0].lot_number, 'TODAY')


class LotSyncTests(TestCase):
    """Test that inventory follows the lots"""

    def setUp(self):
        self.product = TestDataFactory.create_product(enable_lot_management=True)
        self.wh1 = TestDataFactory.create_warehouse()
        self.wh2 = TestDataFactory.create_warehouse()

    def test_sync_per_warehouse(self):
        ProductLot.objects.create(product=self.product, warehouse=self.wh1, lot_number='A', quantity=4)
        ProductLot.objects.create(product=self.product, warehouse=self.wh1, lot_number='B', quantity=6)
        ProductLot.objects.create(product=self.product, warehouse=self.wh2, lot_number='A', quantity=2)
        totals = services.sync_lots_to_inventory(self.product)
        self.assertEqual(totals, {self.wh1.id: 10, self.wh2.id: 2})
        self.assertEqual(Inventory.objects.get(product=self.product, warehouse=self.wh1).quantity, 10)
        self.assertEqual(Inventory.objects.get(product=self.product, warehouse=self.wh2).quantity, 2)

    def test_sync_warehouse_without_lots_sets_zero(self):
        TestDataFactory.set_stock(self.product, self.wh1, 7)
        services.sync_lots_to_inventory(self.product, self.wh1)
        self.assertEqual(Inventory.objects.get(product=self.product, warehouse=self.wh1).quantity, 0)

    def test_empty_lots_are_marked_depleted(self):
        lot = ProductLot.objects.create(product=self.product, warehouse=self.wh1, lot_number='Z', quantity=0)
        services.sync_lots_to_inventory(self.product, self.wh1)
        lot.refresh_from_db()
        self.assertEqual(lot.status, 'depleted')

    def test_expiring_lots(self):
        today = timezone.localdate()
        soon = TestDataFactory.create_lot(self.product, self.wh1, 'SOON', 3, today + timedelta(days=10))
        TestDataFactory.create_lot(self.product, self.wh1, 'LATER', 3, today + timedelta(days=100))
        TestDataFactory.create_lot(self.product, self.wh1, 'NOEXP', 3)
        self.assertEqual([lot.id for lot in services.get_expiring_lots(days=30)], [soon.id])


class LotManagementTests(TestCase):
    """Test turning lot management on and off"""

    def setUp(self):
        self.product = TestDataFactory.create_product()
        self.warehouse = TestDataFactory.create_warehouse()

    def test_enable_creates_default_lots(self):
        TestDataFactory.set_stock(self.product, self.warehouse, 12)
        self.assertEqual(services.enable_lot_management(self.product), 1)
        lot = ProductLot.objects.get(product=self.product)
        self.assertEqual((lot.lot_number, lot.quantity), ('DEFAULT', 12))
        self.assertEqual(Inventory.objects.get(product=self.product, warehouse=self.warehouse).quantity, 12)

    def test_disable_keeps_inventory(self):
        TestDataFactory.set_stock(self.product, self.warehouse, 5)
        services.enable_lot_management(self.product)
        self.assertEqual(services.disable_lot_management(self.product), 1)
        self.assertFalse(ProductLot.objects.filter(product=self.product).exists())
        self.assertEqual(Inventory.objects.get(product=self.product, warehouse=self.warehouse).quantity, 5)

    def test_enable_twice_fails(self):
        services.enable_lot_management(self.product)
        with self.assertRaises(BusinessRuleError):
            services.enable_lot_management(self.product)


class InventoryAPITests(TestCase):
    """Test inventory, lot and adjustment endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(roles=[ROLE_WAREHOUSE])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.warehouse = TestDataFactory.create_warehouse()
        self.product = TestDataFactory.create_product()
        self.lot_product = TestDataFactory.create_product(enable_lot_management=True)

    def test_low_stock_filter(self):
        TestDataFactory.set_stock(self.product, self.warehouse, 2, min_stock=5)
        TestDataFactory.set_stock(self.lot_product, self.warehouse, 20, min_stock=5)
        response = self.client.get(f'/api/v1/inventory/?warehouse_id={self.warehouse.id}&low_stock=true')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['product'], self.product.id)

    def test_adjustment_out(self):
        TestDataFactory.set_stock(self.product, self.warehouse, 10)
        data = {'adjustment_type': 'out', 'product': self.product.id, 'warehouse': self.warehouse.id,
                'quantity': 3, 'reason': 'damaged'}
        response = self.client.post('/api/v1/stock-adjustments/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Inventory.objects.get(product=self.product, warehouse=self.warehouse).quantity, 7)

    def test_adjustment_cannot_go_negative(self):
        TestDataFactory.set_stock(self.product, self.warehouse, 1)
        data = {'adjustment_type': 'out', 'product': self.product.id, 'warehouse': self.warehouse.id,
                'quantity': 3, 'reason': 'theft'}
        response = self.client.post('/api/v1/stock-adjustments/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(Inventory.objects.get(product=self.product, warehouse=self.warehouse).quantity, 1)

    def test_adjustment_of_lot_product_needs_lot(self):
        data = {'adjustment_type': 'in', 'product': self.lot_product.id, 'warehouse': self.warehouse.id,
                'quantity': 3, 'reason': 'found'}
        response = self.client.post('/api/v1/stock-adjustments/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_lot_syncs_inventory(self):
        data = {'product': self.lot_product.id, 'warehouse': self.warehouse.id, 'lot_number': 'X1',
                'quantity': 9, 'expiry_date': '2030-01-01'}
        response = self.client.post('/api/v1/lots/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Inventory.objects.get(product=self.lot_product, warehouse=self.warehouse).quantity, 9)

    def test_lot_for_plain_product_rejected(self):
        data = {'product': self.product.id, 'warehouse': self.warehouse.id, 'lot_number': 'X1', 'quantity': 1}
        response = self.client.post('/api/v1/lots/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_staff_cannot_adjust(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_SALES]))
        data = {'adjustment_type': 'in', 'product': self.product.id, 'warehouse': self.warehouse.id,
                'quantity': 1, 'reason': 'found'}
        response = self.client.post('/api/v1/stock-adjustments/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
