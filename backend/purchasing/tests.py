"""
Test suite for the Purchasing module
Tests: purchase order creation, status changes, receiving with lots, direct import and reordering
"""
from datetime import date, timedelta
from decimal import Decimal
from django.test import TestCase
from rest_framework import status
from backend.core.exceptions import BusinessRuleError
from backend.core.permissions import ROLE_WAREHOUSE, ROLE_SALES
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import Inventory, ProductLot
from backend.purchasing import services
from backend.purchasing.models import PurchaseOrder, GoodsReceipt


class PurchaseOrderModelTests(TestCase):
    """Test PurchaseOrder and PurchaseOrderItem model methods"""

    def setUp(self):
        self.product = TestDataFactory.create_product()

    def test_total_from_items(self):
        """Test purchase order total calculation"""
        product2 = TestDataFactory.create_product()
        po = TestDataFactory.create_purchase_order(items=[(self.product, 10, '1500.00'), (product2, 5, '200.00')])
        self.assertEqual(po.get_total(), Decimal('16000.00'))
        self.assertEqual(po.total_amount, Decimal('16000.00'))

    def test_remaining_quantity(self):
        """Test remaining quantity never goes below zero"""
        po = TestDataFactory.create_purchase_order(items=[(self.product, 10, '100')])
        item = po.items.first()
        item.received_quantity = 4
        self.assertEqual(item.remaining_quantity, 6)
        self.assertFalse(item.is_fully_received)
        item.received_quantity = 10
        self.assertEqual(item.remaining_quantity, 0)
        self.assertTrue(item.is_fully_received)


class PurchaseOrderNumberTests(TestCase):
    """Test purchase order numbering"""

    def test_first_number_of_the_day(self):
        self.assertEqual(services.generate_po_number(date(2024, 3, 5)), 'PO-20240305-0001')

    def test_number_increments_per_day(self):
        supplier = TestDataFactory.create_supplier()
        product = TestDataFactory.create_product()
        first = services.create_purchase_order(supplier, [{'product': product, 'quantity': 1}],
                                               order_date=date(2024, 3, 5))
        second = services.create_purchase_order(supplier, [{'product': product, 'quantity': 1}],
                                                order_date=date(2024, 3, 5))
        other_day = services.create_purchase_order(supplier, [{'product': product, 'quantity': 1}],
                                                   order_date=date(2024, 3, 6))
        self.assertEqual(first.po_number, 'PO-20240305-0001')
        self.assertEqual(second.po_number, 'PO-20240305-0002')
        self.assertEqual(other_day.po_number, 'PO-20240306-0001')


class PurchaseOrderAPITests(TestCase):
    """Test PurchaseOrder API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user(roles=[ROLE_WAREHOUSE])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.supplier = TestDataFactory.create_supplier()
        self.product = TestDataFactory.create_product(wholesale_price='45000')

    def test_create_purchase_order(self):
        """Test creating a purchase order via API"""
        data = {
            'supplier': self.supplier.id,
            'status': 'ordered',
            'items': [{'product': self.product.id, 'quantity': 10, 'unit_price': '40000'}],
        }
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['po_number'].startswith('PO-'))
        self.assertEqual(response.data['status'], 'ordered')
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('400000'))
        self.assertEqual(len(response.data['items']), 1)

    def test_unit_price_defaults_to_purchase_price(self):
        """Test missing unit price falls back to the product's wholesale price"""
        data = {'supplier': self.supplier.id, 'items': [{'product': self.product.id, 'quantity': 2}]}
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['items'][0]['unit_price']), Decimal('45000'))

    def test_create_without_items_fails(self):
        """Test creating a purchase order without items is rejected"""
        data = {'supplier': self.supplier.id, 'items': []}
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(PurchaseOrder.objects.exists())

    def test_create_with_zero_quantity_fails(self):
        """Test zero quantity fails validation"""
        data = {'supplier': self.supplier.id, 'items': [{'product': self.product.id, 'quantity': 0}]}
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_expected_delivery_before_order_date_fails(self):
        data = {
            'supplier': self.supplier.id,
            'order_date': '2024-05-10',
            'expected_delivery_date': '2024-05-01',
            'items': [{'product': self.product.id, 'quantity': 1}],
        }
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('expected_delivery_date', response.data)

    def test_sales_staff_cannot_create(self):
        """Test non-warehouse users cannot create purchase orders"""
        other = TestDataFactory.create_user(roles=[ROLE_SALES])
        self.client.authenticate_user(other)
        data = {'supplier': self.supplier.id, 'items': [{'product': self.product.id, 'quantity': 1}]}
        response = self.client.post('/api/v1/purchase-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_purchase_orders_with_status_filter(self):
        """Test listing purchase orders filtered by a comma-separated status list"""
        TestDataFactory.create_purchase_order(supplier=self.supplier, status='draft', items=[(self.product, 1, 10)])
        TestDataFactory.create_purchase_order(supplier=self.supplier, status='ordered', items=[(self.product, 1, 10)])
        TestDataFactory.create_purchase_order(supplier=self.supplier, status='cancelled', items=[(self.product, 1, 10)])

        response = self.client.get('/api/v1/purchase-orders/?status=draft,ordered')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual({po['status'] for po in response.data['results']}, {'draft', 'ordered'})

    def test_update_draft_replaces_items(self):
        """Test updating a draft purchase order replaces its items"""
        po = TestDataFactory.create_purchase_order(supplier=self.supplier, status='draft',
                                                   items=[(self.product, 10, '100')])
        data = {'notes': 'Call before delivery', 'items': [{'product': self.product.id, 'quantity': 15, 'unit_price': '100'}]}
        response = self.client.patch(f'/api/v1/purchase-orders/{po.id}/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['notes'], 'Call before delivery')
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['items'][0]['quantity'], 15)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('1500'))

    def test_ordered_purchase_order_is_not_editable(self):
        po = TestDataFactory.create_purchase_order(supplier=self.supplier, status='ordered',
                                                   items=[(self.product, 10, '100')])
        response = self.client.patch(f'/api/v1/purchase-orders/{po.id}/', {'notes': 'x'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_status_transition(self):
        """Test manual status transitions follow the allowed graph"""
        po = TestDataFactory.create_purchase_order(supplier=self.supplier, status='draft',
                                                   items=[(self.product, 1, '100')])
        response = self.client.post(f'/api/v1/purchase-orders/{po.id}/status/', {'status': 'ordered'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'ordered')

        response = self.client.post(f'/api/v1/purchase-orders/{po.id}/status/', {'status': 'received'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancel_purchase_order(self):
        po = TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.product, 1, '100')])
        response = self.client.post(f'/api/v1/purchase-orders/{po.id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')

    def test_delete_purchase_order(self):
        po = TestDataFactory.create_purchase_order(supplier=self.supplier, items=[(self.product, 1, '100')])
        response = self.client.delete(f'/api/v1/purchase-orders/{po.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(PurchaseOrder.objects.filter(id=po.id).exists())


class ReceivingTests(TestCase):
    """Test receiving goods against purchase orders"""

    def setUp(self):
        self.user = TestDataFactory.create_user(roles=[ROLE_WAREHOUSE])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.b2b = TestDataFactory.create_warehouse(name='B2B', is_b2b=True)
        self.supplier = TestDataFactory.create_supplier()
        self.lot_product = TestDataFactory.create_product(enable_lot_management=True)
        self.plain_product = TestDataFactory.create_product()
        self.po = TestDataFactory.create_purchase_order(
            supplier=self.supplier,
            items=[(self.lot_product, 10, '5000'), (self.plain_product, 4, '2000')],
        )
        self.lot_item = self.po.items.get(product=self.lot_product)
        self.plain_item = self.po.items.get(product=self.plain_product)

    def receive(self, items):
        return self.client.post(f'/api/v1/purchase-orders/{self.po.id}/receive/', {'items': items}, format='json')

    def test_partial_receipt(self):
        """Test receiving part of an order sets partially_received"""
        expiry = (date.today() + timedelta(days=365)).isoformat()
        response = self.receive([
            {'item_id': self.lot_item.id, 'quantity': 6, 'lot_number': 'L001', 'expiry_date': expiry},
        ])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['purchase_order']['status'], 'partially_received')

        self.lot_item.refresh_from_db()
        self.assertEqual(self.lot_item.received_quantity, 6)
        lot = ProductLot.objects.get(product=self.lot_product, warehouse=self.b2b, lot_number='L001')
        self.assertEqual(lot.quantity, 6)
        self.assertEqual(lot.expiry_date.isoformat(), expiry)
        self.assertEqual(Inventory.objects.get(product=self.lot_product, warehouse=self.b2b).quantity, 6)

    def test_full_receipt_across_lots(self):
        """Test several lines for one item land in separate lots and complete the order"""
        response = self.receive([
            {'item_id': self.lot_item.id, 'quantity': 4, 'lot_number': 'A1', 'expiry_date': '2030-01-31'},
            {'item_id': self.lot_item.id, 'quantity': 6, 'lot_number': 'B2', 'expiry_date': '2030-06-30'},
            {'item_id': self.plain_item.id, 'quantity': 4, 'shelf_location': 'K3-02'},
        ])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['purchase_order']['status'], 'received')
        self.assertEqual(len(response.data['receipts']), 3)

        lots = ProductLot.objects.filter(product=self.lot_product, warehouse=self.b2b).order_by('lot_number')
        self.assertEqual([(lot.lot_number, lot.quantity) for lot in lots], [('A1', 4), ('B2', 6)])
        self.assertEqual(Inventory.objects.get(product=self.lot_product, warehouse=self.b2b).quantity, 10)

        plain_inventory = Inventory.objects.get(product=self.plain_product, warehouse=self.b2b)
        self.assertEqual(plain_inventory.quantity, 4)
        self.assertEqual(plain_inventory.shelf_location, 'K3-02')

    def test_same_lot_lines_are_merged(self):
        """Test lines with the same lot number add up into one lot"""
        response = self.receive([
            {'item_id': self.lot_item.id, 'quantity': 3, 'lot_number': 'L9'},
            {'item_id': self.lot_item.id, 'quantity': 2, 'lot_number': 'L9', 'expiry_date': '2031-01-01'},
        ])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        lot = ProductLot.objects.get(product=self.lot_product, lot_number='L9')
        self.assertEqual(lot.quantity, 5)
        self.assertEqual(lot.expiry_date, date(2031, 1, 1))
        self.assertEqual(GoodsReceipt.objects.filter(item=self.lot_item).count(), 1)

    def test_missing_lot_number_uses_default_lot(self):
        response = self.receive([{'item_id': self.lot_item.id, 'quantity': 2}])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(ProductLot.objects.filter(product=self.lot_product, lot_number='DEFAULT', quantity=2).exists())

    def test_receiving_into_existing_lot_adds_quantity(self):
        TestDataFactory.create_lot(self.lot_product, self.b2b, 'L001', 5, expiry_date=date(2030, 1, 1))
        response = self.receive([{'item_id': self.lot_item.id, 'quantity': 3, 'lot_number': 'L001'}])
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(ProductLot.objects.get(product=self.lot_product, lot_number='L001').quantity, 8)
        self.assertEqual(Inventory.objects.get(product=self.lot_product, warehouse=self.b2b).quantity, 8)

    def test_over_receiving_is_rejected(self):
        """Test receiving more than ordered fails and changes nothing"""
        self.receive([{'item_id': self.lot_item.id, 'quantity': 8, 'lot_number': 'L1'}])
        response = self.receive([{'item_id': self.lot_item.id, 'quantity': 3, 'lot_number': 'L1'}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.lot_item.refresh_from_db()
        self.assertEqual(self.lot_item.received_quantity, 8)
        self.assertEqual(ProductLot.objects.get(lot_number='L1').quantity, 8)

    def test_split_lines_cannot_exceed_ordered_quantity_together(self):
        response = self.receive([
            {'item_id': self.plain_item.id, 'quantity': 3},
            {'item_id': self.plain_item.id, 'quantity': 3},
        ])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Inventory.objects.filter(product=self.plain_product).exists())

    def test_zero_quantity_is_rejected(self):
        response = self.receive([{'item_id': self.plain_item.id, 'quantity': 0}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_item_from_another_order_is_rejected(self):
        other = TestDataFactory.create_purchase_order(items=[(self.plain_product, 5, '10')])
        response = self.receive([{'item_id': other.items.first().id, 'quantity': 1}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_receive_on_cancelled_order(self):
        services.cancel_purchase_order(self.po)
        response = self.receive([{'item_id': self.plain_item.id, 'quantity': 1}])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_delete_after_receiving(self):
        self.receive([{'item_id': self.plain_item.id, 'quantity': 1}])
        with self.assertRaises(BusinessRuleError):
            services.delete_purchase_order(self.po)

    def test_receipts_history(self):
        self.receive([{'item_id': self.plain_item.id, 'quantity': 2}])
        response = self.client.get(f'/api/v1/purchase-orders/{self.po.id}/receipts/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['quantity'], 2)
        self.assertEqual(response.data[0]['warehouse'], self.b2b.id)


class DirectImportTests(TestCase):
    """Test recording goods received without a prior order"""

    def setUp(self):
        self.user = TestDataFactory.create_user(roles=[ROLE_WAREHOUSE])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.b2b = TestDataFactory.create_warehouse(is_b2b=True)
        self.supplier = TestDataFactory.create_supplier()
        self.product = TestDataFactory.create_product(enable_lot_management=True)

    def test_direct_import_receives_everything(self):
        data = {
            'supplier': self.supplier.id,
            'items': [{'product': self.product.id, 'quantity': 12, 'unit_price': '7000',
                       'lot_number': 'DI-1', 'expiry_date': '2030-12-31'}],
        }
        response = self.client.post('/api/v1/purchase-orders/direct-import/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'received')
        self.assertEqual(response.data['items'][0]['received_quantity'], 12)
        self.assertEqual(ProductLot.objects.get(product=self.product, lot_number='DI-1').quantity, 12)


class ReorderTests(TestCase):
    """Test reorder analysis and automatic purchase order generation"""

    def setUp(self):
        self.user = TestDataFactory.create_user(roles=[ROLE_WAREHOUSE])
        self.warehouse = TestDataFactory.create_warehouse(is_b2b=True)
        self.supplier_a = TestDataFactory.create_supplier(name='Alpha Pharma')
        self.supplier_b = TestDataFactory.create_supplier(name='Beta Med')
        self.low_a = TestDataFactory.create_product(supplier=self.supplier_a, cost_price='1000')
        self.low_b = TestDataFactory.create_product(supplier=self.supplier_b, cost_price='2000')
        self.healthy = TestDataFactory.create_product(supplier=self.supplier_a)
        self.no_supplier = TestDataFactory.create_product()
        TestDataFactory.set_stock(self.low_a, self.warehouse, 2, min_stock=5, max_stock=20)
        TestDataFactory.set_stock(self.low_b, self.warehouse, 0, min_stock=3, max_stock=10)
        TestDataFactory.set_stock(self.healthy, self.warehouse, 50, min_stock=5, max_stock=60)
        TestDataFactory.set_stock(self.no_supplier, self.warehouse, 0, min_stock=5, max_stock=10)

    def test_analysis_lists_low_stock_products(self):
        analysis = services.analyze_reorder(self.warehouse)
        quantities = {p['product_id']: p['quantity_needed'] for p in analysis['products_to_order']}
        self.assertEqual(quantities, {self.low_a.id: 18, self.low_b.id: 10})
        self.assertEqual(analysis['supplier_count'], 2)
        self.assertEqual(analysis['total_value'], Decimal('38000'))

    def test_products_on_pending_orders_are_skipped(self):
        TestDataFactory.create_purchase_order(supplier=self.supplier_a, status='ordered', items=[(self.low_a, 5, '1000')])
        analysis = services.analyze_reorder(self.warehouse)
        self.assertEqual([p['product_id'] for p in analysis['products_to_order']], [self.low_b.id])

    def test_auto_generate_creates_one_draft_per_supplier(self):
        client = AuthenticatedAPIClient()
        client.authenticate_user(self.user)
        response = client.post('/api/v1/purchase-orders/auto-generate/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        orders = PurchaseOrder.objects.filter(status='draft')
        self.assertEqual(orders.count(), 2)
        self.assertEqual(set(orders.values_list('supplier_id', flat=True)), {self.supplier_a.id, self.supplier_b.id})

        # A second run finds nothing left to order
        response = client.post('/api/v1/purchase-orders/auto-generate/', {}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['purchase_orders'], [])
