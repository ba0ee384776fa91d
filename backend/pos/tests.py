"""
Test suite for the POS module
Tests: checkout pricing, combos, stock deduction, vouchers, loyalty points, income booking, B2B picking and quotes
"""
from datetime import timedelta
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from backend.core.models import Setting
from backend.core.permissions import ROLE_SALES, ROLE_WAREHOUSE, ROLE_ACCOUNTANT, ROLE_DOCTOR
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.finance.models import Transaction
from backend.inventory.models import Inventory, ProductLot
from backend.parties.models import PointsHistory
from backend.pos.models import SalesOrder, B2BQuote
from backend.pos import services


class CheckoutTests(TestCase):
    """Test completing POS sales"""

    def setUp(self):
        cache.clear()
        self.warehouse = TestDataFactory.create_warehouse()
        self.cashier = TestDataFactory.create_user(roles=[ROLE_SALES], warehouse=self.warehouse)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.cashier)
        self.fund = TestDataFactory.create_fund(name='Counter cash')
        self.paracetamol = TestDataFactory.create_product(name='Paracetamol', retail_price='20000',
                                                          manufacturer='DHG', category='Analgesic')
        self.vitamin = TestDataFactory.create_product(name='Vitamin C', retail_price='50000', category='Vitamin',
                                                      enable_lot_management=True)
        TestDataFactory.set_stock(self.paracetamol, self.warehouse, 100)
        today = timezone.localdate()
        TestDataFactory.create_lot(self.vitamin, self.warehouse, 'V-OLD', 2, today + timedelta(days=20))
        TestDataFactory.create_lot(self.vitamin, self.warehouse, 'V-NEW', 10, today + timedelta(days=200))

    def checkout(self, **data):
        data.setdefault('items', [{'product': self.paracetamol.id, 'quantity': 2}])
        return self.client.post('/api/v1/pos/checkout/', data, format='json')

    def test_simple_sale(self):
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['order_code'].startswith('POS-'))
        self.assertEqual(Decimal(response.data['total_value']), Decimal('40000'))
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertEqual(response.data['operational_status'], 'completed')
        self.assertEqual(Inventory.objects.get(product=self.paracetamol, warehouse=self.warehouse).quantity, 98)

        income = Transaction.objects.get(reference_id=response.data['order_code'])
        self.assertEqual(income.fund, self.fund)
        self.assertEqual(income.status, 'collected')
        self.assertEqual(income.amount, Decimal('40000'))

    def test_lots_are_taken_first_expiry_first(self):
        response = self.checkout(items=[{'product': self.vitamin.id, 'quantity': 3}])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        allocations = response.data['items'][0]['lot_allocations']
        self.assertEqual([(a['lot_number'], a['quantity']) for a in allocations], [('V-OLD', 2), ('V-NEW', 1)])
        self.assertEqual(ProductLot.objects.get(lot_number='V-NEW').quantity, 9)

    def test_promotions_applied_per_item(self):
        TestDataFactory.create_promotion(type='percentage', value='20', conditions={'product_categories': 'Vitamin'})
        response = self.checkout(items=[
            {'product': self.paracetamol.id, 'quantity': 1},
            {'product': self.vitamin.id, 'quantity': 2},
        ])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['subtotal']), Decimal('120000'))
        self.assertEqual(Decimal(response.data['discount_total']), Decimal('20000'))
        self.assertEqual(Decimal(response.data['total_value']), Decimal('100000'))
        prices = {item['product']: item['unit_price'] for item in response.data['items']}
        self.assertEqual(Decimal(prices[self.vitamin.id]), Decimal('40000'))
        self.assertEqual(Decimal(prices[self.paracetamol.id]), Decimal('20000'))

    def test_repeated_lines_are_merged(self):
        response = self.checkout(items=[
            {'product': self.paracetamol.id, 'quantity': 1},
            {'product': self.paracetamol.id, 'quantity': 2},
        ])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['items'][0]['quantity'], 3)

    def test_insufficient_stock_rolls_back_everything(self):
        patient = TestDataFactory.create_patient(loyalty_points=10)
        voucher = TestDataFactory.create_voucher(TestDataFactory.create_promotion(type='fixed_amount', value='1000',
                                                                                  is_active=True,
                                                                                  conditions={'manufacturers': 'X'}))
        response = self.checkout(
            items=[{'product': self.paracetamol.id, 'quantity': 1}, {'product': self.vitamin.id, 'quantity': 50}],
            patient=patient.id, voucher_code=voucher.code, points_to_redeem=5,
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.data['error'])
        self.assertFalse(SalesOrder.objects.exists())
        self.assertFalse(Transaction.objects.exists())
        self.assertEqual(Inventory.objects.get(product=self.paracetamol, warehouse=self.warehouse).quantity, 100)
        voucher.refresh_from_db()
        self.assertEqual(voucher.times_used, 0)
        patient.refresh_from_db()
        self.assertEqual(patient.loyalty_points, 10)

    def test_voucher_is_consumed(self):
        promotion = TestDataFactory.create_promotion(type='fixed_amount', value='5000',
                                                     conditions={'manufacturers': 'Nobody'})
        voucher = TestDataFactory.create_voucher(promotion, code='GIAM5K')
        response = self.checkout(voucher_code='giam5k')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['voucher_discount']), Decimal('5000'))
        self.assertEqual(Decimal(response.data['total_value']), Decimal('35000'))
        voucher.refresh_from_db()
        self.assertEqual(voucher.times_used, 1)

        response = self.checkout(voucher_code='GIAM5K')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_voucher_below_minimum_order_is_not_consumed(self):
        big_orders = TestDataFactory.create_promotion(type='percentage', value='10',
                                                      conditions={'min_order_value': 500000, 'manufacturers': 'Nobody'})
        voucher = TestDataFactory.create_voucher(big_orders, code='BIGONLY')

        preview = self.client.post('/api/v1/pos/preview/', {
            'items': [{'product': self.paracetamol.id, 'quantity': 2}], 'voucher_code': 'BIGONLY',
        }, format='json')
        self.assertEqual(preview.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.checkout(voucher_code='BIGONLY')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('at least', response.data['error'])
        self.assertFalse(SalesOrder.objects.exists())
        voucher.refresh_from_db()
        self.assertEqual(voucher.times_used, 0)

    def test_promotion_pricing_a_line_below_zero_blocks_sale(self):
        TestDataFactory.create_promotion(type='fixed_amount', value='30000', conditions={'manufacturers': 'DHG'})
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('below zero', response.data['error'])
        self.assertEqual(response.data['details']['product'], self.paracetamol.id)
        self.assertEqual(Inventory.objects.get(product=self.paracetamol, warehouse=self.warehouse).quantity, 100)

    def test_combo_sale_takes_component_stock(self):
        combo = TestDataFactory.create_combo([(self.paracetamol, 2), (self.vitamin, 1)], combo_price='80000')
        response = self.checkout(items=[], combos=[{'combo': combo.id, 'quantity': 2}])
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['subtotal']), Decimal('180000'))
        self.assertEqual(Decimal(response.data['discount_total']), Decimal('20000'))
        self.assertEqual(Decimal(response.data['total_value']), Decimal('160000'))
        self.assertEqual(response.data['items'], [])

        lines = {line['product']: line for line in response.data['combo_items']}
        self.assertEqual(lines[self.paracetamol.id]['quantity'], 4)
        self.assertEqual(lines[self.vitamin.id]['combo_quantity'], 2)
        self.assertEqual([(a['lot_number'], a['quantity']) for a in lines[self.vitamin.id]['lot_allocations']],
                         [('V-OLD', 2)])
        self.assertEqual(Inventory.objects.get(product=self.paracetamol, warehouse=self.warehouse).quantity, 96)

    def test_empty_cart_rejected(self):
        response = self.checkout(items=[], combos=[])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_points_redeemed_and_earned(self):
        patient = TestDataFactory.create_patient(loyalty_points=20)
        response = self.checkout(
            items=[{'product': self.paracetamol.id, 'quantity': 10}],
            patient=patient.id, points_to_redeem=15,
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        # 200,000 - 15 points x 1,000
        self.assertEqual(Decimal(response.data['points_discount']), Decimal('15000'))
        self.assertEqual(Decimal(response.data['total_value']), Decimal('185000'))
        # 185,000 / 10,000 per point
        self.assertEqual(response.data['points_earned'], 18)
        patient.refresh_from_db()
        self.assertEqual(patient.loyalty_points, 20 - 15 + 18)
        self.assertEqual(
            list(PointsHistory.objects.filter(patient=patient).order_by('id').values_list('transaction_type', flat=True)),
            ['redeem', 'earn'],
        )

    def test_points_cannot_exceed_balance(self):
        patient = TestDataFactory.create_patient(loyalty_points=3)
        response = self.checkout(patient=patient.id, points_to_redeem=5)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_points_cannot_exceed_total(self):
        patient = TestDataFactory.create_patient(loyalty_points=100)
        response = self.checkout(patient=patient.id, points_to_redeem=41)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_points_need_patient(self):
        response = self.checkout(points_to_redeem=1)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_default_fund_setting(self):
        other = TestDataFactory.create_fund(name='Shift 2')
        Setting.objects.create(key='pos_default_fund', value=str(other.id))
        response = self.checkout()
        self.assertEqual(response.data['fund'], other.id)

    def test_no_fund_configured(self):
        self.fund.delete()
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inactive_product_rejected(self):
        self.paracetamol.is_active = False
        self.paracetamol.save()
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cashier_without_warehouse(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_SALES]))
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.checkout(warehouse=self.warehouse.id)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)

    def test_doctor_cannot_sell(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_DOCTOR], warehouse=self.warehouse))
        response = self.checkout()
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_preview_matches_checkout_without_writing(self):
        TestDataFactory.create_promotion(type='fixed_amount', value='3000')
        data = {'items': [{'product': self.paracetamol.id, 'quantity': 2}]}
        preview = self.client.post('/api/v1/pos/preview/', data, format='json')
        self.assertEqual(preview.status_code, status.HTTP_200_OK)
        self.assertEqual(preview.data['total'], Decimal('34000'))
        self.assertFalse(SalesOrder.objects.exists())

        response = self.checkout(**data)
        self.assertEqual(Decimal(response.data['total_value']), preview.data['total'])

    def test_product_search(self):
        TestDataFactory.create_promotion(type='percentage', value='10', conditions={'manufacturers': 'DHG'})
        response = self.client.get('/api/v1/pos/products/?search=para')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)
        result = response.data['results'][0]
        self.assertEqual(result['stock'], 100)
        self.assertEqual(result['final_price'], Decimal('18000'))


class B2BOrderTests(TestCase):
    """Test B2B orders through picking and payment"""

    def setUp(self):
        cache.clear()
        self.warehouse = TestDataFactory.create_warehouse(is_b2b=True)
        self.sales = TestDataFactory.create_user(roles=[ROLE_SALES], warehouse=self.warehouse)
        self.picker = TestDataFactory.create_user(roles=[ROLE_WAREHOUSE])
        self.accountant = TestDataFactory.create_user(roles=[ROLE_ACCOUNTANT])
        self.client = AuthenticatedAPIClient()
        self.product = TestDataFactory.create_product(retail_price='30000', wholesale_price='25000',
                                                      enable_lot_management=True)
        TestDataFactory.create_lot(self.product, self.warehouse, 'B-1', 4, timezone.localdate() + timedelta(days=60))
        TestDataFactory.create_lot(self.product, self.warehouse, 'B-2', 10, timezone.localdate() + timedelta(days=400))

    def create_order(self, quantity=6):
        self.client.authenticate_user(self.sales)
        data = {'items': [{'product': self.product.id, 'quantity': quantity}], 'customer_name': 'Nha thuoc Minh Chau',
                'delivery_address': '12 Le Loi'}
        response = self.client.post('/api/v1/sales-orders/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def set_status(self, order_id, new_status):
        self.client.authenticate_user(self.picker)
        return self.client.post(f'/api/v1/sales-orders/{order_id}/picking-status/', {'status': new_status}, format='json')

    def test_order_priced_at_wholesale(self):
        order = self.create_order()
        self.assertTrue(order['order_code'].startswith('B2B-'))
        self.assertEqual(order['operational_status'], 'pending_packaging')
        self.assertEqual(order['payment_status'], 'unpaid')
        self.assertEqual(Decimal(order['total_value']), Decimal('150000'))
        # Stock is untouched until packaging
        self.assertEqual(Inventory.objects.get(product=self.product, warehouse=self.warehouse).quantity, 14)

    def test_packaging_takes_stock(self):
        order = self.create_order()
        response = self.set_status(order['id'], 'packaged')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        allocations = response.data['items'][0]['lot_allocations']
        self.assertEqual([(a['lot_number'], a['quantity']) for a in allocations], [('B-1', 4), ('B-2', 2)])
        self.assertEqual(Inventory.objects.get(product=self.product, warehouse=self.warehouse).quantity, 8)

    def test_cancel_after_packaging_restores_lots(self):
        order = self.create_order()
        self.set_status(order['id'], 'packaged')
        response = self.set_status(order['id'], 'cancelled')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(ProductLot.objects.get(lot_number='B-1').quantity, 4)
        self.assertEqual(ProductLot.objects.get(lot_number='B-1').status, 'active')
        self.assertEqual(ProductLot.objects.get(lot_number='B-2').quantity, 10)
        self.assertEqual(Inventory.objects.get(product=self.product, warehouse=self.warehouse).quantity, 14)

    def test_invalid_transition(self):
        order = self.create_order()
        response = self.set_status(order['id'], 'shipping')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_full_flow_and_payment(self):
        order = self.create_order()
        for new_status in ('packaged', 'shipping', 'completed'):
            response = self.set_status(order['id'], new_status)
            self.assertEqual(response.status_code, status.HTTP_200_OK)

        fund = TestDataFactory.create_fund(type='cash')
        self.client.authenticate_user(self.accountant)
        response = self.client.post(f"/api/v1/sales-orders/{order['id']}/payment/", {'fund': fund.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['payment_status'], 'paid')
        self.assertTrue(Transaction.objects.filter(reference_id=order['order_code'], amount=Decimal('150000')).exists())

        response = self.client.post(f"/api/v1/sales-orders/{order['id']}/payment/", {'fund': fund.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_packaging_fails_without_stock(self):
        order = self.create_order(quantity=20)
        response = self.set_status(order['id'], 'packaged')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(SalesOrder.objects.get(pk=order['id']).operational_status, 'pending_packaging')

    def test_pos_orders_skip_picking(self):
        fund = TestDataFactory.create_fund()
        plain = TestDataFactory.create_product(retail_price='1000')
        TestDataFactory.set_stock(plain, self.warehouse, 5)
        order = services.process_sale([{'product': plain, 'quantity': 1}], self.warehouse, fund=fund)
        response = self.set_status(order.id, 'packaged')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_order_list_filters(self):
        self.create_order()
        response = self.client.get('/api/v1/sales-orders/?order_type=b2b&operational_status=pending_packaging,packaged')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)


class B2BQuoteTests(TestCase):
    """Test B2B quotes from draft to the order they turn into"""

    def setUp(self):
        self.warehouse = TestDataFactory.create_warehouse(is_b2b=True)
        self.sales = TestDataFactory.create_user(roles=[ROLE_SALES], warehouse=self.warehouse)
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.sales)
        self.product = TestDataFactory.create_product(name='Amoxicillin 500mg', retail_price='30000',
                                                      wholesale_price='25000')
        self.other = TestDataFactory.create_product(name='Saline 500ml', retail_price='15000')

    def create_quote(self, **extra):
        data = {
            'customer_name': 'Nha thuoc Minh Chau',
            'customer_code': 'MC01',
            'customer_email': 'minhchau@example.com',
            'discount_percent': '10',
            'tax_percent': '8',
            'valid_until': str(timezone.localdate() + timedelta(days=30)),
            'items': [
                {'product': self.product.id, 'quantity': 10},
                {'product': self.other.id, 'quantity': 4, 'unit_price': '12500', 'discount_percent': '20'},
            ],
        }
        data.update(extra)
        return self.client.post('/api/v1/b2b-quotes/', data, format='json')

    def set_stage(self, quote_id, stage):
        return self.client.post(f'/api/v1/b2b-quotes/{quote_id}/stage/', {'stage': stage}, format='json')

    def test_create_computes_totals(self):
        response = self.create_quote()
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['stage'], 'draft')
        items = response.data['items']
        # 10 x 25000 at wholesale; 4 x 12500 less 20%
        self.assertEqual(Decimal(items[0]['unit_price']), Decimal('25000'))
        self.assertEqual(Decimal(items[0]['subtotal']), Decimal('250000'))
        self.assertEqual(Decimal(items[1]['discount_amount']), Decimal('10000'))
        self.assertEqual(Decimal(items[1]['subtotal']), Decimal('40000'))
        self.assertEqual(items[1]['product_name'], 'Saline 500ml')
        self.assertEqual(Decimal(response.data['subtotal']), Decimal('290000'))
        self.assertEqual(Decimal(response.data['discount_amount']), Decimal('29000'))
        self.assertEqual(Decimal(response.data['tax_amount']), Decimal('20880'))
        self.assertEqual(Decimal(response.data['total_value']), Decimal('281880'))

    def test_quote_numbers_run_per_month(self):
        first = self.create_quote().data['quote_number']
        second = self.create_quote().data['quote_number']
        prefix = f"BG-{timezone.localdate():%Y}-{timezone.localdate():%m}-"
        self.assertEqual(first, f'{prefix}001')
        self.assertEqual(second, f'{prefix}002')

    def test_quote_needs_items(self):
        response = self.create_quote(items=[])
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_valid_until_before_quote_date(self):
        response = self.create_quote(quote_date='2030-05-10', valid_until='2030-05-01')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_edit_recalculates(self):
        quote = self.create_quote().data
        response = self.client.patch(f"/api/v1/b2b-quotes/{quote['id']}/", {'discount_percent': '0', 'tax_percent': '0'},
                                     format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_value']), Decimal('290000'))

    def test_accepting_opens_b2b_order(self):
        quote = self.create_quote().data
        self.assertEqual(self.set_stage(quote['id'], 'sent').status_code, status.HTTP_200_OK)
        self.assertEqual(self.set_stage(quote['id'], 'negotiating').status_code, status.HTTP_200_OK)
        response = self.set_stage(quote['id'], 'accepted')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['stage'], 'accepted')

        order = SalesOrder.objects.get(pk=response.data['sales_order'])
        self.assertEqual(order.order_type, 'b2b')
        self.assertEqual(order.operational_status, 'pending_packaging')
        self.assertEqual(order.payment_status, 'unpaid')
        self.assertEqual(order.warehouse, self.warehouse)
        self.assertEqual(order.total_value, Decimal('281880'))
        self.assertEqual(order.customer_name, 'Nha thuoc Minh Chau')
        prices = {item.product_id: item.unit_price for item in order.items.all()}
        self.assertEqual(prices[self.other.id], Decimal('10000'))

        # an accepted quote is closed
        response = self.client.patch(f"/api/v1/b2b-quotes/{quote['id']}/", {'notes': 'late change'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.set_stage(quote['id'], 'cancelled').status_code, status.HTTP_400_BAD_REQUEST)

    def test_draft_cannot_be_accepted(self):
        quote = self.create_quote().data
        response = self.set_stage(quote['id'], 'accepted')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(SalesOrder.objects.exists())

    def test_expired_quote_cannot_be_accepted(self):
        quote = self.create_quote(quote_date=str(timezone.localdate() - timedelta(days=40)),
                                  valid_until=str(timezone.localdate() - timedelta(days=10))).data
        self.set_stage(quote['id'], 'sent')
        response = self.set_stage(quote['id'], 'accepted')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('expired', response.data['error'])
        self.assertEqual(B2BQuote.objects.get(pk=quote['id']).stage, 'sent')

    def test_only_drafts_can_be_deleted(self):
        draft = self.create_quote().data
        sent = self.create_quote().data
        self.set_stage(sent['id'], 'sent')
        self.assertEqual(self.client.delete(f"/api/v1/b2b-quotes/{sent['id']}/").status_code,
                         status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.delete(f"/api/v1/b2b-quotes/{draft['id']}/").status_code,
                         status.HTTP_204_NO_CONTENT)

    def test_list_and_stats(self):
        first = self.create_quote().data
        self.create_quote(customer_name='Benh vien Cho Ray', customer_code='CR')
        self.set_stage(first['id'], 'sent')

        response = self.client.get('/api/v1/b2b-quotes/', {'stage': 'sent'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/b2b-quotes/', {'search': 'cho ray'})
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['item_count'], 2)

        response = self.client.get('/api/v1/b2b-quotes/stats/')
        self.assertEqual(response.data['total_quotes'], 2)
        self.assertEqual(response.data['total_value'], Decimal('563760'))
        self.assertEqual(response.data['by_stage']['draft'], 1)
        self.assertEqual(response.data['by_stage']['sent'], 1)
        self.assertEqual(response.data['value_by_stage']['sent'], Decimal('281880'))

    def test_doctor_has_no_access(self):
        self.client.authenticate_user(TestDataFactory.create_user(roles=[ROLE_DOCTOR]))
        response = self.client.get('/api/v1/b2b-quotes/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
