"""
Test suite for the Pricing module
Tests: best-price selection, promotion conditions, cart pricing, combos, vouchers and the quote endpoint
"""
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace
from django.core.cache import cache
from django.test import TestCase, SimpleTestCase
from django.utils import timezone
from rest_framework import status
from backend.core.exceptions import BusinessRuleError
from backend.core.permissions import ROLE_MANAGER, ROLE_SALES
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.pricing import services
from backend.pricing.engine import calculate_best_price, calculate_voucher_discount, price_cart, detect_combos
from backend.pricing.models import Voucher, Combo


def product(retail_price, manufacturer='', category=''):
    return SimpleNamespace(retail_price=retail_price, manufacturer=manufacturer, category=category)


def promo(type, value, name='promo', **conditions):
    return SimpleNamespace(type=type, value=value, name=name, conditions=conditions)


class BestPriceTests(SimpleTestCase):
    """Test calculate_best_price"""

    def test_no_promotions_keeps_retail_price(self):
        price = calculate_best_price(product(Decimal('100000')), [])
        self.assertEqual(price.final_price, Decimal('100000'))
        self.assertEqual(price.original_price, Decimal('100000'))
        self.assertIsNone(price.applied_promotion)

    def test_lowest_price_wins(self):
        ten_percent = promo('percentage', Decimal('10'), 'ten')
        fixed = promo('fixed_amount', Decimal('15000'), 'fixed')
        price = calculate_best_price(product(Decimal('100000')), [ten_percent, fixed])
        self.assertEqual(price.final_price, Decimal('85000'))
        self.assertIs(price.applied_promotion, fixed)

    def test_first_promotion_wins_a_tie(self):
        first = promo('percentage', Decimal('10'), 'first')
        second = promo('fixed_amount', Decimal('10000'), 'second')
        price = calculate_best_price(product(Decimal('100000')), [first, second])
        self.assertEqual(price.final_price, Decimal('90000'))
        self.assertIs(price.applied_promotion, first)

    def test_fixed_amount_above_price_goes_negative(self):
        fixed = promo('fixed_amount', Decimal('50000'))
        price = calculate_best_price(product(Decimal('20000')), [fixed])
        self.assertEqual(price.final_price, Decimal('-30000'))
        self.assertIs(price.applied_promotion, fixed)

    def test_missing_or_zero_retail_price(self):
        for retail_price in (None, Decimal('0')):
            price = calculate_best_price(product(retail_price), [promo('percentage', Decimal('10'))])
            self.assertEqual(price.final_price, Decimal('0'))
            self.assertEqual(price.original_price, Decimal('0'))
            self.assertIsNone(price.applied_promotion)

    def test_result_is_rounded_half_up(self):
        price = calculate_best_price(product(Decimal('12345')), [promo('percentage', Decimal('10'))])
        # 11110.5 rounds up
        self.assertEqual(price.final_price, Decimal('11111'))

    def test_unknown_type_is_ignored(self):
        price = calculate_best_price(product(Decimal('100')), [promo('bogo', Decimal('50'))])
        self.assertEqual(price.final_price, Decimal('100'))
        self.assertIsNone(price.applied_promotion)

    def test_manufacturer_condition(self):
        sanofi_only = promo('percentage', Decimal('20'), manufacturers='Sanofi')
        self.assertEqual(
            calculate_best_price(product(Decimal('1000'), manufacturer='Sanofi'), [sanofi_only]).final_price,
            Decimal('800'),
        )
        self.assertEqual(
            calculate_best_price(product(Decimal('1000'), manufacturer='Pfizer'), [sanofi_only]).final_price,
            Decimal('1000'),
        )

    def test_product_without_manufacturer_matches_any(self):
        sanofi_only = promo('percentage', Decimal('20'), manufacturers='Sanofi')
        price = calculate_best_price(product(Decimal('1000')), [sanofi_only])
        self.assertEqual(price.final_price, Decimal('800'))

    def test_category_list_condition(self):
        vitamins = promo('fixed_amount', Decimal('100'), product_categories=['Vitamin', 'Supplement'])
        self.assertEqual(
            calculate_best_price(product(Decimal('1000'), category='Supplement'), [vitamins]).final_price,
            Decimal('900'),
        )
        self.assertEqual(
            calculate_best_price(product(Decimal('1000'), category='Antibiotic'), [vitamins]).final_price,
            Decimal('1000'),
        )

    def test_empty_condition_list_matches_everything(self):
        anything = promo('fixed_amount', Decimal('100'), product_categories=[])
        price = calculate_best_price(product(Decimal('1000'), category='Antibiotic'), [anything])
        self.assertEqual(price.final_price, Decimal('900'))

    def test_min_order_value(self):
        big_orders = promo('percentage', Decimal('10'), min_order_value=500000)
        item = product(Decimal('100000'))
        self.assertEqual(calculate_best_price(item, [big_orders], order_subtotal=Decimal('400000')).final_price,
                         Decimal('100000'))
        self.assertEqual(calculate_best_price(item, [big_orders], order_subtotal=Decimal('500000')).final_price,
                         Decimal('90000'))
        # Without a subtotal the condition is not checked
        self.assertEqual(calculate_best_price(item, [big_orders]).final_price, Decimal('90000'))

    def test_dict_promotions_are_accepted(self):
        price = calculate_best_price(
            {'retail_price': '50000', 'manufacturer': 'Traphaco', 'category': ''},
            [{'type': 'fixed_amount', 'value': '5000', 'conditions': {'manufacturers': ['Traphaco']}}],
        )
        self.assertEqual(price.final_price, Decimal('45000'))


class CartPricingTests(SimpleTestCase):
    """Test price_cart and voucher discounts"""

    def test_cart_totals(self):
        a = product(Decimal('100000'), category='Analgesic')
        b = product(Decimal('50000'), category='Vitamin')
        vitamins = promo('percentage', Decimal('20'), product_categories='Vitamin')
        quote = price_cart([(a, 2), (b, 3)], [vitamins])
        self.assertEqual(quote.original_total, Decimal('350000'))
        self.assertEqual(quote.item_total, Decimal('320000'))
        self.assertEqual(quote.promotion_discount, Decimal('30000'))
        self.assertEqual(quote.total, Decimal('320000'))

    def test_min_order_value_uses_cart_subtotal(self):
        item = product(Decimal('100000'))
        big_orders = promo('fixed_amount', Decimal('10000'), min_order_value=300000)
        self.assertEqual(price_cart([(item, 2)], [big_orders]).item_total, Decimal('200000'))
        self.assertEqual(price_cart([(item, 3)], [big_orders]).item_total, Decimal('270000'))

    def test_voucher_applies_after_item_promotions(self):
        item = product(Decimal('100000'))
        quote = price_cart([(item, 2)], [promo('percentage', Decimal('10'))],
                           voucher_promotion=promo('fixed_amount', Decimal('30000')))
        self.assertEqual(quote.item_total, Decimal('180000'))
        self.assertEqual(quote.voucher_discount, Decimal('30000'))
        self.assertEqual(quote.total, Decimal('150000'))

    def test_voucher_discount_capped_at_amount(self):
        self.assertEqual(calculate_voucher_discount(promo('fixed_amount', Decimal('50000')), Decimal('20000')),
                         Decimal('20000'))

    def test_voucher_min_order_value(self):
        voucher_promo = promo('percentage', Decimal('10'), min_order_value=100000)
        self.assertEqual(calculate_voucher_discount(voucher_promo, Decimal('99000')), Decimal('0'))
        self.assertEqual(calculate_voucher_discount(voucher_promo, Decimal('150000')), Decimal('15000'))

    def test_combo_sells_at_its_own_price(self):
        syrup = SimpleNamespace(id=1, retail_price=Decimal('60000'), manufacturer='', category='')
        spray = SimpleNamespace(id=2, retail_price=Decimal('40000'), manufacturer='', category='')
        cold_pack = {'combo_price': '85000', 'items': [{'product': syrup, 'quantity': 1},
                                                     {'product': spray, 'quantity': 1}]}
        quote = price_cart([(syrup, 1)], [promo('percentage', Decimal('50'))], combos=[(cold_pack, 2)])
        self.assertEqual(quote.combo_lines[0].line_total, Decimal('170000'))
        self.assertEqual(quote.combo_lines[0].original_total, Decimal('200000'))
        # the promotion reaches the loose syrup only
        self.assertEqual(quote.item_total, Decimal('200000'))
        self.assertEqual(quote.original_total, Decimal('260000'))


class ComboDetectionTests(SimpleTestCase):
    """Test detect_combos"""

    def setUp(self):
        self.syrup = SimpleNamespace(id=1, retail_price=Decimal('60000'))
        self.spray = SimpleNamespace(id=2, retail_price=Decimal('40000'))
        self.combo = {'name': 'Cold pack', 'combo_price': '150000',
                      'items': [{'product': self.syrup, 'quantity': 2}, {'product': self.spray, 'quantity': 1}]}

    def test_all_components_in_cart(self):
        matches = detect_combos([(self.syrup, 1), (self.spray, 1), (self.syrup, 1)], [self.combo])
        self.assertEqual(len(matches), 1)
        self.assertEqual(matches[0].original_price, Decimal('160000'))
        self.assertEqual(matches[0].discount_amount, Decimal('10000'))
        self.assertEqual(matches[0].discount_percentage, Decimal('6.25'))

    def test_short_quantity_does_not_match(self):
        self.assertEqual(detect_combos([(self.syrup, 1), (self.spray, 5)], [self.combo]), [])

    def test_combo_without_items_never_matches(self):
        empty = {'combo_price': '0', 'items': []}
        self.assertEqual(detect_combos([(self.syrup, 3)], [empty]), [])


class VoucherServiceTests(TestCase):
    """Test voucher lookup and usage limits"""

    def setUp(self):
        self.promotion = TestDataFactory.create_promotion(type='fixed_amount', value='20000')

    def test_single_use_voucher(self):
        voucher = TestDataFactory.create_voucher(self.promotion, code='WELCOME1')
        services.redeem_voucher('welcome1')
        voucher.refresh_from_db()
        self.assertEqual(voucher.times_used, 1)
        self.assertIsNotNone(voucher.last_used_at)
        with self.assertRaises(BusinessRuleError):
            services.get_usable_voucher('WELCOME1')

    def test_unlimited_voucher(self):
        voucher = TestDataFactory.create_voucher(self.promotion, usage_limit=0)
        for _ in range(3):
            services.redeem_voucher(voucher.code)
        voucher.refresh_from_db()
        self.assertEqual(voucher.times_used, 3)
        self.assertIsNone(voucher.remaining_uses)

    def test_voucher_of_expired_promotion(self):
        self.promotion.end_date = timezone.now() - timedelta(days=1)
        self.promotion.save()
        voucher = TestDataFactory.create_voucher(self.promotion)
        with self.assertRaises(BusinessRuleError):
            services.get_usable_voucher(voucher.code)

    def test_unknown_voucher(self):
        with self.assertRaises(BusinessRuleError):
            services.get_usable_voucher('NOPE')

    def test_generate_vouchers(self):
        vouchers = services.generate_vouchers(self.promotion, 5, prefix='tet', usage_limit=2)
        self.assertEqual(len({v.code for v in vouchers}), 5)
        self.assertTrue(all(v.code.startswith('TET') for v in vouchers))
        self.assertEqual(Voucher.objects.filter(promotion=self.promotion, usage_limit=2).count(), 5)

    def test_redeem_checks_minimum_order(self):
        big_orders = TestDataFactory.create_promotion(type='percentage', value='10',
                                                      conditions={'min_order_value': 500000})
        voucher = TestDataFactory.create_voucher(big_orders, code='BIGONLY')
        with self.assertRaises(BusinessRuleError):
            services.redeem_voucher('BIGONLY', order_amount=Decimal('200000'))
        with self.assertRaises(BusinessRuleError):
            services.redeem_voucher('BIGONLY')
        voucher.refresh_from_db()
        self.assertEqual(voucher.times_used, 0)

        services.redeem_voucher('BIGONLY', order_amount=Decimal('500000'))
        voucher.refresh_from_db()
        self.assertEqual(voucher.times_used, 1)

    def test_check_quote_rejects_negative_line(self):
        fixed = TestDataFactory.create_promotion(name='Minus 50k', type='fixed_amount', value='50000')
        cheap = TestDataFactory.create_product(name='Vitamin C', retail_price='20000')
        quote = price_cart([(cheap, 1)], [fixed])
        with self.assertRaises(BusinessRuleError) as ctx:
            services.check_quote(quote)
        self.assertIn('below zero', ctx.exception.message)
        self.assertEqual(ctx.exception.details['promotion'], fixed.id)


class ActivePromotionsTests(TestCase):
    """Test which promotions are running and the cache around them"""

    def setUp(self):
        cache.clear()

    def test_only_running_promotions(self):
        now = timezone.now()
        running = TestDataFactory.create_promotion(name='running')
        TestDataFactory.create_promotion(name='inactive', is_active=False)
        TestDataFactory.create_promotion(name='future', start_date=now + timedelta(days=1))
        TestDataFactory.create_promotion(name='past', end_date=now - timedelta(days=1))
        self.assertEqual([p.id for p in services.get_active_promotions()], [running.id])

    def test_cache_is_invalidated_on_change(self):
        self.assertEqual(services.get_active_promotions(), [])
        promotion = TestDataFactory.create_promotion()
        self.assertEqual([p.id for p in services.get_active_promotions()], [promotion.id])
        promotion.is_active = False
        promotion.save()
        self.assertEqual(services.get_active_promotions(), [])


class PricingAPITests(TestCase):
    """Test promotion, voucher and quote endpoints"""

    def setUp(self):
        cache.clear()
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.cashier = TestDataFactory.create_user(roles=[ROLE_SALES])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)
        self.product = TestDataFactory.create_product(retail_price='200000', manufacturer='Sanofi')

    def test_create_promotion(self):
        data = {'name': 'Sanofi week', 'type': 'percentage', 'value': '15',
                'conditions': {'manufacturers': ['Sanofi']}}
        response = self.client.post('/api/v1/promotions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['conditions'], {'manufacturers': ['Sanofi']})

    def test_percentage_over_100_rejected(self):
        data = {'name': 'Too much', 'type': 'percentage', 'value': '150'}
        response = self.client.post('/api/v1/promotions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cashier_cannot_create_promotion(self):
        self.client.authenticate_user(self.cashier)
        data = {'name': 'Nope', 'type': 'fixed_amount', 'value': '1000'}
        response = self.client.post('/api/v1/promotions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_quote_with_promotion_and_voucher(self):
        TestDataFactory.create_promotion(type='percentage', value='10', conditions={'manufacturers': 'Sanofi'})
        voucher_promo = TestDataFactory.create_promotion(type='fixed_amount', value='50000', is_active=True,
                                                         conditions={'manufacturers': 'Nobody'})
        TestDataFactory.create_voucher(voucher_promo, code='SAVE50')
        self.client.authenticate_user(self.cashier)
        data = {'items': [{'product': self.product.id, 'quantity': 2}], 'voucher_code': 'save50'}
        response = self.client.post('/api/v1/quote/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'][0]['final_price'], Decimal('180000'))
        self.assertEqual(response.data['item_total'], Decimal('360000'))
        self.assertEqual(response.data['voucher_discount'], Decimal('50000'))
        self.assertEqual(response.data['total'], Decimal('310000'))
        self.assertEqual(response.data['voucher_code'], 'SAVE50')

    def test_quote_unknown_product(self):
        response = self.client.post('/api/v1/quote/', {'items': [{'product': 999999, 'quantity': 1}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_quote_used_up_voucher(self):
        promotion = TestDataFactory.create_promotion(type='fixed_amount', value='1000')
        voucher = TestDataFactory.create_voucher(promotion)
        services.redeem_voucher(voucher.code)
        data = {'items': [{'product': self.product.id, 'quantity': 1}], 'voucher_code': voucher.code}
        response = self.client.post('/api/v1/quote/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('usage limit', response.data['error'])

    def test_generate_voucher_batch(self):
        promotion = TestDataFactory.create_promotion()
        response = self.client.post('/api/v1/vouchers/generate/',
                                    {'promotion': promotion.id, 'count': 3, 'prefix': 'VIP'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data), 3)

    def test_quote_rejects_line_below_zero(self):
        TestDataFactory.create_promotion(type='fixed_amount', value='250000')
        data = {'items': [{'product': self.product.id, 'quantity': 1}]}
        response = self.client.post('/api/v1/quote/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('below zero', response.data['error'])

    def test_quote_voucher_below_minimum_order(self):
        big_orders = TestDataFactory.create_promotion(type='percentage', value='10', is_active=True,
                                                      conditions={'min_order_value': 500000, 'manufacturers': 'Nobody'})
        TestDataFactory.create_voucher(big_orders, code='BIGONLY')
        data = {'items': [{'product': self.product.id, 'quantity': 1}], 'voucher_code': 'BIGONLY'}
        response = self.client.post('/api/v1/quote/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['details']['min_order_value'], '500000')

        data['items'][0]['quantity'] = 3
        response = self.client.post('/api/v1/quote/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['voucher_discount'], Decimal('60000'))

    def test_redeem_endpoint_checks_order_amount(self):
        big_orders = TestDataFactory.create_promotion(conditions={'min_order_value': 500000})
        voucher = TestDataFactory.create_voucher(big_orders, code='BIGONLY')
        response = self.client.post('/api/v1/vouchers/redeem/', {'code': 'BIGONLY', 'order_amount': '100000'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/vouchers/redeem/', {'code': 'BIGONLY', 'order_amount': 'lots'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        voucher.refresh_from_db()
        self.assertEqual(voucher.times_used, 0)

        response = self.client.post('/api/v1/vouchers/redeem/', {'code': 'BIGONLY', 'order_amount': '600000'},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['times_used'], 1)


class ComboAPITests(TestCase):
    """Test combo management, detection and combo pricing in quotes"""

    def setUp(self):
        cache.clear()
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.cashier = TestDataFactory.create_user(roles=[ROLE_SALES])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)
        self.syrup = TestDataFactory.create_product(name='Cough syrup', retail_price='60000')
        self.spray = TestDataFactory.create_product(name='Nasal spray', retail_price='40000')

    def test_create_combo(self):
        data = {
            'name': 'Cold pack', 'combo_price': '85000',
            'items': [{'product': self.syrup.id, 'quantity': 1}, {'product': self.spray.id, 'quantity': 1}],
        }
        response = self.client.post('/api/v1/combos/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['original_price'], Decimal('100000'))
        self.assertEqual([item['product_name'] for item in response.data['items']], ['Cough syrup', 'Nasal spray'])

    def test_combo_needs_products(self):
        response = self.client.post('/api/v1/combos/', {'name': 'Empty', 'combo_price': '1000', 'items': []},
                                    format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_product_rejected(self):
        data = {'name': 'Twice', 'combo_price': '1000',
                'items': [{'product': self.syrup.id, 'quantity': 1}, {'product': self.syrup.id, 'quantity': 2}]}
        response = self.client.post('/api/v1/combos/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Combo.objects.filter(name='Twice').exists())

    def test_cashier_cannot_create_combo(self):
        self.client.authenticate_user(self.cashier)
        data = {'name': 'Nope', 'combo_price': '1000', 'items': [{'product': self.syrup.id, 'quantity': 1}]}
        response = self.client.post('/api/v1/combos/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_replaces_items(self):
        combo = TestDataFactory.create_combo([(self.syrup, 1), (self.spray, 1)])
        response = self.client.patch(f'/api/v1/combos/{combo.id}/', {
            'combo_price': '100000', 'items': [{'product': self.syrup.id, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['combo_price'], '100000.00')
        self.assertEqual([(i['product'], i['quantity']) for i in response.data['items']], [(self.syrup.id, 2)])

    def test_delete_deactivates(self):
        combo = TestDataFactory.create_combo([(self.syrup, 1)])
        response = self.client.delete(f'/api/v1/combos/{combo.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        combo.refresh_from_db()
        self.assertFalse(combo.is_active)

    def test_detect_combos_in_cart(self):
        cold_pack = TestDataFactory.create_combo([(self.syrup, 1), (self.spray, 1)], combo_price='85000')
        TestDataFactory.create_combo([(self.syrup, 1), (self.spray, 1)], combo_price='80000', is_active=False)
        TestDataFactory.create_combo([(self.syrup, 3)], combo_price='150000')
        self.client.authenticate_user(self.cashier)
        response = self.client.post('/api/v1/combos/detect/', {
            'items': [{'product': self.syrup.id, 'quantity': 1}, {'product': self.spray.id, 'quantity': 2}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([m['combo']['id'] for m in response.data], [cold_pack.id])
        self.assertEqual(response.data[0]['discount_amount'], Decimal('15000'))
        self.assertEqual(response.data[0]['discount_percentage'], Decimal('15.00'))

    def test_quote_with_combo(self):
        combo = TestDataFactory.create_combo([(self.syrup, 1), (self.spray, 1)], combo_price='85000')
        data = {'items': [{'product': self.spray.id, 'quantity': 1}], 'combos': [{'combo': combo.id, 'quantity': 2}]}
        response = self.client.post('/api/v1/quote/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['combos'][0]['line_total'], Decimal('170000'))
        self.assertEqual(response.data['item_total'], Decimal('210000'))
        self.assertEqual(response.data['original_total'], Decimal('240000'))

    def test_quote_with_inactive_combo(self):
        combo = TestDataFactory.create_combo([(self.syrup, 1)], is_active=False)
        response = self.client.post('/api/v1/quote/', {'combos': [{'combo': combo.id, 'quantity': 1}]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('not active', response.data['error'])
