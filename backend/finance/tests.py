"""
Test suite for the Finance module
Tests: cash counting, income/expense workflow, fund balances, internal transfers and reports
"""
from decimal import Decimal
from django.test import TestCase, SimpleTestCase
from django.utils import timezone
from rest_framework import status
from backend.core.exceptions import BusinessRuleError
from backend.core.permissions import ROLE_ACCOUNTANT, ROLE_MANAGER, ROLE_SALES
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.finance import services
from backend.finance.denominations import count_cash, DENOMINATIONS
from backend.finance.models import Bank, Transaction


class CashCountTests(SimpleTestCase):
    """Test the denomination counter"""

    def test_total(self):
        result = count_cash({'500000': 2, '200000': 1, 10000: 3, '500': 4})
        self.assertEqual(result.total, Decimal('1232000'))
        self.assertIsNone(result.state)
        self.assertEqual(set(result.counts), set(DENOMINATIONS))
        self.assertEqual(result.counts[100000], 0)

    def test_match_surplus_shortage(self):
        counts = {'100000': 3}
        self.assertEqual(count_cash(counts, target=300000).state, 'match')
        self.assertEqual(count_cash(counts, target=250000).state, 'surplus')
        self.assertEqual(count_cash(counts, target=250000).difference, Decimal('50000'))
        self.assertEqual(count_cash(counts, target=350000).state, 'shortage')

    def test_empty_counts(self):
        result = count_cash({}, target=0)
        self.assertEqual(result.total, Decimal('0'))
        self.assertEqual(result.state, 'match')

    def test_blank_count_is_zero(self):
        self.assertEqual(count_cash({'50000': '', '20000': '2'}).total, Decimal('40000'))

    def test_unknown_denomination(self):
        with self.assertRaises(BusinessRuleError):
            count_cash({'300000': 1})

    def test_negative_or_fractional_count(self):
        with self.assertRaises(BusinessRuleError):
            count_cash({'1000': -1})
        with self.assertRaises(BusinessRuleError):
            count_cash({'1000': 1.5})

    def test_as_dict_uses_string_keys(self):
        data = count_cash({'200': 5}, target=1000).as_dict()
        self.assertEqual(data['counts']['200'], 5)
        self.assertEqual(data['state'], 'match')


class FundBalanceTests(TestCase):
    """Test that only executed transactions move balances"""

    def setUp(self):
        self.fund = TestDataFactory.create_fund(initial_balance='1000000')

    def test_balance_counts_only_executed(self):
        TestDataFactory.create_transaction(self.fund, 'income', '500000')
        TestDataFactory.create_transaction(self.fund, 'expense', '200000')
        TestDataFactory.create_transaction(self.fund, 'income', '999999', status='pending_collection')
        TestDataFactory.create_transaction(self.fund, 'expense', '999999', status='approved')
        TestDataFactory.create_transaction(self.fund, 'expense', '999999', status='rejected')
        self.assertEqual(services.fund_balance(self.fund), Decimal('1300000'))

        rows = {row['id']: row for row in services.fund_balances()}
        self.assertEqual(rows[self.fund.id]['balance'], Decimal('1300000'))
        self.assertEqual(rows[self.fund.id]['total_income'], Decimal('500000'))
        self.assertEqual(rows[self.fund.id]['total_expense'], Decimal('200000'))


class TransactionWorkflowTests(TestCase):
    """Test the income and expense lifecycles through the API"""

    def setUp(self):
        self.staff = TestDataFactory.create_user(roles=[ROLE_SALES])
        self.accountant = TestDataFactory.create_user(roles=[ROLE_ACCOUNTANT])
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.cash = TestDataFactory.create_fund(name='Cash drawer', initial_balance='500000')
        self.client = AuthenticatedAPIClient()

    def create_expense(self, amount='300000', **extra):
        self.client.authenticate_user(self.staff)
        data = {'type': 'expense', 'amount': amount, 'description': 'Printer ink', 'category': 'office'}
        data.update(extra)
        response = self.client.post('/api/v1/transactions/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        return response.data

    def test_expense_lifecycle(self):
        expense = self.create_expense()
        self.assertEqual(expense['status'], 'pending_approval')

        self.client.authenticate_user(self.accountant)
        response = self.client.post(f"/api/v1/transactions/{expense['id']}/execute/", {'fund': self.cash.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        self.client.authenticate_user(self.manager)
        response = self.client.post(f"/api/v1/transactions/{expense['id']}/approve/")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'approved')

        self.client.authenticate_user(self.accountant)
        counted = {'fund': self.cash.id, 'denomination_counts': {'200000': 1, '100000': 1}}
        response = self.client.post(f"/api/v1/transactions/{expense['id']}/execute/", counted, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'paid_out')
        self.assertEqual(response.data['transaction_date'], str(timezone.localdate()))
        self.assertEqual(services.fund_balance(self.cash), Decimal('200000'))

    def test_income_collection_with_denominations(self):
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/transactions/', {'type': 'income', 'amount': '250000'}, format='json')
        self.assertEqual(response.data['status'], 'pending_collection')
        tx_id = response.data['id']

        self.client.authenticate_user(self.accountant)
        wrong = {'fund': self.cash.id, 'denomination_counts': {'200000': 1}}
        response = self.client.post(f'/api/v1/transactions/{tx_id}/execute/', wrong, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('shortage', response.data['error'])

        right = {'fund': self.cash.id, 'denomination_counts': {'200000': 1, '50000': 1}}
        response = self.client.post(f'/api/v1/transactions/{tx_id}/execute/', right, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'collected')
        self.assertEqual(response.data['executed_denomination_counts']['200000'], 1)
        self.assertEqual(services.fund_balance(self.cash), Decimal('750000'))

    def test_cash_execution_needs_counted_notes(self):
        expense = self.create_expense(amount='100000')
        services.approve_transaction(Transaction.objects.get(pk=expense['id']), self.manager)
        self.client.authenticate_user(self.accountant)
        response = self.client.post(f"/api/v1/transactions/{expense['id']}/execute/", {'fund': self.cash.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Count the cash', response.data['error'])
        tx = Transaction.objects.get(pk=expense['id'])
        self.assertEqual(tx.status, 'approved')
        self.assertIsNone(tx.executed_denomination_counts)

    def test_bank_fund_execution_without_counts(self):
        bank = Bank.objects.create(name='Vietcombank', short_name='VCB', bin='970436')
        account = TestDataFactory.create_fund(name='VCB account', type='bank', initial_balance='1000000')
        account.bank = bank
        account.account_number = '0123456789'
        account.save()
        expense = self.create_expense(amount='100000')
        tx = services.approve_transaction(Transaction.objects.get(pk=expense['id']), self.manager)
        tx = services.execute_transaction(tx, account, self.accountant)
        self.assertEqual(tx.status, 'paid_out')

        other = services.approve_transaction(
            Transaction.objects.get(pk=self.create_expense(amount='1000')['id']), self.manager
        )
        with self.assertRaises(BusinessRuleError):
            services.execute_transaction(other, account, self.accountant, denomination_counts={'1000': 1})

    def test_transfer_category_is_reserved(self):
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/transactions/', {
            'type': 'expense', 'amount': '50000', 'description': 'Taxi', 'category': 'internal_transfer',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('category', response.data)

    def test_expense_cannot_overdraw_fund(self):
        expense = self.create_expense(amount='600000')
        services.approve_transaction(Transaction.objects.get(pk=expense['id']), self.manager)
        self.client.authenticate_user(self.accountant)
        response = self.client.post(f"/api/v1/transactions/{expense['id']}/execute/", {'fund': self.cash.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient balance', response.data['error'])
        self.assertEqual(Transaction.objects.get(pk=expense['id']).status, 'approved')

    def test_reject_expense(self):
        expense = self.create_expense()
        self.client.authenticate_user(self.manager)
        response = self.client.post(f"/api/v1/transactions/{expense['id']}/reject/", {'reason': 'Duplicate'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'rejected')
        self.assertEqual(response.data['rejection_reason'], 'Duplicate')

    def test_only_managers_approve(self):
        expense = self.create_expense()
        self.client.authenticate_user(self.accountant)
        response = self.client.post(f"/api/v1/transactions/{expense['id']}/approve/")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_bank_expense_gets_vietqr(self):
        Bank.objects.create(name='Vietcombank', short_name='VCB', bin='970436')
        expense = self.create_expense(payment_method='bank', recipient_bank='VCB', recipient_account='0123456789',
                                      recipient_name='NGUYEN VAN A')
        self.assertTrue(expense['qr_code_url'].startswith('https://img.vietqr.io/image/970436-0123456789-compact2.png'))
        self.assertIn('amount=300000', expense['qr_code_url'])

    def test_zero_amount_rejected(self):
        self.client.authenticate_user(self.staff)
        response = self.client.post('/api/v1/transactions/', {'type': 'expense', 'amount': '0'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_executed_transaction_is_locked(self):
        tx = TestDataFactory.create_transaction(self.cash, 'income', '1000', user=self.staff)
        self.client.authenticate_user(self.staff)
        response = self.client.delete(f'/api/v1/transactions/{tx.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_staff_cannot_list_transactions(self):
        self.client.authenticate_user(self.staff)
        response = self.client.get('/api/v1/transactions/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_with_status_filter(self):
        TestDataFactory.create_transaction(self.cash, 'income', '1000')
        TestDataFactory.create_transaction(self.cash, 'expense', '1000', status='pending_approval')
        self.client.authenticate_user(self.accountant)
        response = self.client.get('/api/v1/transactions/?status=pending_approval,approved')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)


class InternalTransferTests(TestCase):
    """Test moving money between funds"""

    def setUp(self):
        self.accountant = TestDataFactory.create_user(roles=[ROLE_ACCOUNTANT])
        self.cash = TestDataFactory.create_fund(initial_balance='1000000')
        self.safe = TestDataFactory.create_fund(initial_balance='0')
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.accountant)

    def test_transfer_creates_linked_pair(self):
        data = {'from_fund': self.cash.id, 'to_fund': self.safe.id, 'amount': '400000'}
        response = self.client.post('/api/v1/funds/transfer/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['outgoing']['status'], 'paid_out')
        self.assertEqual(response.data['incoming']['status'], 'collected')
        self.assertEqual(Transaction.objects.filter(transfer_pair_id=response.data['transfer_pair_id']).count(), 2)
        self.assertEqual(services.fund_balance(self.cash), Decimal('600000'))
        self.assertEqual(services.fund_balance(self.safe), Decimal('400000'))

    def test_transfer_cannot_exceed_balance(self):
        data = {'from_fund': self.cash.id, 'to_fund': self.safe.id, 'amount': '1000001'}
        response = self.client.post('/api/v1/funds/transfer/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Transaction.objects.exists())

    def test_transfer_to_same_fund(self):
        with self.assertRaises(BusinessRuleError):
            services.internal_transfer(self.cash, self.cash, Decimal('10'))

    def test_transfer_is_not_an_expense_in_reports(self):
        services.internal_transfer(self.cash, self.safe, Decimal('100000'), user=self.accountant)
        TestDataFactory.create_transaction(self.cash, 'expense', '50000')
        response = self.client.get('/api/v1/funds/expense-report/?start_date=2000-01-01&end_date=2100-01-01')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], Decimal('50000'))
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(
            f'/api/v1/funds/expense-report/?start_date=2000-01-01&end_date=2100-01-01&fund_id={self.cash.id}'
        )
        self.assertEqual(response.data['total'], Decimal('150000'))


class FundAPITests(TestCase):
    """Test fund endpoints"""

    def setUp(self):
        self.manager = TestDataFactory.create_user(roles=[ROLE_MANAGER])
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.manager)

    def test_bank_fund_requires_account(self):
        response = self.client.post('/api/v1/funds/', {'name': 'VCB', 'type': 'bank'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_fund_with_transactions_cannot_be_deleted(self):
        fund = TestDataFactory.create_fund()
        TestDataFactory.create_transaction(fund, 'income', '1000')
        response = self.client.delete(f'/api/v1/funds/{fund.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_balances_endpoint(self):
        TestDataFactory.create_fund(initial_balance='100')
        TestDataFactory.create_fund(initial_balance='250')
        response = self.client.get('/api/v1/funds/balances/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_balance'], Decimal('350'))

    def test_cash_count_endpoint(self):
        response = self.client.post('/api/v1/cash-count/', {'counts': {'100000': 2}, 'target': '150000'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], Decimal('200000'))
        self.assertEqual(response.data['state'], 'surplus')
