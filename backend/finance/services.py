"""
Money movements. Balances only count executed transactions
(collected income and paid-out expenses).
"""
import logging
import uuid
from decimal import Decimal
from urllib.parse import quote

from django.db import transaction
from django.db.models import Sum, Q, Count
from django.utils import timezone

from backend.core.exceptions import BusinessRuleError
from backend.core.utils import save_upload
from .denominations import count_cash
from .models import Fund, Transaction

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')
ATTACHMENT_DIR = 'transaction-attachments'
INTERNAL_TRANSFER_CATEGORY = 'internal_transfer'


def fund_balance(fund):
    totals = Transaction.objects.filter(fund=fund, status__in=Transaction.EXECUTED_STATUSES).aggregate(
        income=Sum('amount', filter=Q(type='income')),
        expense=Sum('amount', filter=Q(type='expense')),
    )
    return fund.initial_balance + (totals['income'] or ZERO) - (totals['expense'] or ZERO)


def fund_balances(funds=None):
    """Balance rows for every fund (or the given queryset)"""
    executed = Q(transactions__status__in=Transaction.EXECUTED_STATUSES)
    funds = (funds if funds is not None else Fund.objects.all()).select_related('bank').annotate(
        total_income=Sum('transactions__amount', filter=executed & Q(transactions__type='income')),
        total_expense=Sum('transactions__amount', filter=executed & Q(transactions__type='expense')),
    )
    rows = []
    for fund in funds:
        income = fund.total_income or ZERO
        expense = fund.total_expense or ZERO
        rows.append({
            'id': fund.id,
            'name': fund.name,
            'type': fund.type,
            'bank': fund.bank.short_name if fund.bank else None,
            'initial_balance': fund.initial_balance,
            'total_income': income,
            'total_expense': expense,
            'balance': fund.initial_balance + income - expense,
        })
    return rows


def expense_report(start_date, end_date, fund=None):
    """Executed expenses between two dates (inclusive), by category"""
    if start_date and end_date and end_date < start_date:
        raise BusinessRuleError('End date must be on or after start date')
    expenses = Transaction.objects.filter(type='expense', status='paid_out')
    if start_date:
        expenses = expenses.filter(transaction_date__gte=start_date)
    if end_date:
        expenses = expenses.filter(transaction_date__lte=end_date)
    if fund is not None:
        expenses = expenses.filter(fund=fund)
    if not fund:
        expenses = expenses.exclude(category=INTERNAL_TRANSFER_CATEGORY)

    by_category = [
        {'category': row['category'] or 'uncategorized', 'total': row['total'], 'count': row['count']}
        for row in expenses.values('category').annotate(total=Sum('amount'), count=Count('id')).order_by('-total')
    ]
    return {
        'start_date': start_date,
        'end_date': end_date,
        'total': expenses.aggregate(total=Sum('amount'))['total'] or ZERO,
        'count': expenses.count(),
        'by_category': by_category,
    }


def build_vietqr_url(bank_bin, account_number, amount, description='', account_name=''):
    """VietQR image link a payer can scan to transfer the amount"""
    info = description or 'Thanh toan'
    amount = int(Decimal(str(amount)))
    return (
        f"https://img.vietqr.io/image/{bank_bin}-{account_number}-compact2.png"
        f"?amount={amount}&addInfo={quote(info)}&accountName={quote(account_name or '')}"
    )


def save_attachment(upload):
    """Store a receipt or invoice scan and return its public URL"""
    return save_upload(upload, ATTACHMENT_DIR)


def initial_status(transaction_type):
    return 'pending_collection' if transaction_type == 'income' else 'pending_approval'


def create_transaction(data, user=None, bank=None):
    """
    Create a pending income/expense voucher. Cash income may carry the
    counted denominations; bank expenses get a VietQR code.
    """
    data = dict(data)
    if data.get('amount') is None or data['amount'] <= 0:
        raise BusinessRuleError('Amount must be greater than zero')
    counts = data.pop('initial_denomination_counts', None)
    if counts:
        data['initial_denomination_counts'] = count_cash(counts).as_dict()['counts']
    if data['type'] == 'expense' and data.get('payment_method') == 'bank' and bank and bank.bin \
            and data.get('recipient_account'):
        data['qr_code_url'] = build_vietqr_url(
            bank.bin, data['recipient_account'], data['amount'],
            data.get('description', ''), data.get('recipient_name', ''),
        )
    data.setdefault('transaction_date', timezone.localdate())
    return Transaction.objects.create(status=initial_status(data['type']), created_by=user, **data)


def _lock(tx):
    return Transaction.objects.select_for_update().get(pk=tx.pk)


@transaction.atomic
def approve_transaction(tx, user):
    tx = _lock(tx)
    if tx.type != 'expense' or tx.status != 'pending_approval':
        raise BusinessRuleError(f'Only expenses pending approval can be approved (status: {tx.status})')
    tx.status = 'approved'
    tx.approved_by = user
    tx.approved_at = timezone.now()
    tx.save(update_fields=['status', 'approved_by', 'approved_at', 'updated_at'])
    return tx


@transaction.atomic
def reject_transaction(tx, user, reason=''):
    tx = _lock(tx)
    if tx.type != 'expense' or tx.status not in ('pending_approval', 'approved'):
        raise BusinessRuleError(f'Only pending or approved expenses can be rejected (status: {tx.status})')
    tx.status = 'rejected'
    tx.approved_by = user
    tx.approved_at = timezone.now()
    tx.rejection_reason = reason or ''
    tx.save(update_fields=['status', 'approved_by', 'approved_at', 'rejection_reason', 'updated_at'])
    return tx


@transaction.atomic
def execute_transaction(tx, fund, user, denomination_counts=None):
    """
    Collect an income or pay out an approved expense through a fund.

    Cash funds need the counted notes, which must add up to the amount.
    An expense may not take the fund below zero.
    """
    tx = _lock(tx)
    fund = Fund.objects.select_for_update().get(pk=fund.pk)
    if not fund.is_active:
        raise BusinessRuleError(f'Fund {fund.name} is not active')

    if tx.type == 'income':
        if tx.status != 'pending_collection':
            raise BusinessRuleError(f'Income is not awaiting collection (status: {tx.status})')
        new_status = 'collected'
    else:
        if tx.status != 'approved':
            raise BusinessRuleError(f'Expense must be approved before it is paid out (status: {tx.status})')
        balance = fund_balance(fund)
        if balance < tx.amount:
            raise BusinessRuleError(f'Insufficient balance in {fund.name}. Available: {balance}, Required: {tx.amount}')
        new_status = 'paid_out'

    if fund.type == 'cash':
        if not denomination_counts:
            raise BusinessRuleError(f'Count the cash before executing through {fund.name}')
        cash = count_cash(denomination_counts, target=tx.amount)
        if cash.state != 'match':
            raise BusinessRuleError(
                f'Counted cash {cash.total} does not match the amount {tx.amount} ({cash.state})'
            )
        tx.executed_denomination_counts = cash.as_dict()['counts']
    elif denomination_counts:
        raise BusinessRuleError('Denomination counts only apply to cash funds')

    tx.fund = fund
    tx.status = new_status
    tx.executed_by = user
    tx.executed_at = timezone.now()
    tx.save()
    logger.info(f"Transaction {tx.id} {new_status} via fund {fund.id}")
    return tx


def record_sale_income(fund, amount, reference_id, user=None, payment_method='cash', description=''):
    """Collected income for a completed sale; caller provides the transaction"""
    now = timezone.now()
    return Transaction.objects.create(
        fund=fund,
        type='income',
        amount=amount,
        description=description or f'Sale {reference_id}',
        category='sales',
        transaction_date=timezone.localdate(),
        status='collected',
        payment_method=payment_method,
        reference_type='sales_order',
        reference_id=str(reference_id),
        created_by=user,
        executed_by=user,
        executed_at=now,
    )


@transaction.atomic
def internal_transfer(from_fund, to_fund, amount, user=None, description=''):
    """
    Move money between two funds as a paid-out expense and a collected
    income sharing one transfer_pair_id.
    """
    if from_fund.pk == to_fund.pk:
        raise BusinessRuleError('Source and destination funds must be different')
    if amount is None or amount <= 0:
        raise BusinessRuleError('Transfer amount must be greater than zero')

    # Lock in id order so two opposite transfers cannot deadlock
    locked = {f.pk: f for f in Fund.objects.select_for_update().filter(pk__in=[from_fund.pk, to_fund.pk]).order_by('pk')}
    from_fund, to_fund = locked[from_fund.pk], locked[to_fund.pk]
    if not from_fund.is_active or not to_fund.is_active:
        raise BusinessRuleError('Both funds must be active')

    balance = fund_balance(from_fund)
    if balance < amount:
        raise BusinessRuleError(f'Insufficient balance in {from_fund.name}. Available: {balance}, Required: {amount}')

    pair_id = uuid.uuid4()
    now = timezone.now()
    today = timezone.localdate()
    description = description or 'Internal transfer'
    common = {
        'amount': amount,
        'category': INTERNAL_TRANSFER_CATEGORY,
        'transaction_date': today,
        'payment_method': 'bank' if 'bank' in (from_fund.type, to_fund.type) else 'cash',
        'transfer_pair_id': pair_id,
        'created_by': user,
        'approved_by': user,
        'approved_at': now,
        'executed_by': user,
        'executed_at': now,
    }
    outgoing = Transaction.objects.create(
        fund=from_fund, type='expense', status='paid_out',
        description=f'{description} -> {to_fund.name}', **common
    )
    incoming = Transaction.objects.create(
        fund=to_fund, type='income', status='collected',
        description=f'{description} <- {from_fund.name}', **common
    )
    logger.info(f"Internal transfer {pair_id}: {amount} from fund {from_fund.id} to fund {to_fund.id}")
    return outgoing, incoming
