"""
Checkout and B2B order handling.

A checkout prices the cart with the promotion engine, writes the order,
takes stock out first-expiry-first, books the income and settles loyalty
points in one database transaction.
"""
import logging
import uuid
from collections import OrderedDict
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from backend.core.exceptions import BusinessRuleError
from backend.core.models import Setting
from backend.finance.models import Fund
from backend.finance.services import record_sale_income
from backend.inventory.services import deduct_stock, add_stock, add_lot_quantity, sync_lots_to_inventory
from backend.locations.models import Warehouse
from backend.parties.models import Patient
from backend.parties.services import (
    add_points, redeem_points, calculate_points_to_earn, calculate_discount_from_points,
)
from backend.pricing.engine import price_cart, round_currency
from backend.pricing.services import (
    get_active_promotions, get_usable_voucher, mark_voucher_used, check_quote, resolve_cart_combos,
)
from .models import SalesOrder, SalesOrderItem, SalesComboItem, B2BQuote, B2BQuoteItem

logger = logging.getLogger(__name__)

ZERO = Decimal('0')

PICKING_TRANSITIONS = {
    'pending_packaging': ['packaged', 'cancelled'],
    'packaged': ['shipping', 'cancelled'],
    'shipping': ['completed'],
    'completed': [],
    'cancelled': [],
}

QUOTE_STAGE_TRANSITIONS = {
    'draft': ['sent', 'cancelled'],
    'sent': ['negotiating', 'accepted', 'rejected', 'expired', 'cancelled'],
    'negotiating': ['sent', 'accepted', 'rejected', 'expired', 'cancelled'],
    'accepted': [],
    'rejected': [],
    'expired': [],
    'cancelled': [],
}

EDITABLE_QUOTE_STAGES = ('draft', 'sent', 'negotiating')


def generate_order_code(prefix='POS'):
    order_code = f"{prefix}-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
    while SalesOrder.objects.filter(order_code=order_code).exists():
        order_code = f"{prefix}-{timezone.now().strftime('%Y%m%d')}-{str(uuid.uuid4())[:8].upper()}"
    return order_code


def resolve_sale_warehouse(user, warehouse_id=None):
    """Explicit warehouse, else the one the cashier is assigned to"""
    if warehouse_id:
        try:
            warehouse = Warehouse.objects.get(pk=warehouse_id)
        except Warehouse.DoesNotExist:
            raise BusinessRuleError(f'Warehouse {warehouse_id} not found')
    else:
        warehouse = getattr(user, 'warehouse', None)
        if warehouse is None:
            raise BusinessRuleError('No warehouse selected and the user is not assigned to one')
    if not warehouse.is_active:
        raise BusinessRuleError(f'Warehouse {warehouse.name} is not active')
    return warehouse


def get_default_fund():
    """Fund named by the pos_default_fund setting, else the first active cash fund"""
    fund_id = Setting.get_value('pos_default_fund')
    if fund_id:
        fund = Fund.objects.filter(pk=fund_id, is_active=True).first()
        if fund:
            return fund
        logger.warning(f"Setting pos_default_fund points to missing or inactive fund {fund_id}")
    return Fund.objects.filter(type='cash', is_active=True).order_by('id').first()


def merge_cart_items(items):
    """Collapse repeated products into one (product, quantity) pair, keeping first-seen order"""
    merged = OrderedDict()
    for item in items:
        product = item['product']
        if not product.is_active:
            raise BusinessRuleError(f'Product {product.name} is not active')
        if product.id in merged:
            merged[product.id] = (product, merged[product.id][1] + item['quantity'])
        else:
            merged[product.id] = (product, item['quantity'])
    return list(merged.values())


def _allocations_payload(allocations):
    return [{'lot_id': lot.id, 'lot_number': lot.lot_number, 'quantity': qty} for lot, qty in allocations]


def build_sale_quote(items, voucher=None, patient=None, points_to_redeem=0, combos=None):
    """
    Price a cart for preview or checkout.

    Returns (quote, points_discount). A line priced below zero or a voucher
    whose minimum order is not met rejects the cart. Points are checked
    against the patient's balance and may not exceed what is left to pay.
    """
    quote = price_cart(
        merge_cart_items(items),
        get_active_promotions(),
        voucher_promotion=voucher.promotion if voucher else None,
        combos=resolve_cart_combos(combos),
    )
    check_quote(quote, voucher)
    points_discount = ZERO
    if points_to_redeem:
        if patient is None:
            raise BusinessRuleError('A patient is required to redeem points')
        if points_to_redeem > patient.loyalty_points:
            raise BusinessRuleError(
                f'Insufficient points. Available: {patient.loyalty_points}, Required: {points_to_redeem}'
            )
        points_discount = Decimal(calculate_discount_from_points(points_to_redeem))
        if points_discount > quote.total:
            raise BusinessRuleError('Points discount exceeds the order total')
    return quote, points_discount


@transaction.atomic
def process_sale(items, warehouse, user=None, patient=None, voucher_code=None, points_to_redeem=0,
                 payment_method='cash', fund=None, notes='', combos=None):
    """
    Complete a POS sale.

    `items` is a list of {'product': Product, 'quantity': int} and `combos` a
    list of {'combo': Combo, 'quantity': int}. Any failure (stock, voucher,
    points) rolls back the whole sale.
    """
    if not items and not combos:
        raise BusinessRuleError('Cart is empty')

    fund = fund or get_default_fund()
    if fund is None:
        raise BusinessRuleError('No fund configured to receive POS payments')
    if not fund.is_active:
        raise BusinessRuleError(f'Fund {fund.name} is not active')

    if patient is not None:
        patient = Patient.objects.select_for_update().get(pk=patient.pk)

    voucher = get_usable_voucher(voucher_code, lock=True) if voucher_code else None
    quote, points_discount = build_sale_quote(items, voucher, patient, points_to_redeem, combos)
    total_value = quote.total - points_discount

    order = SalesOrder.objects.create(
        order_code=generate_order_code('POS'),
        order_type='pos',
        patient=patient,
        customer_name=patient.full_name if patient else '',
        customer_phone=(patient.phone or '') if patient else '',
        warehouse=warehouse,
        subtotal=quote.original_total,
        discount_total=quote.promotion_discount,
        voucher=voucher,
        voucher_discount=quote.voucher_discount,
        points_redeemed=points_to_redeem or 0,
        points_discount=points_discount,
        total_value=total_value,
        payment_method=payment_method,
        payment_status='paid',
        operational_status='completed',
        fund=fund,
        notes=notes,
        created_by=user,
    )

    for line in quote.lines:
        allocations = deduct_stock(line.product, warehouse, line.quantity)
        SalesOrderItem.objects.create(
            order=order,
            product=line.product,
            quantity=line.quantity,
            original_price=line.price.original_price,
            unit_price=line.price.final_price,
            promotion=line.price.applied_promotion,
            lot_allocations=_allocations_payload(allocations),
        )

    for combo_line in quote.combo_lines:
        for product, per_combo in combo_line.components:
            quantity = per_combo * combo_line.quantity
            allocations = deduct_stock(product, warehouse, quantity)
            SalesComboItem.objects.create(
                order=order,
                combo=combo_line.combo,
                combo_quantity=combo_line.quantity,
                combo_price=combo_line.unit_price,
                product=product,
                quantity=quantity,
                unit_price=product.retail_price or ZERO,
                lot_allocations=_allocations_payload(allocations),
            )

    if voucher:
        mark_voucher_used(voucher)

    if points_to_redeem:
        redeem_points(patient.id, points_to_redeem, reference_type='sales_order',
                      reference_id=order.order_code, description=f'Redeemed on {order.order_code}', user=user)

    if total_value > 0:
        record_sale_income(fund, total_value, order.order_code, user=user, payment_method=payment_method)

    if patient is not None:
        points = calculate_points_to_earn(total_value)
        if points > 0:
            add_points(patient.id, points, reference_type='sales_order', reference_id=order.order_code,
                       description=f'Earned on {order.order_code}', user=user)
            order.points_earned = points
            order.save(update_fields=['points_earned'])

    logger.info(
        f"Sale {order.order_code} completed: {len(quote.lines)} lines, {len(quote.combo_lines)} combos, "
        f"total {total_value}"
    )
    return order


@transaction.atomic
def create_b2b_order(items, warehouse, user=None, customer_name='', customer_phone='', delivery_address='',
                     patient=None, notes=''):
    """
    Open a B2B order priced at wholesale. Stock is taken when the order is
    packaged, not when it is created.
    """
    if not items:
        raise BusinessRuleError('Order has no items')
    if not customer_name and patient is None:
        raise BusinessRuleError('Customer name is required for B2B orders')

    order = SalesOrder.objects.create(
        order_code=generate_order_code('B2B'),
        order_type='b2b',
        patient=patient,
        customer_name=customer_name or patient.full_name,
        customer_phone=customer_phone,
        delivery_address=delivery_address,
        warehouse=warehouse,
        payment_status='unpaid',
        operational_status='pending_packaging',
        notes=notes,
        created_by=user,
    )
    total = ZERO
    for product, quantity in merge_cart_items(items):
        retail_price = product.retail_price or ZERO
        unit_price = product.wholesale_price or retail_price
        SalesOrderItem.objects.create(
            order=order, product=product, quantity=quantity,
            original_price=retail_price, unit_price=unit_price,
        )
        total += unit_price * quantity

    order.subtotal = total
    order.total_value = total
    order.save(update_fields=['subtotal', 'total_value'])
    logger.info(f"B2B order {order.order_code} created for {order.customer_name}")
    return order


def _restore_stock(order):
    for item in order.items.select_related('product'):
        if item.lot_allocations:
            for allocation in item.lot_allocations:
                add_lot_quantity(item.product, order.warehouse, allocation['lot_number'], allocation['quantity'])
            sync_lots_to_inventory(item.product, order.warehouse)
        elif not item.product.enable_lot_management:
            add_stock(item.product, order.warehouse, item.quantity)
        item.lot_allocations = []
        item.save(update_fields=['lot_allocations'])


@transaction.atomic
def update_picking_status(order, new_status, user=None):
    """
    Move a B2B order through packaging and delivery.

    Packaging takes the stock (FEFO for lot-managed products); cancelling a
    packaged order puts it back into the same lots.
    """
    order = SalesOrder.objects.select_for_update().get(pk=order.pk)
    if order.order_type != 'b2b':
        raise BusinessRuleError('Only B2B orders go through picking')

    old_status = order.operational_status
    if new_status not in PICKING_TRANSITIONS.get(old_status, []):
        raise BusinessRuleError(f'Cannot change order status from {old_status} to {new_status}')

    if new_status == 'packaged':
        for item in order.items.select_related('product'):
            allocations = deduct_stock(item.product, order.warehouse, item.quantity)
            item.lot_allocations = _allocations_payload(allocations)
            item.save(update_fields=['lot_allocations'])
    elif new_status == 'cancelled' and old_status == 'packaged':
        _restore_stock(order)

    order.operational_status = new_status
    order.save(update_fields=['operational_status', 'updated_at'])
    logger.info(f"Order {order.order_code} status {old_status} -> {new_status}")
    return order, old_status


@transaction.atomic
def record_order_payment(order, fund, user=None, payment_method='bank'):
    """Collect the full amount of an unpaid B2B order into a fund"""
    order = SalesOrder.objects.select_for_update().get(pk=order.pk)
    if order.payment_status == 'paid':
        raise BusinessRuleError(f'Order {order.order_code} is already paid')
    if order.operational_status == 'cancelled':
        raise BusinessRuleError(f'Order {order.order_code} is cancelled')
    if not fund.is_active:
        raise BusinessRuleError(f'Fund {fund.name} is not active')

    if order.total_value > 0:
        record_sale_income(fund, order.total_value, order.order_code, user=user, payment_method=payment_method)
    order.payment_status = 'paid'
    order.payment_method = payment_method
    order.fund = fund
    order.save(update_fields=['payment_status', 'payment_method', 'fund', 'updated_at'])
    return order


def generate_quote_number(on=None):
    """BG-YYYY-MM-NNN, numbered from 001 each month"""
    on = on or timezone.localdate()
    prefix = f"BG-{on:%Y}-{on:%m}-"
    last = (
        B2BQuote.objects.filter(quote_number__startswith=prefix)
        .order_by('-quote_number')
        .values_list('quote_number', flat=True)
        .first()
    )
    sequence = int(last.rsplit('-', 1)[1]) + 1 if last else 1
    return f"{prefix}{sequence:03d}"


def _percent_of(amount, percent):
    return round_currency(amount * (percent or ZERO) / Decimal('100'))


def _set_quote_items(quote, items):
    if not items:
        raise BusinessRuleError('A quote needs at least one item')
    quote.items.all().delete()
    for item in items:
        product = item['product']
        unit_price = item.get('unit_price')
        if unit_price is None:
            unit_price = product.wholesale_price or product.retail_price or ZERO
        gross = unit_price * item['quantity']
        discount_percent = item.get('discount_percent') or ZERO
        discount_amount = _percent_of(gross, discount_percent)
        B2BQuoteItem.objects.create(
            quote=quote,
            product=product,
            product_name=product.name,
            product_sku=product.sku or '',
            quantity=item['quantity'],
            unit_price=unit_price,
            discount_percent=discount_percent,
            discount_amount=discount_amount,
            subtotal=gross - discount_amount,
            notes=item.get('notes', ''),
        )


def recalculate_quote_totals(quote):
    """Quote discount comes off the item subtotal; tax is charged on what remains"""
    subtotal = sum((item.subtotal for item in quote.items.all()), ZERO)
    discount_amount = _percent_of(subtotal, quote.discount_percent)
    taxable = subtotal - discount_amount
    tax_amount = _percent_of(taxable, quote.tax_percent)
    quote.subtotal = subtotal
    quote.discount_amount = discount_amount
    quote.tax_amount = tax_amount
    quote.total_value = taxable + tax_amount
    quote.save(update_fields=['subtotal', 'discount_amount', 'tax_amount', 'total_value', 'updated_at'])
    return quote


@transaction.atomic
def create_b2b_quote(data, items, user=None):
    quote = B2BQuote.objects.create(quote_number=generate_quote_number(), created_by=user, **data)
    _set_quote_items(quote, items)
    recalculate_quote_totals(quote)
    logger.info(f"Quote {quote.quote_number} created for {quote.customer_name}: {quote.total_value}")
    return quote


@transaction.atomic
def update_b2b_quote(quote, data, items=None):
    quote = B2BQuote.objects.select_for_update().get(pk=quote.pk)
    if quote.stage not in EDITABLE_QUOTE_STAGES:
        raise BusinessRuleError(f'Quote {quote.quote_number} is {quote.stage} and can no longer be edited')
    for key, value in data.items():
        setattr(quote, key, value)
    quote.save()
    if items is not None:
        _set_quote_items(quote, items)
    return recalculate_quote_totals(quote)


def delete_b2b_quote(quote):
    if quote.stage != 'draft':
        raise BusinessRuleError(f'Only draft quotes can be deleted; {quote.quote_number} is {quote.stage}')
    quote.delete()


def _order_from_quote(quote, warehouse, user=None):
    order = SalesOrder.objects.create(
        order_code=generate_order_code('B2B'),
        order_type='b2b',
        customer_name=quote.customer_name,
        customer_phone=quote.customer_phone,
        delivery_address=quote.customer_address,
        warehouse=warehouse,
        subtotal=quote.subtotal,
        discount_total=quote.discount_amount,
        total_value=quote.total_value,
        payment_status='unpaid',
        operational_status='pending_packaging',
        notes=f'From quote {quote.quote_number}',
        created_by=user,
    )
    for item in quote.items.select_related('product'):
        SalesOrderItem.objects.create(
            order=order,
            product=item.product,
            quantity=item.quantity,
            original_price=item.unit_price,
            unit_price=(item.subtotal / item.quantity).quantize(Decimal('0.01')),
        )
    return order


@transaction.atomic
def change_quote_stage(quote, new_stage, user=None, warehouse_id=None):
    """
    Move a quote along its negotiation stages.

    Accepting needs the quote to still be valid and opens a B2B order at the
    quoted prices, waiting for packaging.
    """
    quote = B2BQuote.objects.select_for_update().get(pk=quote.pk)
    old_stage = quote.stage
    if new_stage not in QUOTE_STAGE_TRANSITIONS.get(old_stage, []):
        raise BusinessRuleError(f'Cannot change quote stage from {old_stage} to {new_stage}')

    update_fields = ['stage', 'updated_at']
    if new_stage == 'accepted':
        if quote.valid_until and quote.valid_until < timezone.localdate():
            raise BusinessRuleError(f'Quote {quote.quote_number} expired on {quote.valid_until}')
        warehouse = resolve_sale_warehouse(user, quote.warehouse_id or warehouse_id)
        quote.sales_order = _order_from_quote(quote, warehouse, user)
        update_fields.append('sales_order')

    quote.stage = new_stage
    quote.save(update_fields=update_fields)
    logger.info(f"Quote {quote.quote_number} stage {old_stage} -> {new_stage}")
    return quote, old_stage


def quote_stats(queryset=None):
    queryset = B2BQuote.objects.all() if queryset is None else queryset
    by_stage = {stage: 0 for stage, _ in B2BQuote.STAGE_CHOICES}
    value_by_stage = {stage: ZERO for stage, _ in B2BQuote.STAGE_CHOICES}
    for row in queryset.order_by().values('stage').annotate(count=Count('id'), value=Sum('total_value')):
        by_stage[row['stage']] = row['count']
        value_by_stage[row['stage']] = row['value'] or ZERO
    return {
        'total_quotes': sum(by_stage.values()),
        'total_value': sum(value_by_stage.values(), ZERO),
        'by_stage': by_stage,
        'value_by_stage': value_by_stage,
    }
