import logging
import uuid
from decimal import Decimal

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from backend.core.cache_utils import cached_value, ACTIVE_PROMOTIONS_KEY, ACTIVE_PROMOTIONS_CACHE_TTL
from backend.core.exceptions import BusinessRuleError
from .models import Promotion, Voucher, Combo, ComboItem

logger = logging.getLogger(__name__)


def running_promotions_queryset(at=None):
    at = at or timezone.now()
    return Promotion.objects.filter(is_active=True).filter(
        Q(start_date__isnull=True) | Q(start_date__lte=at)
    ).filter(
        Q(end_date__isnull=True) | Q(end_date__gte=at)
    ).order_by('id')


@cached_value(ACTIVE_PROMOTIONS_KEY, ACTIVE_PROMOTIONS_CACHE_TTL)
def get_active_promotions():
    """Running promotions in creation order; cached and invalidated on change"""
    return list(running_promotions_queryset())


def generate_voucher_code(prefix=''):
    prefix = (prefix or '').strip().upper()
    code = f"{prefix}{uuid.uuid4().hex[:8].upper()}"
    while Voucher.objects.filter(code=code).exists():
        code = f"{prefix}{uuid.uuid4().hex[:8].upper()}"
    return code


@transaction.atomic
def generate_vouchers(promotion, count, prefix='', usage_limit=1):
    if count <= 0:
        raise BusinessRuleError('Count must be greater than zero')
    vouchers = [
        Voucher.objects.create(promotion=promotion, code=generate_voucher_code(prefix), usage_limit=usage_limit)
        for _ in range(count)
    ]
    logger.info(f"Generated {len(vouchers)} vouchers for promotion {promotion.id}")
    return vouchers


def get_usable_voucher(code, lock=False):
    """
    Fetch a voucher and check it can be used now.
    With lock=True the row is locked, so the caller must be inside a transaction.
    """
    vouchers = Voucher.objects.select_related('promotion')
    if lock:
        vouchers = vouchers.select_for_update()
    try:
        voucher = vouchers.get(code__iexact=code.strip())
    except Voucher.DoesNotExist:
        raise BusinessRuleError(f'Voucher {code} not found')
    if not voucher.is_active:
        raise BusinessRuleError(f'Voucher {voucher.code} is not active')
    if voucher.usage_limit and voucher.times_used >= voucher.usage_limit:
        raise BusinessRuleError(f'Voucher {voucher.code} has reached its usage limit')
    if not voucher.promotion.is_running():
        raise BusinessRuleError(f'Promotion of voucher {voucher.code} is not running')
    return voucher


def mark_voucher_used(voucher):
    voucher.times_used += 1
    voucher.last_used_at = timezone.now()
    voucher.save(update_fields=['times_used', 'last_used_at'])
    return voucher


def check_voucher_minimum(voucher, order_amount):
    """A voucher whose promotion sets min_order_value cannot be used on a smaller order"""
    min_order_value = (voucher.promotion.conditions or {}).get('min_order_value')
    if not min_order_value:
        return
    if order_amount is None:
        raise BusinessRuleError(
            f'Voucher {voucher.code} needs the order amount to check its minimum of {min_order_value}'
        )
    if Decimal(str(order_amount)) < Decimal(str(min_order_value)):
        raise BusinessRuleError(
            f'Voucher {voucher.code} needs an order of at least {min_order_value}',
            details={'min_order_value': str(min_order_value), 'order_amount': str(order_amount)},
        )


def check_quote(quote, voucher=None):
    """
    Refuse a priced cart that cannot be sold: a promotion took a line below
    zero, or the voucher's minimum order is not reached.
    """
    for line in quote.lines:
        if line.price.final_price < 0:
            promotion = line.price.applied_promotion
            raise BusinessRuleError(
                f'Promotion {promotion.name} prices {line.product.name} below zero',
                details={'product': line.product.id, 'promotion': promotion.id,
                         'final_price': str(line.price.final_price)},
            )
    if voucher is not None:
        check_voucher_minimum(voucher, quote.item_total)


@transaction.atomic
def redeem_voucher(code, order_amount=None):
    voucher = get_usable_voucher(code, lock=True)
    check_voucher_minimum(voucher, order_amount)
    return mark_voucher_used(voucher)


def active_combos():
    return list(Combo.objects.filter(is_active=True).prefetch_related('items__product').order_by('id'))


def _set_combo_items(combo, items):
    if not items:
        raise BusinessRuleError('A combo needs at least one product')
    seen = set()
    for item in items:
        if item['product'].id in seen:
            raise BusinessRuleError(f'Product {item["product"].name} is listed twice in the combo')
        seen.add(item['product'].id)
    combo.items.all().delete()
    ComboItem.objects.bulk_create([
        ComboItem(combo=combo, product=item['product'], quantity=item['quantity']) for item in items
    ])


@transaction.atomic
def create_combo(data, items, user=None):
    combo = Combo.objects.create(created_by=user, **data)
    _set_combo_items(combo, items)
    logger.info(f"Combo {combo.name} created with {len(items)} products")
    return combo


@transaction.atomic
def update_combo(combo, data, items=None):
    """Replace the combo's fields; `items`, when given, replaces its product list"""
    for key, value in data.items():
        setattr(combo, key, value)
    combo.save()
    if items is not None:
        _set_combo_items(combo, items)
    return combo


def deactivate_combo(combo):
    combo.is_active = False
    combo.save(update_fields=['is_active', 'updated_at'])
    logger.info(f"Combo {combo.name} deactivated")
    return combo


def resolve_cart_combos(entries):
    """
    Merge {'combo': Combo, 'quantity': int} entries into (combo, quantity)
    pairs, refusing inactive or empty combos.
    """
    merged = {}
    for entry in entries or []:
        combo = entry['combo']
        if not combo.is_active:
            raise BusinessRuleError(f'Combo {combo.name} is not active')
        if combo.id in merged:
            merged[combo.id] = (combo, merged[combo.id][1] + entry['quantity'])
        else:
            merged[combo.id] = (combo, entry['quantity'])
    pairs = list(merged.values())
    for combo, _ in pairs:
        if not combo.items.exists():
            raise BusinessRuleError(f'Combo {combo.name} has no products')
    return pairs
