"""
Best-price promotion selection.

Pure functions: they read the product and promotion attributes they need and
never touch the database, so the POS preview and checkout price identically.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional, Tuple

ZERO = Decimal('0')
ONE = Decimal('1')
HUNDRED = Decimal('100')


@dataclass(frozen=True)
class PriceInfo:
    final_price: Decimal
    original_price: Decimal
    applied_promotion: Optional[Any] = None


@dataclass
class CartLine:
    product: Any
    quantity: int
    price: PriceInfo

    @property
    def line_total(self) -> Decimal:
        return self.price.final_price * self.quantity

    @property
    def original_total(self) -> Decimal:
        return self.price.original_price * self.quantity


@dataclass
class ComboLine:
    """A combo sold as one unit; its components are priced at retail for reference"""
    combo: Any
    quantity: int
    unit_price: Decimal
    original_price: Decimal
    components: List[Tuple[Any, int]] = field(default_factory=list)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def original_total(self) -> Decimal:
        return self.original_price * self.quantity


@dataclass(frozen=True)
class ComboMatch:
    combo: Any
    original_price: Decimal
    combo_price: Decimal

    @property
    def discount_amount(self) -> Decimal:
        return self.original_price - self.combo_price

    @property
    def discount_percentage(self) -> Decimal:
        if self.original_price <= ZERO:
            return ZERO
        return (self.discount_amount / self.original_price * HUNDRED).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


@dataclass
class CartQuote:
    lines: List[CartLine] = field(default_factory=list)
    combo_lines: List[ComboLine] = field(default_factory=list)
    item_total: Decimal = ZERO
    original_total: Decimal = ZERO
    voucher_discount: Decimal = ZERO

    @property
    def promotion_discount(self) -> Decimal:
        return self.original_total - self.item_total

    @property
    def total(self) -> Decimal:
        return max(self.item_total - self.voucher_discount, ZERO)


def _get(obj, name, default=None):
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _to_decimal(value):
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(amount: Decimal) -> Decimal:
    """Round to a whole currency unit, halves away from zero"""
    return amount.quantize(ONE, rounding=ROUND_HALF_UP)


def _matches(condition, product_value):
    """A condition excludes a product only when both sides are set and differ"""
    if not condition or not product_value:
        return True
    if isinstance(condition, str):
        return condition == product_value
    if isinstance(condition, (list, tuple, set)):
        values = [c for c in condition if c]
        return not values or product_value in values
    return True


def is_applicable(product, promotion, order_subtotal=None) -> bool:
    conditions = _get(promotion, 'conditions') or {}
    if not _matches(conditions.get('manufacturers'), _get(product, 'manufacturer')):
        return False
    if not _matches(conditions.get('product_categories'), _get(product, 'category')):
        return False
    min_order_value = _to_decimal(conditions.get('min_order_value'))
    if order_subtotal is not None and min_order_value and _to_decimal(order_subtotal) < min_order_value:
        return False
    return True


def discounted_price(price: Decimal, promotion) -> Optional[Decimal]:
    """
    Price after one promotion, or None for an unknown type or missing value.
    A fixed amount larger than the price gives a negative result; checkout
    refuses such a line instead of selling it for free.
    """
    value = _to_decimal(_get(promotion, 'value'))
    if value is None:
        return None
    promo_type = _get(promotion, 'type')
    if promo_type == 'percentage':
        candidate = price * (ONE - value / HUNDRED)
    elif promo_type == 'fixed_amount':
        candidate = price - value
    else:
        return None
    return candidate


def calculate_best_price(product, promotions, order_subtotal=None) -> PriceInfo:
    """
    Lowest price for a product over the applicable promotions.

    A later promotion only replaces the current best when strictly cheaper,
    so on ties the first one in `promotions` wins. The result is rounded to
    a whole currency unit.
    """
    retail_price = _to_decimal(_get(product, 'retail_price'))
    if retail_price is None or retail_price <= ZERO:
        return PriceInfo(ZERO, ZERO, None)

    best_price = retail_price
    applied = None
    for promotion in promotions:
        if not is_applicable(product, promotion, order_subtotal):
            continue
        candidate = discounted_price(retail_price, promotion)
        if candidate is not None and candidate < best_price:
            best_price = candidate
            applied = promotion

    return PriceInfo(round_currency(best_price), retail_price, applied)


def calculate_voucher_discount(promotion, amount) -> Decimal:
    """Order-level discount of a voucher's promotion on an amount, capped at the amount"""
    amount = _to_decimal(amount)
    if amount is None or amount <= ZERO:
        return ZERO
    conditions = _get(promotion, 'conditions') or {}
    min_order_value = _to_decimal(conditions.get('min_order_value'))
    if min_order_value and amount < min_order_value:
        return ZERO
    discounted = discounted_price(amount, promotion)
    if discounted is None:
        return ZERO
    return round_currency(min(amount - discounted, amount))


def combo_components(combo):
    """(product, quantity per combo) pairs of a combo object or dict"""
    items = _get(combo, 'items') or []
    if hasattr(items, 'all'):
        items = items.all()
    return [(_get(item, 'product'), int(_get(item, 'quantity') or 1)) for item in items]


def combo_original_price(components) -> Decimal:
    return sum(
        ((_to_decimal(_get(product, 'retail_price')) or ZERO) * quantity for product, quantity in components),
        ZERO,
    )


def detect_combos(items, combos) -> List[ComboMatch]:
    """
    Combos the cart could be sold as: every component product is in the cart
    in at least the quantity the combo needs. A combo without components
    never matches.
    """
    in_cart = {}
    for product, quantity in items:
        key = _get(product, 'id')
        in_cart[key] = in_cart.get(key, 0) + int(quantity)

    matches = []
    for combo in combos:
        components = combo_components(combo)
        if not components:
            continue
        if all(in_cart.get(_get(product, 'id'), 0) >= quantity for product, quantity in components):
            matches.append(ComboMatch(
                combo=combo,
                original_price=combo_original_price(components),
                combo_price=_to_decimal(_get(combo, 'combo_price')) or ZERO,
            ))
    return matches


def price_cart(items, promotions, voucher_promotion=None, combos=None) -> CartQuote:
    """
    Price every (product, quantity) pair, plus any (combo, quantity) pairs.

    The cart's undiscounted subtotal is what min_order_value conditions are
    checked against. Combos sell at their own price and take no promotion.
    """
    items = [(product, int(quantity)) for product, quantity in items]
    subtotal = sum(
        ((_to_decimal(_get(product, 'retail_price')) or ZERO) * quantity for product, quantity in items),
        ZERO,
    )

    quote = CartQuote()
    for product, quantity in items:
        line = CartLine(product, quantity, calculate_best_price(product, promotions, order_subtotal=subtotal))
        quote.lines.append(line)
        quote.item_total += line.line_total
        quote.original_total += line.original_total

    for combo, quantity in combos or []:
        components = combo_components(combo)
        line = ComboLine(
            combo=combo,
            quantity=int(quantity),
            unit_price=_to_decimal(_get(combo, 'combo_price')) or ZERO,
            original_price=combo_original_price(components),
            components=components,
        )
        quote.combo_lines.append(line)
        quote.item_total += line.line_total
        quote.original_total += line.original_total

    if voucher_promotion is not None:
        quote.voucher_discount = calculate_voucher_discount(voucher_promotion, quote.item_total)
    return quote
