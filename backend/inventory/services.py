"""
Stock movements. Every function expects to run inside the caller's
transaction; rows are locked with select_for_update before they change.
"""
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import F, Sum
from django.utils import timezone

from backend.core.exceptions import BusinessRuleError
from .models import Inventory, ProductLot, DEFAULT_LOT_NUMBER

logger = logging.getLogger(__name__)


def lock_inventory(product, warehouse):
    inventory, _ = Inventory.objects.select_for_update().get_or_create(
        product=product, warehouse=warehouse, defaults={'quantity': 0}
    )
    return inventory


def add_stock(product, warehouse, quantity):
    """Increase the inventory row of a product that is not lot-managed"""
    inventory = lock_inventory(product, warehouse)
    inventory.quantity = F('quantity') + quantity
    inventory.save(update_fields=['quantity', 'updated_at'])
    inventory.refresh_from_db(fields=['quantity'])
    return inventory


def add_lot_quantity(product, warehouse, lot_number, quantity, expiry_date=None, received_date=None):
    """Put quantity into a lot, creating the lot on first receipt"""
    lot_number = (lot_number or '').strip() or DEFAULT_LOT_NUMBER
    lot, created = ProductLot.objects.select_for_update().get_or_create(
        product=product,
        warehouse=warehouse,
        lot_number=lot_number,
        defaults={
            'quantity': 0,
            'expiry_date': expiry_date,
            'received_date': received_date or timezone.localdate(),
        },
    )
    lot.quantity += quantity
    if lot.expiry_date is None and expiry_date:
        lot.expiry_date = expiry_date
    if lot.quantity > 0 and lot.status == 'depleted':
        lot.status = 'active'
    lot.save()
    return lot


def sync_lots_to_inventory(product, warehouse=None):
    """
    Set inventory quantity to the sum of the product's lot quantities,
    per warehouse (or only for the given warehouse).

    Returns {warehouse_id: quantity}.
    """
    lots = ProductLot.objects.filter(product=product)
    if warehouse is not None:
        lots = lots.filter(warehouse=warehouse)
    totals = {
        row['warehouse_id']: row['total'] or 0
        for row in lots.values('warehouse_id').annotate(total=Sum('quantity'))
    }
    if warehouse is not None:
        totals.setdefault(warehouse.id, 0)

    for warehouse_id, total in totals.items():
        inventory, _ = Inventory.objects.select_for_update().get_or_create(
            product=product, warehouse_id=warehouse_id, defaults={'quantity': 0}
        )
        if inventory.quantity != total:
            inventory.quantity = total
            inventory.save(update_fields=['quantity', 'updated_at'])

    lots.filter(quantity__lte=0, status='active').update(status='depleted')
    return totals


def deduct_stock(product, warehouse, quantity):
    """
    Remove quantity from stock.

    Lot-managed products are consumed first-expiry-first-out from active,
    unexpired lots. Returns a list of (lot, quantity) allocations; empty for
    products without lot management. Raises BusinessRuleError rather than
    letting stock go negative.
    """
    if quantity <= 0:
        raise BusinessRuleError('Quantity must be greater than zero')

    if not product.enable_lot_management:
        inventory = lock_inventory(product, warehouse)
        if inventory.quantity < quantity:
            raise BusinessRuleError(
                f'Insufficient stock for {product.name}. Available: {inventory.quantity}, Required: {quantity}'
            )
        inventory.quantity -= quantity
        inventory.save(update_fields=['quantity', 'updated_at'])
        return []

    today = timezone.localdate()
    lots = list(
        ProductLot.objects.select_for_update()
        .filter(product=product, warehouse=warehouse, status='active', quantity__gt=0)
        .exclude(expiry_date__lt=today)
        .order_by(F('expiry_date').asc(nulls_last=True), 'id')
    )
    available = sum(lot.quantity for lot in lots)
    if available < quantity:
        raise BusinessRuleError(
            f'Insufficient stock for {product.name}. Available: {available}, Required: {quantity}'
        )

    allocations = []
    remaining = quantity
    for lot in lots:
        if remaining == 0:
            break
        take = min(lot.quantity, remaining)
        lot.quantity -= take
        if lot.quantity == 0:
            lot.status = 'depleted'
        lot.save(update_fields=['quantity', 'status', 'updated_at'])
        allocations.append((lot, take))
        remaining -= take

    sync_lots_to_inventory(product, warehouse)
    return allocations


def get_expiring_lots(days=30, warehouse=None):
    """Active lots with stock that expire within the given number of days, soonest first"""
    cutoff = timezone.localdate() + timedelta(days=days)
    lots = ProductLot.objects.select_related('product', 'warehouse').filter(
        expiry_date__isnull=False,
        expiry_date__lte=cutoff,
        quantity__gt=0,
        status='active',
    )
    if warehouse is not None:
        lots = lots.filter(warehouse=warehouse)
    return lots.order_by('expiry_date', 'id')


@transaction.atomic
def enable_lot_management(product):
    """Turn each positive inventory row into a default lot, then sync"""
    if product.enable_lot_management:
        raise BusinessRuleError('Lot management is already enabled for this product')

    created = 0
    today = timezone.localdate()
    for inventory in Inventory.objects.select_for_update().filter(product=product, quantity__gt=0):
        ProductLot.objects.create(
            product=product,
            warehouse=inventory.warehouse,
            lot_number=DEFAULT_LOT_NUMBER,
            received_date=today,
            quantity=inventory.quantity,
        )
        created += 1

    product.enable_lot_management = True
    product.save(update_fields=['enable_lot_management', 'updated_at'])
    sync_lots_to_inventory(product)
    logger.info(f"Enabled lot management for product {product.id}; created {created} default lots")
    return created


@transaction.atomic
def disable_lot_management(product):
    """Drop the product's lots; inventory rows keep their quantities"""
    if not product.enable_lot_management:
        raise BusinessRuleError('Lot management is not enabled for this product')
    deleted, _ = ProductLot.objects.filter(product=product).delete()
    product.enable_lot_management = False
    product.save(update_fields=['enable_lot_management', 'updated_at'])
    logger.info(f"Disabled lot management for product {product.id}; deleted {deleted} lots")
    return deleted


@transaction.atomic
def apply_adjustment(adjustment):
    """Apply a saved StockAdjustment to inventory (and its lot for lot-managed products)"""
    product = adjustment.product
    warehouse = adjustment.warehouse

    if product.enable_lot_management:
        if adjustment.lot_id is None:
            raise BusinessRuleError('A lot is required to adjust a lot-managed product')
        lot = ProductLot.objects.select_for_update().get(pk=adjustment.lot_id)
        if lot.product_id != product.id or lot.warehouse_id != warehouse.id:
            raise BusinessRuleError('Lot does not belong to this product and warehouse')
        if adjustment.adjustment_type == 'in':
            lot.quantity += adjustment.quantity
            lot.status = 'active'
        else:
            if lot.quantity < adjustment.quantity:
                raise BusinessRuleError(
                    f'Insufficient stock in lot {lot.lot_number}. Available: {lot.quantity}, Required: {adjustment.quantity}'
                )
            lot.quantity -= adjustment.quantity
        lot.save()
        sync_lots_to_inventory(product, warehouse)
        return lock_inventory(product, warehouse)

    if adjustment.adjustment_type == 'in':
        return add_stock(product, warehouse, adjustment.quantity)

    inventory = lock_inventory(product, warehouse)
    if inventory.quantity < adjustment.quantity:
        raise BusinessRuleError(
            f'Insufficient stock for {product.name}. Available: {inventory.quantity}, Required: {adjustment.quantity}'
        )
    inventory.quantity -= adjustment.quantity
    inventory.save(update_fields=['quantity', 'updated_at'])
    return inventory
