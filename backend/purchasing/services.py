"""
Purchase order lifecycle: numbering, creation, status changes, receiving
and reorder suggestions.
"""
import logging
from collections import OrderedDict
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from backend.core.exceptions import BusinessRuleError
from backend.inventory import services as stock
from backend.inventory.models import Inventory, DEFAULT_LOT_NUMBER
from backend.locations.models import Warehouse
from .models import PurchaseOrder, PurchaseOrderItem, GoodsReceipt

logger = logging.getLogger(__name__)

# Manual transitions; partially_received and received are only reached by receiving goods
ALLOWED_TRANSITIONS = {
    'draft': {'sent', 'ordered', 'cancelled'},
    'sent': {'draft', 'ordered', 'cancelled'},
    'ordered': {'cancelled'},
    'partially_received': {'cancelled'},
    'received': set(),
    'cancelled': set(),
}


def generate_po_number(on_date=None):
    """Next number of the form PO-YYYYMMDD-NNNN for the given day"""
    on_date = on_date or timezone.localdate()
    prefix = f"PO-{on_date:%Y%m%d}-"
    last = (
        PurchaseOrder.objects.filter(po_number__startswith=prefix)
        .order_by('-po_number')
        .values_list('po_number', flat=True)
        .first()
    )
    sequence = 1
    if last:
        try:
            sequence = int(last.rsplit('-', 1)[1]) + 1
        except (IndexError, ValueError):
            sequence = PurchaseOrder.objects.filter(po_number__startswith=prefix).count() + 1
    return f"{prefix}{sequence:04d}"


def _build_items(purchase_order, items):
    if not items:
        raise BusinessRuleError('A purchase order needs at least one item')
    created = []
    for entry in items:
        product = entry['product']
        quantity = entry['quantity']
        if quantity <= 0:
            raise BusinessRuleError(f'Quantity for {product.name} must be greater than zero')
        unit_price = entry.get('unit_price')
        if unit_price is None:
            unit_price = product.get_purchase_price()
        created.append(PurchaseOrderItem.objects.create(
            purchase_order=purchase_order,
            product=product,
            quantity=quantity,
            unit_price=unit_price,
            notes=entry.get('notes', ''),
        ))
    return created


def _refresh_total(purchase_order):
    purchase_order.total_amount = purchase_order.get_total()
    purchase_order.save(update_fields=['total_amount', 'updated_at'])


@transaction.atomic
def create_purchase_order(supplier, items, user=None, order_date=None, expected_delivery_date=None,
                          status='draft', notes='', warehouse=None):
    """
    Create a purchase order with its items in one transaction.

    `items` is a list of dicts with product, quantity and optional unit_price
    (defaults to the product's wholesale or cost price).
    """
    if status not in ('draft', 'sent', 'ordered'):
        raise BusinessRuleError(f'A purchase order cannot be created with status {status}')
    order_date = order_date or timezone.localdate()
    purchase_order = PurchaseOrder.objects.create(
        po_number=generate_po_number(order_date),
        supplier=supplier,
        warehouse=warehouse,
        order_date=order_date,
        expected_delivery_date=expected_delivery_date,
        status=status,
        notes=notes,
        created_by=user,
    )
    _build_items(purchase_order, items)
    _refresh_total(purchase_order)
    logger.info(f"Created purchase order {purchase_order.po_number} with {len(items)} items")
    return purchase_order


@transaction.atomic
def update_purchase_order(purchase_order, fields, items=None):
    """Update header fields and optionally replace the items; only draft/sent orders are editable"""
    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    if purchase_order.status not in PurchaseOrder.EDITABLE_STATUSES:
        raise BusinessRuleError(f'Purchase order {purchase_order.po_number} is {purchase_order.status} and cannot be edited')
    for name, value in fields.items():
        setattr(purchase_order, name, value)
    purchase_order.save()
    if items is not None:
        purchase_order.items.all().delete()
        _build_items(purchase_order, items)
    _refresh_total(purchase_order)
    return purchase_order


@transaction.atomic
def change_status(purchase_order, new_status):
    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    old_status = purchase_order.status
    if new_status == old_status:
        return purchase_order, old_status
    if new_status not in ALLOWED_TRANSITIONS.get(old_status, set()):
        raise BusinessRuleError(f'Cannot change purchase order status from {old_status} to {new_status}')
    purchase_order.status = new_status
    purchase_order.save(update_fields=['status', 'updated_at'])
    return purchase_order, old_status


def cancel_purchase_order(purchase_order):
    return change_status(purchase_order, 'cancelled')


@transaction.atomic
def delete_purchase_order(purchase_order):
    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    if purchase_order.items.filter(received_quantity__gt=0).exists():
        raise BusinessRuleError(
            f'Purchase order {purchase_order.po_number} has received goods and cannot be deleted; cancel it instead'
        )
    purchase_order.delete()


def _group_lines(purchase_order, lines):
    """Validate receiving lines and group them per purchase order item, keeping request order"""
    items = {
        item.id: item
        for item in PurchaseOrderItem.objects.select_for_update()
        .select_related('product').filter(purchase_order=purchase_order)
    }
    grouped = OrderedDict()
    for line in lines:
        item = items.get(line['item_id'])
        if item is None:
            raise BusinessRuleError(f"Item {line['item_id']} does not belong to purchase order {purchase_order.po_number}")
        if line['quantity'] <= 0:
            raise BusinessRuleError(f'Received quantity for {item.product.name} must be greater than zero')
        grouped.setdefault(item.id, (item, []))[1].append(line)

    for item, item_lines in grouped.values():
        incoming = sum(line['quantity'] for line in item_lines)
        if item.received_quantity + incoming > item.quantity:
            raise BusinessRuleError(
                f'Cannot receive {incoming} of {item.product.name}: ordered {item.quantity}, '
                f'already received {item.received_quantity}'
            )
    return grouped


def _merge_lots(item_lines):
    """Sum quantities per lot number; the first non-empty expiry date of a lot wins"""
    lots = OrderedDict()
    for line in item_lines:
        lot_number = (line.get('lot_number') or '').strip() or DEFAULT_LOT_NUMBER
        entry = lots.setdefault(lot_number, {'quantity': 0, 'expiry_date': None, 'shelf_location': ''})
        entry['quantity'] += line['quantity']
        if entry['expiry_date'] is None and line.get('expiry_date'):
            entry['expiry_date'] = line['expiry_date']
        if not entry['shelf_location'] and line.get('shelf_location'):
            entry['shelf_location'] = line['shelf_location']
    return lots


def resolve_receiving_warehouse(purchase_order, warehouse=None):
    warehouse = warehouse or purchase_order.warehouse or Warehouse.get_b2b_warehouse()
    if warehouse is None:
        raise BusinessRuleError('No B2B warehouse is configured to receive goods')
    return warehouse


def _set_shelf_location(product, warehouse, shelf_location):
    if shelf_location:
        Inventory.objects.filter(product=product, warehouse=warehouse).update(shelf_location=shelf_location)


@transaction.atomic
def receive_items(purchase_order, lines, user=None, warehouse=None):
    """
    Receive goods against a purchase order.

    `lines` are dicts with item_id, quantity and optional lot_number,
    expiry_date and shelf_location. Several lines may target the same item.
    Lot-managed products are booked into lots (merged per lot number) and
    their inventory is re-synced from the lots; other products are added to
    inventory directly. The order becomes `received` when every item is
    complete, otherwise `partially_received`.
    """
    if not lines:
        raise BusinessRuleError('Nothing to receive')
    purchase_order = PurchaseOrder.objects.select_for_update().get(pk=purchase_order.pk)
    if purchase_order.status in ('cancelled', 'received'):
        raise BusinessRuleError(f'Purchase order {purchase_order.po_number} is {purchase_order.status}')
    warehouse = resolve_receiving_warehouse(purchase_order, warehouse)

    grouped = _group_lines(purchase_order, lines)
    receipts = []
    for item, item_lines in grouped.values():
        product = item.product
        incoming = sum(line['quantity'] for line in item_lines)

        if product.enable_lot_management:
            for lot_number, entry in _merge_lots(item_lines).items():
                lot = stock.add_lot_quantity(
                    product, warehouse, lot_number, entry['quantity'], expiry_date=entry['expiry_date']
                )
                receipts.append(GoodsReceipt.objects.create(
                    purchase_order=purchase_order,
                    item=item,
                    warehouse=warehouse,
                    lot=lot,
                    quantity=entry['quantity'],
                    lot_number=lot.lot_number,
                    expiry_date=entry['expiry_date'],
                    shelf_location=entry['shelf_location'],
                    received_by=user,
                ))
            stock.sync_lots_to_inventory(product, warehouse)
        else:
            stock.add_stock(product, warehouse, incoming)
            receipts.append(GoodsReceipt.objects.create(
                purchase_order=purchase_order,
                item=item,
                warehouse=warehouse,
                quantity=incoming,
                lot_number=(item_lines[0].get('lot_number') or '').strip(),
                expiry_date=item_lines[0].get('expiry_date'),
                shelf_location=item_lines[0].get('shelf_location') or '',
                received_by=user,
            ))

        shelf_location = next((line.get('shelf_location') for line in item_lines if line.get('shelf_location')), '')
        _set_shelf_location(product, warehouse, shelf_location)

        item.received_quantity = F('received_quantity') + incoming
        item.save(update_fields=['received_quantity'])

    items = list(purchase_order.items.all())
    if all(item.received_quantity >= item.quantity for item in items):
        purchase_order.status = 'received'
    elif any(item.received_quantity > 0 for item in items):
        purchase_order.status = 'partially_received'
    purchase_order.save(update_fields=['status', 'updated_at'])

    logger.info(
        f"Received {sum(r.quantity for r in receipts)} units on {purchase_order.po_number} "
        f"into {warehouse.code}; status {purchase_order.status}"
    )
    return purchase_order, receipts


@transaction.atomic
def create_direct_import(supplier, items, warehouse, user=None, notes=''):
    """
    Record goods that arrived without a prior order: create the order and
    receive every line in full.

    `items` are dicts with product, quantity, optional unit_price, lot_number,
    expiry_date and shelf_location.
    """
    purchase_order = create_purchase_order(
        supplier,
        [{'product': i['product'], 'quantity': i['quantity'], 'unit_price': i.get('unit_price')} for i in items],
        user=user,
        status='ordered',
        notes=notes or 'Direct purchase import',
        warehouse=warehouse,
    )
    order_items = list(purchase_order.items.order_by('id'))
    lines = [
        {
            'item_id': order_item.id,
            'quantity': entry['quantity'],
            'lot_number': entry.get('lot_number'),
            'expiry_date': entry.get('expiry_date'),
            'shelf_location': entry.get('shelf_location'),
        }
        for order_item, entry in zip(order_items, items)
    ]
    return receive_items(purchase_order, lines, user=user, warehouse=warehouse)


def analyze_reorder(warehouse):
    """
    Products in a warehouse at or below min stock that should be reordered.

    A product qualifies when it has a supplier, a max stock above zero, and
    is not already on a purchase order still waiting for goods. The
    suggested quantity fills the row up to max stock.
    """
    pending_product_ids = PurchaseOrderItem.objects.filter(
        purchase_order__status__in=PurchaseOrder.PENDING_STATUSES
    ).values_list('product_id', flat=True)

    rows = (
        Inventory.objects.select_related('product', 'product__supplier')
        .filter(warehouse=warehouse, quantity__lte=F('min_stock'), max_stock__gt=0,
                product__supplier__isnull=False, product__is_active=True)
        .exclude(product_id__in=pending_product_ids)
        .order_by('product__supplier__name', 'product__name')
    )

    products = []
    for row in rows:
        quantity_needed = row.max_stock - row.quantity
        if quantity_needed <= 0:
            continue
        unit_price = row.product.get_purchase_price()
        products.append({
            'product_id': row.product.id,
            'product_name': row.product.name,
            'sku': row.product.sku,
            'supplier_id': row.product.supplier.id,
            'supplier_name': row.product.supplier.name,
            'current_stock': row.quantity,
            'min_stock': row.min_stock,
            'max_stock': row.max_stock,
            'quantity_needed': quantity_needed,
            'unit_price': unit_price,
            'estimated_cost': unit_price * quantity_needed,
        })

    return {
        'products_to_order': products,
        'total_products': len(products),
        'total_value': sum((p['estimated_cost'] for p in products), Decimal('0.00')),
        'supplier_count': len({p['supplier_id'] for p in products}),
    }


@transaction.atomic
def create_orders_from_products(products, warehouse, user=None):
    """
    One draft purchase order per supplier for a (possibly edited) reorder list.

    `products` are dicts with product, supplier, quantity and unit_price.
    """
    by_supplier = OrderedDict()
    for entry in products:
        if entry['quantity'] <= 0:
            continue
        by_supplier.setdefault(entry['supplier'].id, (entry['supplier'], []))[1].append(entry)

    orders = []
    for supplier, entries in by_supplier.values():
        orders.append(create_purchase_order(
            supplier,
            [{'product': e['product'], 'quantity': e['quantity'], 'unit_price': e.get('unit_price')} for e in entries],
            user=user,
            status='draft',
            notes=f'Auto-generated purchase order for restocking {warehouse.name}',
            warehouse=warehouse,
        ))
    return orders


def auto_generate_purchase_orders(warehouse, user=None):
    """Run the reorder analysis and create draft orders for every suggestion"""
    from backend.catalog.models import Product

    analysis = analyze_reorder(warehouse)
    suggestions = analysis['products_to_order']
    if not suggestions:
        return [], analysis
    catalog = Product.objects.select_related('supplier').in_bulk([s['product_id'] for s in suggestions])
    products = [
        {
            'product': catalog[s['product_id']],
            'supplier': catalog[s['product_id']].supplier,
            'quantity': s['quantity_needed'],
            'unit_price': s['unit_price'],
        }
        for s in suggestions
    ]
    return create_orders_from_products(products, warehouse, user), analysis
