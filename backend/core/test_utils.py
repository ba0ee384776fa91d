"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.locations.models import Warehouse
from backend.catalog.models import Product
from backend.parties.models import Patient, Supplier
from backend.inventory.models import Inventory
from backend.inventory.services import add_lot_quantity, sync_lots_to_inventory
from backend.pricing.models import Promotion, Voucher, Combo, ComboItem
from backend.purchasing.models import PurchaseOrder, PurchaseOrderItem
from backend.finance.models import Fund, Transaction
from backend.scheduling.models import Room
from decimal import Decimal
from django.utils import timezone
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', roles=None, is_superuser=False,
                    is_approved=True, warehouse=None):
        """Create an approved test user, optionally in the given role groups"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        user = User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_superuser=is_superuser,
            is_approved=is_approved,
            warehouse=warehouse,
        )
        for role in roles or []:
            group, _ = Group.objects.get_or_create(name=role)
            user.groups.add(group)
        return user

    @staticmethod
    def create_warehouse(name=None, code=None, is_b2b=False):
        """Create a test warehouse"""
        if not name:
            name = f'Warehouse_{TestDataFactory.random_string(6)}'
        if not code:
            code = f'WH_{TestDataFactory.random_string(6).upper()}'
        return Warehouse.objects.create(
            name=name,
            code=code,
            address=f'Test Address {name}',
            phone='0901234567',
            is_b2b=is_b2b,
        )

    @staticmethod
    def create_supplier(name=None, code=None):
        """Create a test supplier"""
        if not name:
            name = f'Supplier_{TestDataFactory.random_string(6)}'
        return Supplier.objects.create(
            name=name,
            code=code,
            phone='0281234567',
            email=f'{TestDataFactory.random_string(6).lower()}@supplier.test',
        )

    @staticmethod
    def create_patient(full_name=None, phone=None, loyalty_points=0):
        """Create a test patient"""
        if not full_name:
            full_name = f'Patient {TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'09{random.randint(10000000, 99999999)}'
        return Patient.objects.create(full_name=full_name, phone=phone, loyalty_points=loyalty_points)

    @staticmethod
    def create_product(name=None, sku=None, retail_price='100000', wholesale_price=None, cost_price='60000',
                       manufacturer='', category='', supplier=None, enable_lot_management=False):
        """Create a test product"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not sku:
            sku = f'SKU_{TestDataFactory.random_string(8)}'
        return Product.objects.create(
            name=name,
            sku=sku,
            retail_price=Decimal(retail_price) if retail_price is not None else None,
            wholesale_price=Decimal(wholesale_price) if wholesale_price is not None else None,
            cost_price=Decimal(cost_price),
            manufacturer=manufacturer,
            category=category,
            supplier=supplier,
            enable_lot_management=enable_lot_management,
        )

    @staticmethod
    def set_stock(product, warehouse, quantity, min_stock=0, max_stock=0):
        """Set the inventory row of a product without lot management"""
        inventory, _ = Inventory.objects.update_or_create(
            product=product, warehouse=warehouse,
            defaults={'quantity': quantity, 'min_stock': min_stock, 'max_stock': max_stock},
        )
        return inventory

    @staticmethod
    def create_lot(product, warehouse, lot_number, quantity, expiry_date=None):
        """Add a lot and bring the inventory row in line with the lots"""
        lot = add_lot_quantity(product, warehouse, lot_number, quantity, expiry_date=expiry_date)
        sync_lots_to_inventory(product, warehouse)
        return lot

    @staticmethod
    def create_promotion(name=None, type='percentage', value='10', conditions=None, is_active=True,
                         start_date=None, end_date=None):
        """Create a test promotion"""
        return Promotion.objects.create(
            name=name or f'Promo {TestDataFactory.random_string(6)}',
            type=type,
            value=Decimal(value),
            conditions=conditions or {},
            is_active=is_active,
            start_date=start_date,
            end_date=end_date,
        )

    @staticmethod
    def create_voucher(promotion, code=None, usage_limit=1):
        """Create a test voucher"""
        return Voucher.objects.create(
            promotion=promotion,
            code=code or f'V{TestDataFactory.random_string(8).upper()}',
            usage_limit=usage_limit,
        )

    @staticmethod
    def create_combo(products, combo_price='150000', name=None, is_active=True):
        """Create a combo; `products` is a list of (product, quantity)"""
        combo = Combo.objects.create(
            name=name or f'Combo {TestDataFactory.random_string(6)}',
            combo_price=Decimal(combo_price),
            is_active=is_active,
        )
        for product, quantity in products:
            ComboItem.objects.create(combo=combo, product=product, quantity=quantity)
        return combo

    @staticmethod
    def create_purchase_order(supplier=None, user=None, status='ordered', warehouse=None, items=None):
        """
        Create a purchase order; `items` is a list of (product, quantity, unit_price)
        """
        supplier = supplier or TestDataFactory.create_supplier()
        po = PurchaseOrder.objects.create(
            po_number=f'PO-{timezone.localdate():%Y%m%d}-{TestDataFactory.random_string(4).upper()}',
            supplier=supplier,
            warehouse=warehouse,
            order_date=timezone.localdate(),
            status=status,
            created_by=user,
        )
        for product, quantity, unit_price in items or []:
            PurchaseOrderItem.objects.create(
                purchase_order=po, product=product, quantity=quantity, unit_price=Decimal(str(unit_price))
            )
        po.total_amount = po.get_total()
        po.save(update_fields=['total_amount'])
        return po

    @staticmethod
    def create_fund(name=None, type='cash', initial_balance='0'):
        """Create a test fund"""
        return Fund.objects.create(
            name=name or f'Fund {TestDataFactory.random_string(6)}',
            type=type,
            initial_balance=Decimal(initial_balance),
        )

    @staticmethod
    def create_transaction(fund=None, type='income', amount='100000', status=None, user=None):
        """Create a transaction directly in the given status"""
        if status is None:
            status = 'collected' if type == 'income' else 'paid_out'
        return Transaction.objects.create(
            fund=fund,
            type=type,
            amount=Decimal(amount),
            transaction_date=timezone.localdate(),
            status=status,
            created_by=user,
        )

    @staticmethod
    def create_room(name=None, code=None):
        """Create a test examination room"""
        return Room.objects.create(
            name=name or f'Room {TestDataFactory.random_string(4)}',
            code=code or f'R_{TestDataFactory.random_string(6).upper()}',
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
