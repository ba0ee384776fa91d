from rest_framework import serializers
from .models import Inventory, ProductLot, StockAdjustment


class InventorySerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = Inventory
        fields = [
            'id', 'product', 'product_name', 'product_sku', 'warehouse', 'warehouse_name',
            'quantity', 'min_stock', 'max_stock', 'shelf_location', 'is_low_stock', 'updated_at'
        ]
        read_only_fields = ['quantity', 'updated_at']


class InventorySettingsSerializer(serializers.Serializer):
    """Min/max and shelf location of a product in a warehouse; quantity only changes through stock movements"""
    product = serializers.IntegerField()
    warehouse = serializers.IntegerField()
    min_stock = serializers.IntegerField(min_value=0, required=False)
    max_stock = serializers.IntegerField(min_value=0, required=False)
    shelf_location = serializers.CharField(max_length=100, required=False, allow_blank=True)

    def validate(self, attrs):
        min_stock = attrs.get('min_stock')
        max_stock = attrs.get('max_stock')
        if min_stock is not None and max_stock is not None and max_stock and min_stock > max_stock:
            raise serializers.ValidationError({'max_stock': 'Max stock must be greater than or equal to min stock'})
        return attrs


class ProductLotSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    days_until_expiry = serializers.SerializerMethodField()

    class Meta:
        model = ProductLot
        fields = [
            'id', 'product', 'product_name', 'warehouse', 'warehouse_name', 'lot_number',
            'expiry_date', 'received_date', 'quantity', 'status', 'days_until_expiry',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_days_until_expiry(self, obj):
        if not obj.expiry_date:
            return None
        today = self.context.get('today')
        if today is None:
            from django.utils import timezone
            today = timezone.localdate()
        return (obj.expiry_date - today).days

    def validate_quantity(self, value):
        if value < 0:
            raise serializers.ValidationError('Quantity cannot be negative')
        return value

    def validate(self, attrs):
        product = attrs.get('product') or getattr(self.instance, 'product', None)
        if product is not None and not product.enable_lot_management:
            raise serializers.ValidationError({'product': 'Lot management is not enabled for this product'})
        return attrs


class StockAdjustmentSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    lot_number = serializers.CharField(source='lot.lot_number', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = StockAdjustment
        fields = [
            'id', 'adjustment_type', 'product', 'product_name', 'warehouse', 'warehouse_name',
            'lot', 'lot_number', 'quantity', 'reason', 'notes', 'created_by', 'created_by_username', 'created_at'
        ]
        read_only_fields = ['created_by', 'created_at']

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than zero')
        return value


class LotManagementSerializer(serializers.Serializer):
    enabled = serializers.BooleanField()
