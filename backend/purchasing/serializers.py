from rest_framework import serializers
from backend.catalog.models import Product
from backend.locations.models import Warehouse
from backend.parties.models import Supplier
from .models import PurchaseOrder, PurchaseOrderItem, GoodsReceipt


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    enable_lot_management = serializers.BooleanField(source='product.enable_lot_management', read_only=True)
    line_total = serializers.SerializerMethodField()
    remaining_quantity = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = [
            'id', 'product', 'product_name', 'product_sku', 'enable_lot_management', 'quantity',
            'unit_price', 'received_quantity', 'remaining_quantity', 'line_total', 'notes'
        ]
        read_only_fields = ['received_quantity']

    def get_line_total(self, obj):
        return obj.get_line_total()


class GoodsReceiptSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='item.product.name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    received_by_username = serializers.CharField(source='received_by.username', read_only=True)

    class Meta:
        model = GoodsReceipt
        fields = [
            'id', 'purchase_order', 'item', 'product_name', 'warehouse', 'warehouse_name', 'lot',
            'quantity', 'lot_number', 'expiry_date', 'shelf_location', 'received_by',
            'received_by_username', 'received_at'
        ]


class PurchaseOrderSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    items = PurchaseOrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_number', 'supplier', 'supplier_name', 'warehouse', 'warehouse_name',
            'order_date', 'expected_delivery_date', 'status', 'total_amount', 'notes',
            'created_by', 'created_by_username', 'created_at', 'updated_at', 'items'
        ]
        read_only_fields = ['po_number', 'status', 'total_amount', 'created_by', 'created_at', 'updated_at']


class PurchaseOrderListSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.name', read_only=True)
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_number', 'supplier', 'supplier_name', 'warehouse', 'order_date',
            'expected_delivery_date', 'status', 'total_amount', 'item_count', 'created_at'
        ]


class ItemInputSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class PurchaseOrderWriteSerializer(serializers.Serializer):
    supplier = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.all())
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all(), required=False, allow_null=True)
    order_date = serializers.DateField(required=False)
    expected_delivery_date = serializers.DateField(required=False, allow_null=True)
    status = serializers.ChoiceField(choices=['draft', 'sent', 'ordered'], default='draft')
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = ItemInputSerializer(many=True, required=False)

    def validate(self, attrs):
        order_date = attrs.get('order_date')
        expected = attrs.get('expected_delivery_date')
        if order_date and expected and expected < order_date:
            raise serializers.ValidationError({'expected_delivery_date': 'Expected delivery cannot be before the order date'})
        return attrs


class StatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c[0] for c in PurchaseOrder.STATUS_CHOICES])


class ReceiveLineSerializer(serializers.Serializer):
    item_id = serializers.IntegerField()
    quantity = serializers.IntegerField()
    lot_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    shelf_location = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)


class ReceiveSerializer(serializers.Serializer):
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all(), required=False, allow_null=True)
    items = ReceiveLineSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one line is required')
        return value


class DirectImportItemSerializer(ItemInputSerializer):
    lot_number = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    shelf_location = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)


class DirectImportSerializer(serializers.Serializer):
    supplier = serializers.PrimaryKeyRelatedField(queryset=Supplier.objects.all())
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all(), required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    items = DirectImportItemSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        return value


class ReorderProductSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.select_related('supplier'))
    quantity = serializers.IntegerField(min_value=0)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False, allow_null=True)

    def validate(self, attrs):
        if attrs['product'].supplier is None:
            raise serializers.ValidationError({'product': f"{attrs['product'].name} has no supplier"})
        return attrs


class ReorderOrderSerializer(serializers.Serializer):
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all())
    products = ReorderProductSerializer(many=True)
