from rest_framework import serializers
from backend.catalog.models import Product
from backend.finance.models import Fund
from backend.parties.models import Patient
from backend.locations.models import Warehouse
from backend.pricing.serializers import CartComboSerializer
from .models import SalesOrder, SalesOrderItem, SalesComboItem, B2BQuote, B2BQuoteItem


class SalesOrderItemSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    product_sku = serializers.CharField(source='product.sku', read_only=True)
    promotion_name = serializers.CharField(source='promotion.name', read_only=True)
    line_total = serializers.SerializerMethodField()

    class Meta:
        model = SalesOrderItem
        fields = [
            'id', 'product', 'product_name', 'product_sku', 'quantity', 'original_price',
            'unit_price', 'promotion', 'promotion_name', 'line_total', 'lot_allocations'
        ]

    def get_line_total(self, obj):
        return obj.get_line_total()


class SalesComboItemSerializer(serializers.ModelSerializer):
    combo_name = serializers.CharField(source='combo.name', read_only=True)
    product_name = serializers.CharField(source='product.name', read_only=True)

    class Meta:
        model = SalesComboItem
        fields = [
            'id', 'combo', 'combo_name', 'combo_quantity', 'combo_price', 'product', 'product_name',
            'quantity', 'unit_price', 'lot_allocations'
        ]


class SalesOrderSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    fund_name = serializers.CharField(source='fund.name', read_only=True)
    voucher_code = serializers.CharField(source='voucher.code', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    items = SalesOrderItemSerializer(many=True, read_only=True)
    combo_items = SalesComboItemSerializer(many=True, read_only=True)

    class Meta:
        model = SalesOrder
        fields = [
            'id', 'order_code', 'order_type', 'patient', 'patient_name', 'customer_name', 'customer_phone',
            'delivery_address', 'warehouse', 'warehouse_name', 'subtotal', 'discount_total', 'voucher',
            'voucher_code', 'voucher_discount', 'points_redeemed', 'points_discount', 'points_earned',
            'total_value', 'payment_method', 'payment_status', 'operational_status', 'fund', 'fund_name',
            'notes', 'created_by', 'created_by_username', 'created_at', 'updated_at', 'items', 'combo_items'
        ]
        read_only_fields = fields


class SalesOrderListSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = SalesOrder
        fields = [
            'id', 'order_code', 'order_type', 'patient', 'patient_name', 'customer_name', 'warehouse',
            'warehouse_name', 'total_value', 'payment_method', 'payment_status', 'operational_status',
            'item_count', 'created_at'
        ]


class CartItemSerializer(serializers.Serializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    quantity = serializers.IntegerField(min_value=1)


class CheckoutSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True, required=False, default=list)
    combos = CartComboSerializer(many=True, required=False, default=list)
    warehouse = serializers.IntegerField(required=False, allow_null=True)
    patient = serializers.PrimaryKeyRelatedField(queryset=Patient.objects.all(), required=False, allow_null=True)
    voucher_code = serializers.CharField(required=False, allow_blank=True)
    points_to_redeem = serializers.IntegerField(required=False, min_value=0, default=0)
    payment_method = serializers.ChoiceField(choices=SalesOrder.PAYMENT_METHOD_CHOICES, default='cash')
    fund = serializers.PrimaryKeyRelatedField(queryset=Fund.objects.all(), required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if not attrs.get('items') and not attrs.get('combos'):
            raise serializers.ValidationError({'items': 'Cart is empty'})
        return attrs


class B2BOrderSerializer(serializers.Serializer):
    items = CartItemSerializer(many=True)
    warehouse = serializers.IntegerField(required=False, allow_null=True)
    patient = serializers.PrimaryKeyRelatedField(queryset=Patient.objects.all(), required=False, allow_null=True)
    customer_name = serializers.CharField(required=False, allow_blank=True, default='')
    customer_phone = serializers.CharField(required=False, allow_blank=True, default='')
    delivery_address = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('Order has no items')
        return value


class PickingStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=SalesOrder.OPERATIONAL_STATUS_CHOICES)


class OrderPaymentSerializer(serializers.Serializer):
    fund = serializers.PrimaryKeyRelatedField(queryset=Fund.objects.all())
    payment_method = serializers.ChoiceField(choices=SalesOrder.PAYMENT_METHOD_CHOICES, default='bank')


class B2BQuoteItemSerializer(serializers.ModelSerializer):
    product = serializers.PrimaryKeyRelatedField(queryset=Product.objects.all())
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=0, required=False)
    discount_percent = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100,
                                                required=False, default=0)

    class Meta:
        model = B2BQuoteItem
        fields = [
            'id', 'product', 'product_name', 'product_sku', 'quantity', 'unit_price', 'discount_percent',
            'discount_amount', 'subtotal', 'notes'
        ]
        read_only_fields = ['product_name', 'product_sku', 'discount_amount', 'subtotal']


class B2BQuoteSerializer(serializers.ModelSerializer):
    items = B2BQuoteItemSerializer(many=True, required=False)
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.all(), required=False, allow_null=True)
    discount_percent = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100,
                                                required=False)
    tax_percent = serializers.DecimalField(max_digits=5, decimal_places=2, min_value=0, max_value=100,
                                           required=False)
    sales_order_code = serializers.CharField(source='sales_order.order_code', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)

    class Meta:
        model = B2BQuote
        fields = [
            'id', 'quote_number', 'customer_name', 'customer_code', 'contact_person', 'customer_phone',
            'customer_email', 'customer_address', 'warehouse', 'stage', 'subtotal', 'discount_percent',
            'discount_amount', 'tax_percent', 'tax_amount', 'total_value', 'quote_date', 'valid_until',
            'notes', 'terms_conditions', 'sales_order', 'sales_order_code', 'created_by',
            'created_by_username', 'created_at', 'updated_at', 'items'
        ]
        read_only_fields = [
            'quote_number', 'stage', 'subtotal', 'discount_amount', 'tax_amount', 'total_value',
            'sales_order', 'created_by', 'created_at', 'updated_at'
        ]

    def validate(self, attrs):
        if self.instance is None and not attrs.get('items'):
            raise serializers.ValidationError({'items': 'A quote needs at least one item'})
        quote_date = attrs.get('quote_date', getattr(self.instance, 'quote_date', None))
        valid_until = attrs.get('valid_until', getattr(self.instance, 'valid_until', None))
        if quote_date and valid_until and valid_until < quote_date:
            raise serializers.ValidationError({'valid_until': 'Must not be before the quote date'})
        return attrs


class B2BQuoteListSerializer(serializers.ModelSerializer):
    item_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = B2BQuote
        fields = [
            'id', 'quote_number', 'customer_name', 'customer_code', 'stage', 'total_value', 'quote_date',
            'valid_until', 'sales_order', 'item_count', 'created_at'
        ]


class QuoteStageSerializer(serializers.Serializer):
    stage = serializers.ChoiceField(choices=B2BQuote.STAGE_CHOICES)
    warehouse = serializers.IntegerField(required=False, allow_null=True)
