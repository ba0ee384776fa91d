from rest_framework import serializers
from .models import Bank, Fund, Transaction
from .services import INTERNAL_TRANSFER_CATEGORY


class BankSerializer(serializers.ModelSerializer):
    class Meta:
        model = Bank
        fields = ['id', 'name', 'code', 'bin', 'short_name', 'logo', 'created_at']


class FundSerializer(serializers.ModelSerializer):
    bank_short_name = serializers.CharField(source='bank.short_name', read_only=True)

    class Meta:
        model = Fund
        fields = [
            'id', 'name', 'type', 'initial_balance', 'bank', 'bank_short_name', 'account_number',
            'account_holder_name', 'is_active', 'created_at', 'updated_at'
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate(self, attrs):
        fund_type = attrs.get('type', getattr(self.instance, 'type', 'cash'))
        bank = attrs.get('bank', getattr(self.instance, 'bank', None))
        account_number = attrs.get('account_number', getattr(self.instance, 'account_number', ''))
        if fund_type == 'bank' and (bank is None or not account_number):
            raise serializers.ValidationError('Bank funds need a bank and an account number')
        return attrs


class TransactionSerializer(serializers.ModelSerializer):
    fund_name = serializers.CharField(source='fund.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True)
    approved_by_username = serializers.CharField(source='approved_by.username', read_only=True)
    executed_by_username = serializers.CharField(source='executed_by.username', read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id', 'fund', 'fund_name', 'type', 'amount', 'description', 'category', 'transaction_date',
            'status', 'payment_method', 'recipient_bank', 'recipient_account', 'recipient_name',
            'qr_code_url', 'attachments', 'transfer_pair_id', 'initial_denomination_counts',
            'executed_denomination_counts', 'reference_type', 'reference_id', 'rejection_reason',
            'created_by', 'created_by_username', 'approved_by', 'approved_by_username',
            'executed_by', 'executed_by_username', 'approved_at', 'executed_at', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'fund', 'status', 'qr_code_url', 'transfer_pair_id', 'executed_denomination_counts',
            'reference_type', 'reference_id', 'rejection_reason', 'created_by', 'approved_by',
            'executed_by', 'approved_at', 'executed_at', 'created_at', 'updated_at'
        ]
        extra_kwargs = {'transaction_date': {'required': False}}

    def validate_amount(self, value):
        if value <= 0:
            raise serializers.ValidationError('Amount must be greater than zero')
        return value

    def validate_category(self, value):
        if value == INTERNAL_TRANSFER_CATEGORY:
            raise serializers.ValidationError('This category is reserved for transfers between funds')
        return value

    def validate_attachments(self, value):
        if value in (None, ''):
            return []
        if isinstance(value, str):
            return [value]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise serializers.ValidationError('Attachments must be a list of URLs')
        return value

    def validate(self, attrs):
        if self.instance is not None and 'type' in attrs and attrs['type'] != self.instance.type:
            raise serializers.ValidationError({'type': 'Transaction type cannot be changed'})
        return attrs


class ExecuteSerializer(serializers.Serializer):
    fund = serializers.PrimaryKeyRelatedField(queryset=Fund.objects.all())
    denomination_counts = serializers.DictField(child=serializers.IntegerField(min_value=0), required=False)


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class InternalTransferSerializer(serializers.Serializer):
    from_fund = serializers.PrimaryKeyRelatedField(queryset=Fund.objects.all())
    to_fund = serializers.PrimaryKeyRelatedField(queryset=Fund.objects.all())
    amount = serializers.DecimalField(max_digits=16, decimal_places=2)
    description = serializers.CharField(required=False, allow_blank=True, default='')


class CashCountSerializer(serializers.Serializer):
    counts = serializers.DictField(child=serializers.IntegerField(min_value=0))
    target = serializers.DecimalField(max_digits=16, decimal_places=2, required=False, allow_null=True)


class AttachmentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
