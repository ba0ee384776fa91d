import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q, ProtectedError
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date
from backend.core.exceptions import BusinessRuleError, business_error_response
from backend.core.permissions import IsAccountant, IsManager
from backend.core.utils import create_audit_log, paginate_queryset
from .denominations import count_cash, DENOMINATIONS
from .models import Bank, Fund, Transaction
from .serializers import (
    BankSerializer, FundSerializer, TransactionSerializer, ExecuteSerializer, RejectSerializer,
    InternalTransferSerializer, CashCountSerializer, AttachmentUploadSerializer,
)
from . import services

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def bank_list(request):
    """Bank directory"""
    return Response(BankSerializer(Bank.objects.all(), many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAccountant])
def fund_list_create(request):
    """List funds or create a fund (managers)"""
    if request.method == 'GET':
        funds = Fund.objects.select_related('bank')
        if request.query_params.get('active_only') == 'true':
            funds = funds.filter(is_active=True)
        return Response(FundSerializer(funds, many=True).data)

    if not IsManager().has_permission(request, None):
        return Response({'error': 'Only managers can create funds'}, status=status.HTTP_403_FORBIDDEN)
    serializer = FundSerializer(data=request.data)
    if serializer.is_valid():
        fund = serializer.save()
        create_audit_log(request=request, action='create', model_name='Fund', object_id=fund.id, object_name=fund.name)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAccountant])
def fund_detail(request, pk):
    """Retrieve, update or delete a fund"""
    fund = get_object_or_404(Fund.objects.select_related('bank'), pk=pk)

    if request.method == 'GET':
        data = FundSerializer(fund).data
        data['balance'] = services.fund_balance(fund)
        return Response(data)

    if not IsManager().has_permission(request, None):
        return Response({'error': 'Only managers can modify funds'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = FundSerializer(fund, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            fund.delete()
        except ProtectedError:
            return Response({'error': 'Fund has transactions and cannot be deleted; deactivate it instead'},
                            status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(request=request, action='delete', model_name='Fund', object_id=pk, object_name=fund.name)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAccountant])
def fund_balances(request):
    """Current balance of every fund plus the grand total"""
    rows = services.fund_balances()
    return Response({'funds': rows, 'total_balance': sum(r['balance'] for r in rows)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAccountant])
def expense_report(request):
    """Executed expenses between start_date and end_date (inclusive)"""
    start_date = parse_date(request.query_params.get('start_date', '') or '')
    end_date = parse_date(request.query_params.get('end_date', '') or '')
    if not start_date or not end_date:
        return Response({'error': 'start_date and end_date are required (YYYY-MM-DD)'},
                        status=status.HTTP_400_BAD_REQUEST)
    fund = None
    fund_id = request.query_params.get('fund_id')
    if fund_id:
        fund = get_object_or_404(Fund, pk=fund_id)
    try:
        report = services.expense_report(start_date, end_date, fund=fund)
    except BusinessRuleError as e:
        return business_error_response(e)
    return Response(report)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def transaction_list_create(request):
    """Paginated, searchable transaction list, or create a pending income/expense voucher"""
    if request.method == 'GET':
        if not IsAccountant().has_permission(request, None):
            return Response({'error': 'Only accountants can view transactions'}, status=status.HTTP_403_FORBIDDEN)
        queryset = Transaction.objects.select_related('fund', 'created_by', 'approved_by', 'executed_by')
        search = request.query_params.get('search', '').strip()
        if search:
            queryset = queryset.filter(
                Q(description__icontains=search) |
                Q(recipient_name__icontains=search) |
                Q(recipient_account__icontains=search) |
                Q(category__icontains=search) |
                Q(reference_id__icontains=search)
            )
        for param, field in (('type', 'type'), ('fund_id', 'fund_id'), ('payment_method', 'payment_method')):
            value = request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{field: value})
        status_filter = request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status__in=status_filter.split(','))
        date_from = request.query_params.get('date_from')
        date_to = request.query_params.get('date_to')
        if date_from:
            queryset = queryset.filter(transaction_date__gte=date_from)
        if date_to:
            queryset = queryset.filter(transaction_date__lte=date_to)
        return Response(paginate_queryset(queryset, request, TransactionSerializer))

    serializer = TransactionSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    bank = None
    if serializer.validated_data.get('recipient_bank'):
        bank = Bank.objects.filter(short_name=serializer.validated_data['recipient_bank']).first()
    try:
        tx = services.create_transaction(serializer.validated_data, user=request.user, bank=bank)
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='create', model_name='Transaction', object_id=tx.id,
                     object_name=tx.get_type_display(), changes={'amount': str(tx.amount)})
    return Response(TransactionSerializer(tx).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def transaction_detail(request, pk):
    """Retrieve a transaction; update or delete it while it is still pending"""
    tx = get_object_or_404(Transaction.objects.select_related('fund'), pk=pk)
    is_accountant = IsAccountant().has_permission(request, None)
    if not is_accountant and tx.created_by_id != request.user.id:
        return Response({'error': 'You do not have access to this transaction'}, status=status.HTTP_403_FORBIDDEN)

    if request.method == 'GET':
        return Response(TransactionSerializer(tx).data)

    if tx.status not in Transaction.PENDING_STATUSES or tx.transfer_pair_id:
        return Response({'error': f'Transaction is {tx.status} and can no longer be changed'},
                        status=status.HTTP_400_BAD_REQUEST)

    if request.method in ('PUT', 'PATCH'):
        serializer = TransactionSerializer(tx, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        create_audit_log(request=request, action='delete', model_name='Transaction', object_id=tx.id,
                         object_name=tx.get_type_display(), changes={'amount': str(tx.amount)})
        tx.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManager])
def transaction_approve(request, pk):
    """Approve an expense"""
    tx = get_object_or_404(Transaction, pk=pk)
    try:
        tx = services.approve_transaction(tx, request.user)
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='transaction_approve', model_name='Transaction', object_id=tx.id,
                     changes={'status': tx.status, 'amount': str(tx.amount)})
    return Response(TransactionSerializer(tx).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsManager])
def transaction_reject(request, pk):
    """Reject an expense"""
    tx = get_object_or_404(Transaction, pk=pk)
    serializer = RejectSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        tx = services.reject_transaction(tx, request.user, serializer.validated_data['reason'])
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='transaction_reject', model_name='Transaction', object_id=tx.id,
                     changes={'reason': tx.rejection_reason})
    return Response(TransactionSerializer(tx).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAccountant])
def transaction_execute(request, pk):
    """Collect an income or pay out an approved expense through a fund"""
    tx = get_object_or_404(Transaction, pk=pk)
    serializer = ExecuteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        tx = services.execute_transaction(
            tx, serializer.validated_data['fund'], request.user,
            denomination_counts=serializer.validated_data.get('denomination_counts'),
        )
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='transaction_execute', model_name='Transaction', object_id=tx.id,
                     object_reference=tx.fund.name, changes={'status': tx.status, 'amount': str(tx.amount)})
    return Response(TransactionSerializer(tx).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def transaction_attachment_upload(request):
    """Store a receipt or invoice scan and return its URL"""
    serializer = AttachmentUploadSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    upload = serializer.validated_data['file']
    url = services.save_attachment(upload)
    logger.info(f"User {request.user.username} uploaded attachment {url}")
    return Response({'name': upload.name, 'url': url}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAccountant])
def internal_transfer(request):
    """Move money between two funds"""
    serializer = InternalTransferSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data
    try:
        outgoing, incoming = services.internal_transfer(
            data['from_fund'], data['to_fund'], data['amount'], user=request.user, description=data['description']
        )
    except BusinessRuleError as e:
        return business_error_response(e)
    create_audit_log(request=request, action='internal_transfer', model_name='Transaction', object_id=outgoing.id,
                     object_reference=str(outgoing.transfer_pair_id),
                     changes={'from_fund': outgoing.fund_id, 'to_fund': incoming.fund_id, 'amount': str(data['amount'])})
    return Response({
        'transfer_pair_id': str(outgoing.transfer_pair_id),
        'outgoing': TransactionSerializer(outgoing).data,
        'incoming': TransactionSerializer(incoming).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def cash_count(request):
    """GET lists the denominations; POST totals counted notes against an optional target"""
    if request.method == 'GET':
        return Response({'denominations': DENOMINATIONS})
    serializer = CashCountSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    try:
        result = count_cash(serializer.validated_data['counts'], target=serializer.validated_data.get('target'))
    except BusinessRuleError as e:
        return business_error_response(e)
    return Response(result.as_dict())
