"""Utility functions for audit logging, pagination and uploads"""
import logging
import re
import unicodedata

from django.core.files.storage import default_storage
from django.utils import timezone

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, po_receive, sale_checkout, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object
        object_reference: Reference identifier (e.g., PO number, order code)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def paginate_queryset(queryset, request, serializer_class, default_limit=20, context=None):
    """Paginate a queryset using page/limit query params and return the response payload"""
    from django.core.paginator import Paginator

    try:
        page = max(int(request.query_params.get('page', 1)), 1)
    except (TypeError, ValueError):
        page = 1
    try:
        limit = min(max(int(request.query_params.get('limit', default_limit)), 1), 200)
    except (TypeError, ValueError):
        limit = default_limit

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)
    serializer = serializer_class(page_obj, many=True, context=context or {'request': request})
    return {
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    }


def sanitize_filename(filename):
    """Strip accents and replace anything outside [A-Za-z0-9.-_] with single underscores"""
    decomposed = unicodedata.normalize('NFD', filename or '')
    without_marks = ''.join(ch for ch in decomposed if not unicodedata.combining(ch))
    without_marks = without_marks.replace('đ', 'd').replace('Đ', 'D')
    cleaned = re.sub(r'[^a-zA-Z0-9.\-_]', '_', without_marks)
    return re.sub(r'_{2,}', '_', cleaned) or 'attachment'


def save_upload(upload, folder):
    """Store an uploaded file under a timestamped, sanitized name and return its URL"""
    name = f"{folder}/{int(timezone.now().timestamp() * 1000)}_{sanitize_filename(upload.name)}"
    stored_name = default_storage.save(name, upload)
    return default_storage.url(stored_name)
