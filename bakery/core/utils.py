"""Audit logging helpers"""
import logging

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


def create_audit_log(request=None, action=None, instance=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry.

    Pass either ``instance`` (model name, id and str() are taken from it) or
    ``model_name``/``object_id`` explicitly. The user defaults to
    ``request.user``. A failure here is logged and never propagates, so the
    operation being audited is not affected.
    """
    try:
        if instance is not None:
            model_name = model_name or instance.__class__.__name__
            object_id = object_id if object_id is not None else instance.pk
            object_name = object_name or str(instance)

        audit_user = user
        if audit_user is None and request is not None:
            audit_user = getattr(request, 'user', None)

        if not action or not model_name or object_id is None:
            logger.warning(
                "Audit log skipped: missing required fields (action=%s, model_name=%s, object_id=%s)",
                action, model_name, object_id,
            )
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user is not None and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=(object_name or '')[:255] or None,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=get_client_ip(request) if request is not None else None,
        )
    except Exception as e:
        logger.error("Failed to create audit log: %s", e)
        return None
