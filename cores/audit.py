import logging

from .models import AuditLog

logger = logging.getLogger(__name__)


def _extract_ip(request):
    forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR', '')
    if forwarded_for:
        return forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def record_event(action, target=None, details='', actor=None, request=None):
    """Writes an AuditLog row. Never raises: auditing must not break the action being audited."""
    try:
        if actor is None and request is not None and request.user.is_authenticated:
            actor = request.user

        AuditLog.objects.create(
            actor=actor,
            action=action,
            target_model=target.__class__.__name__ if target is not None else '',
            target_object_id=str(getattr(target, 'pk', '') or '') if target is not None else None,
            details=details,
            ip_address=_extract_ip(request) if request is not None else None,
        )
    except Exception:
        logger.exception("Could not write audit log entry for %s", action)
