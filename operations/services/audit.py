import logging
from decimal import Decimal
from typing import Optional, Any, Dict
from uuid import UUID

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q
from operations.models import AuditLog, Organization

logger = logging.getLogger(__name__)

User = get_user_model()

SENSITIVE_KEYS = ('password', 'token', 'secret', 'apikey', 'api_key', 'accesstoken', 'refreshtoken')
REDACTED = '[REDACTED]'


def _jsonable(value):
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    return value


def sanitize(data: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Redact secrets and coerce values to JSON-friendly types."""
    if data is None:
        return None
    clean: Dict[str, Any] = {}
    for key, value in data.items():
        lowered = str(key).lower().replace('-', '_')
        if any(s in lowered or s in lowered.replace('_', '') for s in SENSITIVE_KEYS):
            clean[key] = REDACTED
        elif isinstance(value, dict):
            clean[key] = sanitize(value)
        elif isinstance(value, (list, tuple)):
            clean[key] = [sanitize(v) if isinstance(v, dict) else _jsonable(v) for v in value]
        else:
            clean[key] = _jsonable(value)
    return clean


def _client_ip(request) -> Optional[str]:
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR') or request.META.get('HTTP_X_REAL_IP')


def log_action(
    *,
    user: Optional[User],
    action: str,
    resource_type: str,
    resource_id: Any,
    description: str,
    old_values: Optional[Dict[str, Any]] = None,
    new_values: Optional[Dict[str, Any]] = None,
    metadata: Optional[Dict[str, Any]] = None,
    severity: str = AuditLog.SEVERITY_INFO,
    organization: Optional[Organization] = None,
    request=None,
) -> AuditLog:
    if organization is None and user is not None and getattr(user, 'is_authenticated', False):
        from .membership import get_active_organization
        organization = get_active_organization(user)
    return AuditLog.objects.create(
        user=user if isinstance(user, User) and user.pk else None,
        organization=organization,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else '',
        ip_address=_client_ip(request) if request is not None else None,
        user_agent=request.META.get('HTTP_USER_AGENT') if request is not None else None,
        description=description,
        old_values=sanitize(old_values),
        new_values=sanitize(new_values),
        metadata=sanitize(metadata),
        severity=severity,
    )


def record(**kwargs) -> Optional[AuditLog]:
    """Fire-and-forget variant of :func:`log_action`.

    A failing audit write is logged and swallowed so it never aborts the
    caller's operation.
    """
    try:
        with transaction.atomic():
            return log_action(**kwargs)
    except Exception:
        logger.warning('Audit write failed for %s %s/%s', kwargs.get('action'),
                       kwargs.get('resource_type'), kwargs.get('resource_id'), exc_info=True)
        return None


def filter_logs(*, organization, action=None, resource_type=None, severity=None, search=None, user_id=None):
    qs = AuditLog.objects.select_related('user', 'organization').filter(organization=organization)
    if action:
        qs = qs.filter(action=action)
    if resource_type:
        qs = qs.filter(resource_type=resource_type)
    if severity:
        qs = qs.filter(severity=severity)
    if user_id:
        qs = qs.filter(user_id=user_id)
    if search:
        qs = qs.filter(Q(description__icontains=search) | Q(resource_id__icontains=search))
    return qs.order_by('-created_at')


def distinct_values(organization) -> Dict[str, list]:
    base = AuditLog.objects.filter(organization=organization)

    def values(field):
        return [v for v in base.order_by(field).values_list(field, flat=True).distinct() if v]

    return {
        'actions': values('action'),
        'resourceTypes': values('resource_type'),
        'severities': values('severity'),
    }
