"""
Approval chain engine.

A request carries an ordered chain of approvals, one per level, each
naming the role allowed to resolve it. Level *k* can only be acted on
once level *k-1* is APPROVED. A single rejection rejects the whole
request; the request is approved (and settled) when every level is
APPROVED.
"""
from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from functools import partial
from typing import Dict, List, Optional, Tuple

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from ..exceptions import ApprovalConflict
from ..models import Approval, AuditLog, Member, Request, RequestType
from . import audit
from .settlement import SettlementResult, settle

logger = logging.getLogger(__name__)

APPROVE = 'APPROVE'
REJECT = 'REJECT'
ACTIONS = {APPROVE: Approval.STATUS_APPROVED, REJECT: Approval.STATUS_REJECTED}

# (level, role) per request type
APPROVAL_CHAINS: Dict[str, Tuple[Tuple[int, str], ...]] = {
    RequestType.TRANSACTION: ((1, Member.ROLE_BENDAHARA), (2, Member.ROLE_KETUA)),
    RequestType.INVENTORY: ((1, Member.ROLE_KETUA),),
    RequestType.PROCUREMENT: ((1, Member.ROLE_KETUA),),
}

FIRST_LEVEL_ROLES = {Member.ROLE_BENDAHARA, Member.ROLE_SEKRETARIS}

UPDATES_GROUP = 'approvals'


def can_resolve(principal_role: Optional[str], required_role: str) -> bool:
    """True when ``principal_role`` may resolve an approval requiring ``required_role``."""
    if not principal_role:
        return False
    return principal_role == required_role or principal_role == settings.SUPERUSER_ROLE


def seed_chain(req: Request) -> List[Approval]:
    try:
        chain = APPROVAL_CHAINS[req.request_type]
    except KeyError:
        raise ValidationError(f'Unsupported request type: {req.request_type}')
    timeout_at = timezone.now() + timedelta(days=settings.APPROVAL_TIMEOUT_DAYS)
    return Approval.objects.bulk_create([
        Approval(request=req, approval_level=level, role_name=role, timeout_at=timeout_at)
        for level, role in chain
    ])


def _with_details(qs):
    return qs.select_related(
        'request', 'request__expense_category', 'request__requester', 'approver'
    ).prefetch_related('request__items')


def _eligible_ketua_request_ids() -> List:
    pending = list(
        Approval.objects.filter(role_name=Member.ROLE_KETUA, status=Approval.STATUS_PENDING)
        .values_list('request_id', 'approval_level')
    )
    eligible = [request_id for request_id, level in pending if level == 1]
    gated = [request_id for request_id, level in pending if level == 2]
    if gated:
        eligible.extend(
            Approval.objects.filter(
                request_id__in=gated, approval_level=1, status=Approval.STATUS_APPROVED
            ).values_list('request_id', flat=True)
        )
    return eligible


def list_pending_for_role(role: str) -> List[Approval]:
    """Approvals the given role can act on right now."""
    if role in FIRST_LEVEL_ROLES:
        qs = Approval.objects.filter(role_name=role, status=Approval.STATUS_PENDING, approval_level=1)
    elif role == Member.ROLE_KETUA or role == settings.SUPERUSER_ROLE:
        request_ids = _eligible_ketua_request_ids()
        if not request_ids:
            return []
        qs = Approval.objects.filter(
            role_name=Member.ROLE_KETUA, status=Approval.STATUS_PENDING, request_id__in=request_ids
        )
    else:
        return []
    return list(_with_details(qs).order_by('request__created_at', 'approval_level'))


def resolve_approval(*, user, role: str, approval_id, action: str, comments: Optional[str] = None,
                     http_request=None) -> Approval:
    """Approve or reject one approval and advance its request.

    The approval row and its request are locked for the duration, and the
    settlement (if this was the last level) runs in the same transaction.
    """
    if action not in ACTIONS:
        raise ValidationError('Invalid action')

    try:
        approval_id = uuid.UUID(str(approval_id))
    except ValueError:
        raise NotFound('Approval not found')

    with transaction.atomic():
        approval = Approval.objects.select_for_update().filter(pk=approval_id).first()
        if approval is None:
            raise NotFound('Approval not found')
        if not can_resolve(role, approval.role_name):
            raise PermissionDenied('You do not have permission to approve this request')
        if approval.status != Approval.STATUS_PENDING:
            raise ApprovalConflict('This approval has already been processed')
        if approval.approval_level > 1:
            prior_level = approval.approval_level - 1
            prior = Approval.objects.filter(
                request_id=approval.request_id, approval_level=prior_level
            ).first()
            if prior is None or prior.status != Approval.STATUS_APPROVED:
                raise ApprovalConflict(f'Level {prior_level} approval must be completed first')

        req = Request.objects.select_for_update().get(pk=approval.request_id)
        if req.status != Request.STATUS_PENDING:
            raise ApprovalConflict('This request has already been processed')

        approval.status = ACTIONS[action]
        approval.approver = user
        approval.approved_at = timezone.now()
        approval.comments = comments or None
        approval.save(update_fields=['status', 'approver', 'approved_at', 'comments'])

        settlement: Optional[SettlementResult] = None
        if approval.status == Approval.STATUS_REJECTED:
            req.status = Request.STATUS_REJECTED
            req.save(update_fields=['status', 'updated_at'])
        else:
            statuses = Approval.objects.filter(request_id=req.pk).values_list('status', flat=True)
            if all(s == Approval.STATUS_APPROVED for s in statuses):
                req.status = Request.STATUS_APPROVED
                req.save(update_fields=['status', 'updated_at'])
                settlement = settle(req, user)

        transaction.on_commit(partial(_after_commit, approval, req, user, settlement, http_request))

    logger.info('%s %s level %d of %s by %s (%s); request now %s', action.lower(), approval.pk,
                approval.approval_level, req.request_code, user, role, req.status)
    return approval


def _after_commit(approval: Approval, req: Request, user, settlement: Optional[SettlementResult],
                  http_request=None) -> None:
    rejected = approval.status == Approval.STATUS_REJECTED
    audit.record(
        user=user,
        action='REJECT' if rejected else 'APPROVE',
        resource_type='APPROVAL',
        resource_id=approval.pk,
        description=f'Level {approval.approval_level} ({approval.role_name}) '
                    f'{"rejected" if rejected else "approved"} for {req.request_code}',
        old_values={'status': Approval.STATUS_PENDING},
        new_values={'status': approval.status, 'comments': approval.comments, 'requestStatus': req.status},
        metadata={'requestId': req.pk, 'requestCode': req.request_code},
        severity=AuditLog.SEVERITY_WARNING if rejected else AuditLog.SEVERITY_INFO,
        request=http_request,
    )
    if settlement is not None:
        audit.record(
            user=user,
            action='SETTLE',
            resource_type='REQUEST',
            resource_id=req.pk,
            description=f'Settled {req.request_type} request {req.request_code}',
            new_values=settlement.summary(),
            request=http_request,
        )
    publish_update(approval, req)


def publish_update(approval: Approval, req: Request) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    event = {
        'type': 'approval.updated',
        'approvalId': str(approval.pk),
        'approvalLevel': approval.approval_level,
        'status': approval.status,
        'requestId': str(req.pk),
        'requestCode': req.request_code,
        'requestStatus': req.status,
        'ts': timezone.now().isoformat(),
    }
    try:
        async_to_sync(channel_layer.group_send)(UPDATES_GROUP, event)
    except Exception:
        logger.warning('Could not publish approval update for %s', approval.pk, exc_info=True)


def expired_pending(now=None):
    """PENDING approvals whose timeout has passed, oldest first."""
    now = now or timezone.now()
    return (
        Approval.objects.select_related('request')
        .filter(status=Approval.STATUS_PENDING, timeout_at__lt=now, request__status=Request.STATUS_PENDING)
        .order_by('timeout_at', 'approval_level')
    )
