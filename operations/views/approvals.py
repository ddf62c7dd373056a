"""
Approval endpoints.

``GET`` lists the approvals the caller's active role can act on right
now. ``POST`` approves or rejects one of them; approving the last
pending level settles the request before the response is sent.
"""
from __future__ import annotations

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Approval
from ..permissions import HasActiveRole
from ..serializers.requests import ApprovalActionSerializer
from ..services.approvals import list_pending_for_role, resolve_approval
from .common import serialize_pending_approval


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, HasActiveRole])
def approvals_view(request):
    role = request.active_role
    if request.method == 'GET':
        data = [serialize_pending_approval(a) for a in list_pending_for_role(role)]
        return Response({'success': True, 'data': data, 'userRole': role})

    s = ApprovalActionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    approval = resolve_approval(
        user=request.user,
        role=role,
        approval_id=vd['approvalId'],
        action=vd['action'],
        comments=vd.get('comments'),
        http_request=request,
    )
    verb = 'approved' if approval.status == Approval.STATUS_APPROVED else 'rejected'
    return Response({'success': True, 'message': f'Request {verb} successfully'})

approvals_view.cls.throttle_scope = 'approval_write'
