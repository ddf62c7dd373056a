"""
Request endpoints.

Any authenticated user can submit a request and follow their own
requests. Creating a request seeds its approval chain; the request then
only moves through the approvals endpoints.
"""
from __future__ import annotations

from django.conf import settings
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..serializers.requests import RequestCreateSerializer
from ..services import audit
from ..services.approvals import can_resolve
from ..services.ledger import for_request
from ..services.membership import get_active_member_role
from ..services.requests import create_request, get_request_or_404, list_own_requests
from .common import iso, money, serialize_request


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def requests_view(request):
    if request.method == 'GET':
        data = [serialize_request(r, with_children=True) for r in list_own_requests(request.user)]
        return Response({'success': True, 'data': data})

    s = RequestCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    req = create_request(request.user, s.validated_data)
    audit.record(
        user=request.user,
        action='CREATE',
        resource_type='REQUEST',
        resource_id=req.pk,
        description=f'Permintaan dibuat: {req.request_code}',
        new_values={
            'requestCode': req.request_code,
            'requestType': req.request_type,
            'amount': req.amount,
            'priority': req.priority,
        },
        request=request,
    )
    return Response({'success': True, 'data': serialize_request(req)}, status=status.HTTP_201_CREATED)

requests_view.cls.throttle_scope = 'approval_write'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def request_detail(request, pk):
    """One request with its approvals, items and settled ledger entries.

    Visible to the requester and to anyone whose role appears in the
    request's approval chain.
    """
    req = get_request_or_404(pk)
    if req.requester_id != request.user.id:
        role = get_active_member_role(request.user)
        approvals = list(req.approvals.all())
        if role != settings.SUPERUSER_ROLE and not any(can_resolve(role, a.role_name) for a in approvals):
            raise NotFound('Request not found')
    data = serialize_request(req, with_children=True)
    data['transactions'] = [
        {
            'id': str(t.id),
            'transactionCode': t.transaction_code,
            'transactionType': t.transaction_type,
            'amount': money(t.amount),
            'transactionDate': iso(t.transaction_date),
        }
        for t in for_request(req.pk).order_by('created_at')
    ]
    return Response({'success': True, 'data': data})
