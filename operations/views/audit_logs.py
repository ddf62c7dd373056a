"""
Audit log browser, scoped to the caller's active organization.
"""
from __future__ import annotations

import math

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import AuditLog, Member
from ..permissions import HasActiveRole, role_required
from ..serializers.queries import AuditLogQuerySerializer
from ..services import audit
from ..services.membership import get_active_organization
from .common import display_name, iso

AUDIT_VIEWER_ROLES = ('admin', Member.ROLE_KETUA, Member.ROLE_BENDAHARA, Member.ROLE_SEKRETARIS)


def _serialize(log: AuditLog) -> dict:
    return {
        'id': str(log.id),
        'userId': log.user_id,
        'userName': display_name(log.user),
        'userEmail': log.user.email if log.user else None,
        'organizationId': log.organization_id,
        'organizationName': log.organization.name if log.organization else None,
        'action': log.action,
        'resourceType': log.resource_type,
        'resourceId': log.resource_id,
        'ipAddress': log.ip_address,
        'userAgent': log.user_agent,
        'description': log.description,
        'oldValues': log.old_values,
        'newValues': log.new_values,
        'metadata': log.metadata,
        'severity': log.severity,
        'createdAt': iso(log.created_at),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasActiveRole, role_required(*AUDIT_VIEWER_ROLES)])
def audit_logs(request):
    q = AuditLogQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    vd = q.validated_data
    organization = get_active_organization(request.user)
    qs = audit.filter_logs(
        organization=organization,
        action=vd.get('action'),
        resource_type=vd.get('resourceType'),
        severity=vd.get('severity'),
        search=vd.get('search'),
        user_id=vd.get('userId'),
    )
    page, limit = vd['page'], vd['limit']
    total = qs.count()
    total_pages = math.ceil(total / limit)
    offset = (page - 1) * limit
    return Response({
        'success': True,
        'data': [_serialize(log) for log in qs[offset:offset + limit]],
        'pagination': {
            'page': page,
            'limit': limit,
            'totalCount': total,
            'totalPages': total_pages,
            'hasNextPage': page < total_pages,
            'hasPrevPage': page > 1,
        },
        'filters': audit.distinct_values(organization),
    })
