"""
Authentication views.

Login issues both a DRF token and a simplejwt access/refresh pair, and
reports the organization and role the session will act under. These
views live apart from the authentication class (see
``operations.authentication``) so DRF can import that class during
start-up without importing views.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed, ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from operations.serializers.auth import ActiveOrganizationSerializer, LoginSerializer
from operations.services import audit
from operations.services.membership import get_active_membership, set_active_organization

from .models import AuditLog, Member, User

logger = logging.getLogger(__name__)


def _membership_payload(member: Member | None) -> dict:
    if member is None:
        return {'activeOrganization': None, 'role': None}
    return {
        'activeOrganization': {
            'id': member.organization.id,
            'name': member.organization.name,
            'slug': member.organization.slug,
        },
        'role': member.role,
    }


def _user_payload(user: User) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'name': user.get_full_name() or user.username,
        'email': user.email,
    }


# ---------------------------------------------------------------------
# Username/password login
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']

    user = authenticate(request, username=username, password=s.validated_data['password'])
    if not user:
        audit.record(user=None, action='LOGIN_FAILED', resource_type='USER', resource_id=username,
                     description=f'Login gagal untuk {username}', severity=AuditLog.SEVERITY_WARNING,
                     request=request)
        raise AuthenticationFailed('Invalid username or password')

    member = get_active_membership(user)
    if member and user.active_organization_id != member.organization_id:
        user.active_organization = member.organization
        user.save(update_fields=['active_organization'])

    audit.record(user=user, action='LOGIN', resource_type='USER', resource_id=user.id,
                 description=f'Login berhasil: {user.username}', request=request)

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'success': True,
        'token': token_obj.key,
        'jwtAccess': str(refresh.access_token),
        'jwtRefresh': str(refresh),
        'user': _user_payload(user),
        **_membership_payload(member),
    })

login_view.cls.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    member = get_active_membership(request.user)
    return Response({'success': True, 'user': _user_payload(request.user), **_membership_payload(member)})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def active_organization_view(request):
    """Switch the organization (and so the role) the caller acts under."""
    s = ActiveOrganizationSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    member = set_active_organization(request.user, s.validated_data['organizationId'])
    logger.info('%s switched to organization %s as %s', request.user, member.organization.slug, member.role)
    return Response({'success': True, **_membership_payload(member)})


# ---------------------------------------------------------------------
# JWT: refresh & logout
# ---------------------------------------------------------------------
@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    view = TokenRefreshView.as_view()
    resp = view(request._request)
    data = dict(resp.data)
    if resp.status_code != 200:
        # already shaped by the project exception handler
        return Response(data, status=resp.status_code)
    body = {'success': True, 'jwtAccess': data['access']}
    if 'refresh' in data:
        body['jwtRefresh'] = data['refresh']
    return Response(body)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist one refresh token, or every outstanding token of the caller."""
    refresh = request.data.get('refresh')
    count = 0
    if refresh:
        try:
            RefreshToken(refresh).blacklist()
        except TokenError as e:
            raise ValidationError({'refresh': [str(e)]})
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    return Response({'success': True, 'blacklisted': count})
