"""
Permission classes based on the caller's role in their active organization.
"""
from django.conf import settings
from rest_framework.permissions import BasePermission

from .services.membership import get_active_member_role


class HasActiveRole(BasePermission):
    """Caller must hold a role in their active (or first) organization.

    The resolved role is cached on the request as ``active_role``.
    """
    message = 'No active role found'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            return False
        role = get_active_member_role(user)
        request.active_role = role
        return role is not None


class HasRole(BasePermission):
    """Caller's active role must be one of ``roles`` (or the superuser role)."""
    roles: frozenset = frozenset()
    message = 'You do not have permission to perform this action'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        role = getattr(request, 'active_role', None)
        if role is None:
            role = get_active_member_role(getattr(request, "user", None))
        return bool(role) and (role in self.roles or role == settings.SUPERUSER_ROLE)


def role_required(*roles):
    """Build a :class:`HasRole` subclass for the given roles."""
    return type('HasRole_' + '_'.join(roles), (HasRole,), {'roles': frozenset(roles)})
