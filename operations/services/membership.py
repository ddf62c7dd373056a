from typing import Optional

from rest_framework.exceptions import PermissionDenied

from ..models import Member, Organization


def get_active_membership(user) -> Optional[Member]:
    """Return the membership for the user's active organization.

    Falls back to the oldest membership when no organization is active.
    """
    if not user or not getattr(user, 'is_authenticated', False):
        return None
    memberships = Member.objects.select_related('organization').filter(user=user)
    if user.active_organization_id:
        member = memberships.filter(organization_id=user.active_organization_id).first()
        if member:
            return member
    return memberships.order_by('created_at', 'id').first()


def get_active_member_role(user) -> Optional[str]:
    member = get_active_membership(user)
    return member.role if member else None


def get_active_organization(user) -> Optional[Organization]:
    member = get_active_membership(user)
    return member.organization if member else None


def set_active_organization(user, organization_id) -> Member:
    member = (
        Member.objects.select_related('organization')
        .filter(user=user, organization_id=organization_id)
        .first()
    )
    if not member:
        raise PermissionDenied('You are not a member of this organization')
    user.active_organization = member.organization
    user.save(update_fields=['active_organization'])
    return member
