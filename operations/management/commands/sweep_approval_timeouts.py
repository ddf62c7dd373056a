"""
Management command acting on approvals whose timeout has passed.

With ``APPROVAL_TIMEOUT_POLICY=none`` (the default) expired approvals are
only reported. With ``reject`` each one is rejected through the normal
approval path, as the user given by ``--actor``.
"""
import logging

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from rest_framework.exceptions import APIException

from operations.models import User
from operations.services.approvals import REJECT, expired_pending, resolve_approval
from operations.services.membership import get_active_member_role

logger = logging.getLogger(__name__)

TIMEOUT_COMMENT = 'Timed out'


class Command(BaseCommand):
    help = "Report, or reject per APPROVAL_TIMEOUT_POLICY, pending approvals past their timeout."

    def add_arguments(self, parser):
        parser.add_argument('--actor', help='Username recorded as the rejecting approver')
        parser.add_argument('--dry-run', action='store_true', help='Only report, whatever the policy')
        parser.add_argument('--policy', choices=['none', 'reject'], help='Override APPROVAL_TIMEOUT_POLICY')

    def handle(self, *args, **opts):
        policy = opts.get('policy') or settings.APPROVAL_TIMEOUT_POLICY
        if opts['dry_run']:
            policy = 'none'

        expired = list(expired_pending())
        if not expired:
            self.stdout.write("No expired approvals.")
            return

        if policy == 'none':
            for approval in expired:
                self.stdout.write(
                    f"expired: {approval.request.request_code} level {approval.approval_level} "
                    f"({approval.role_name}) since {approval.timeout_at:%Y-%m-%d %H:%M}"
                )
            self.stdout.write(self.style.WARNING(f"{len(expired)} expired approval(s), policy=none"))
            return

        actor = self._actor(opts.get('actor'))
        role = get_active_member_role(actor)
        rejected = 0
        closed = set()
        for approval in expired:
            if approval.request_id in closed:
                continue
            try:
                resolve_approval(user=actor, role=role, approval_id=approval.pk, action=REJECT,
                                 comments=TIMEOUT_COMMENT)
            except APIException as e:
                logger.warning('Could not reject %s: %s', approval.pk, e.detail)
                self.stderr.write(f"skipped {approval.request.request_code} level {approval.approval_level}: {e.detail}")
                continue
            rejected += 1
            closed.add(approval.request_id)
            self.stdout.write(f"rejected: {approval.request.request_code} level {approval.approval_level}")
        self.stdout.write(self.style.SUCCESS(f"Rejected {rejected} of {len(expired)} expired approval(s)."))

    def _actor(self, username):
        if not username:
            raise CommandError("--actor is required when policy is 'reject'")
        actor = User.objects.filter(username=username).first()
        if actor is None:
            raise CommandError(f"Unknown user: {username}")
        if not get_active_member_role(actor):
            raise CommandError(f"User {username} has no active role")
        return actor
