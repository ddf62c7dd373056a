"""
Management command to seed reference data (idempotent).
"""
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction

from operations.models import Facility, Member, Organization, TransactionCategory, User
from operations.services.categories import invalidate as invalidate_category_cache

CATEGORIES = [
    # (code, name, type)
    ('EXP-FOOD', 'FOOD', 'EXPENSE'),
    ('EXP-MED', 'MEDICAL_SUPPLIES', 'EXPENSE'),
    ('EXP-SAL', 'SALARIES', 'EXPENSE'),
    ('EXP-OPS', 'OPERATIONAL', 'EXPENSE'),
    ('EXP-UTL', 'UTILITIES', 'EXPENSE'),
    ('REV-DON', 'DONATIONS', 'REVENUE'),
    ('REV-SRV', 'PATIENT_SERVICES', 'REVENUE'),
]

FACILITIES = [
    ('AC', Decimal('50000.00')),
    ('TV', Decimal('25000.00')),
    ('Kamar mandi dalam', Decimal('75000.00')),
    ('Sofa penunggu', Decimal('30000.00')),
]


class Command(BaseCommand):
    help = "Seed the organization, transaction categories, facilities and one user per role (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument('--organization', default='yayasan', help='Organization slug')
        parser.add_argument('--password', default='P@ssw0rd123', help='Password for seeded users')
        parser.add_argument('--skip-users', action='store_true', help='Do not create role users')

    @transaction.atomic
    def handle(self, *args, **opts):
        org, created = Organization.objects.get_or_create(
            slug=opts['organization'], defaults={'name': opts['organization'].replace('-', ' ').title()}
        )
        self.stdout.write(f"organization: {org.slug} ({'created' if created else 'exists'})")

        for code, name, type_ in CATEGORIES:
            TransactionCategory.objects.update_or_create(
                code=code, defaults={'name': name, 'type': type_, 'is_active': True}
            )
        invalidate_category_cache()
        self.stdout.write(f"categories: {len(CATEGORIES)}")

        for name, price in FACILITIES:
            Facility.objects.get_or_create(name=name, defaults={'additional_price': price})
        self.stdout.write(f"facilities: {len(FACILITIES)}")

        if not opts['skip_users']:
            for role, _label in Member.ROLE_CHOICES:
                username = role.lower()
                user, _ = User.objects.get_or_create(
                    username=username,
                    defaults={'password': make_password(opts['password']), 'is_active': True},
                )
                Member.objects.update_or_create(user=user, organization=org, defaults={'role': role})
                if user.active_organization_id is None:
                    user.active_organization = org
                    user.save(update_fields=['active_organization'])
                self.stdout.write(f"user: {username} ({role})")

        self.stdout.write(self.style.SUCCESS("Reference data ensured."))
