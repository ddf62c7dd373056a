from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from operations.models import InventoryItem, Member, Organization, TransactionCategory, User


@pytest.fixture(autouse=True)
def _fresh_cache():
    # throttle counters and cached categories live in the cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def organization(db):
    return Organization.objects.create(name='Yayasan Sehat', slug='yayasan-sehat')


@pytest.fixture
def make_user(db, organization):
    def _make(username, role=None, org=None):
        user = User.objects.create_user(username=username, password='P@ssw0rd1', first_name=username.title(),
                                        email=f'{username}@example.org')
        if role:
            org = org or organization
            Member.objects.create(user=user, organization=org, role=role)
            user.active_organization = org
            user.save(update_fields=['active_organization'])
        return user
    return _make


@pytest.fixture
def requester(make_user):
    return make_user('staf', 'OPERASIONAL')


@pytest.fixture
def bendahara(make_user):
    return make_user('bendahara', 'BENDAHARA')


@pytest.fixture
def ketua(make_user):
    return make_user('ketua', 'KETUA')


@pytest.fixture
def owner(make_user):
    return make_user('pemilik', 'owner')


@pytest.fixture
def client_for():
    def _client(user=None):
        client = APIClient()
        if user is not None:
            client.force_authenticate(user=user)
        return client
    return _client


@pytest.fixture
def expense_category(db):
    return TransactionCategory.objects.create(name='MEDICAL_SUPPLIES', type='EXPENSE', code='EXP-MED')


@pytest.fixture
def stock_item(db):
    return InventoryItem.objects.create(
        item_code='INV-TEST-001',
        name='Masker medis',
        category='MEDICAL_SUPPLIES',
        unit='box',
        quantity_on_hand=100,
        minimum_stock=10,
        average_unit_cost=Decimal('25000.00'),
    )
