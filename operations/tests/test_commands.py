from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from operations.models import Approval, Facility, Member, Request, TransactionCategory, User
from operations.services.requests import create_request

pytestmark = pytest.mark.django_db


def _run(*args, **kwargs):
    out = StringIO()
    call_command(*args, stdout=out, stderr=StringIO(), **kwargs)
    return out.getvalue()


def _expire(req):
    req.approvals.update(timeout_at=timezone.now() - timedelta(minutes=1))


@pytest.fixture
def stale_request(requester):
    req = create_request(requester, {
        'requestType': 'TRANSACTION', 'transactionSubtype': 'EXPENSE', 'amount': 100000,
        'description': 'Perbaikan pompa',
    })
    _expire(req)
    return req


def test_seed_reference_data_is_idempotent():
    _run('seed_reference_data', '--organization', 'yayasan-uji')
    _run('seed_reference_data', '--organization', 'yayasan-uji')

    assert TransactionCategory.objects.count() == 7
    assert TransactionCategory.objects.filter(type='REVENUE').count() == 2
    assert Facility.objects.count() == 4
    assert User.objects.count() == len(Member.ROLE_CHOICES)
    ketua = User.objects.get(username='ketua')
    assert ketua.check_password('P@ssw0rd123')
    assert Member.objects.get(user=ketua).role == 'KETUA'
    assert ketua.active_organization.slug == 'yayasan-uji'


def test_seed_without_users():
    _run('seed_reference_data', '--skip-users')
    assert not User.objects.exists()
    assert TransactionCategory.objects.filter(code='EXP-MED', name='MEDICAL_SUPPLIES').exists()


def test_sweep_reports_when_nothing_expired(requester):
    create_request(requester, {'requestType': 'TRANSACTION', 'amount': 1, 'description': 'Baru'})
    assert 'No expired approvals.' in _run('sweep_approval_timeouts')


def test_sweep_policy_none_only_reports(stale_request):
    out = _run('sweep_approval_timeouts', '--policy', 'none')
    assert f'expired: {stale_request.request_code} level 1 (BENDAHARA)' in out
    assert '2 expired approval(s), policy=none' in out
    assert not Approval.objects.exclude(status=Approval.STATUS_PENDING).exists()


def test_sweep_dry_run_overrides_reject(stale_request, owner):
    _run('sweep_approval_timeouts', '--policy', 'reject', '--actor', owner.username, '--dry-run')
    stale_request.refresh_from_db()
    assert stale_request.status == Request.STATUS_PENDING


def test_sweep_reject_closes_request_once(stale_request, owner):
    out = _run('sweep_approval_timeouts', '--policy', 'reject', '--actor', owner.username)
    assert 'Rejected 1 of 2 expired approval(s).' in out

    stale_request.refresh_from_db()
    assert stale_request.status == Request.STATUS_REJECTED
    level1 = stale_request.approvals.get(approval_level=1)
    assert level1.status == Approval.STATUS_REJECTED
    assert level1.comments == 'Timed out'
    assert level1.approver == owner
    assert stale_request.approvals.get(approval_level=2).status == Approval.STATUS_PENDING


def test_sweep_reject_skips_what_actor_cannot_resolve(stale_request, ketua):
    # KETUA may not act on level 1 of a transaction request
    _run('sweep_approval_timeouts', '--policy', 'reject', '--actor', ketua.username)
    stale_request.refresh_from_db()
    assert stale_request.status == Request.STATUS_PENDING


def test_sweep_reject_needs_actor(stale_request):
    with pytest.raises(CommandError):
        _run('sweep_approval_timeouts', '--policy', 'reject')
    with pytest.raises(CommandError):
        _run('sweep_approval_timeouts', '--policy', 'reject', '--actor', 'nobody')


def test_sweep_reject_actor_needs_role(stale_request, make_user):
    make_user('tamu')
    with pytest.raises(CommandError):
        _run('sweep_approval_timeouts', '--policy', 'reject', '--actor', 'tamu')
