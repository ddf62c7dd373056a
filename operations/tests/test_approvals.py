from datetime import timedelta

import pytest
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from operations.exceptions import ApprovalConflict
from operations.models import Approval, InventoryMovement, Request, Transaction
from operations.services.approvals import can_resolve, list_pending_for_role, resolve_approval
from operations.services.requests import create_request

pytestmark = pytest.mark.django_db


def _transaction_request(user, amount='5000000', **extra):
    data = {'requestType': 'TRANSACTION', 'transactionSubtype': 'EXPENSE', 'amount': amount,
            'description': 'Pembayaran listrik'}
    data.update(extra)
    return create_request(user, data)


def _inventory_request(user, item, movement='OUT', quantity=30):
    return create_request(user, {'requestType': 'INVENTORY', 'description': 'Pemakaian bangsal',
                                 'inventoryItemId': item.pk, 'movementType': movement, 'quantity': quantity})


def _level(req, level):
    return req.approvals.get(approval_level=level)


def test_transaction_request_seeds_bendahara_then_ketua(requester):
    req = _transaction_request(requester)
    chain = list(req.approvals.order_by('approval_level').values_list('approval_level', 'role_name', 'status'))
    assert chain == [(1, 'BENDAHARA', 'PENDING'), (2, 'KETUA', 'PENDING')]
    assert req.status == Request.STATUS_PENDING


def test_inventory_and_procurement_seed_single_ketua_level(requester, stock_item):
    inv = _inventory_request(requester, stock_item)
    proc = create_request(requester, {
        'requestType': 'PROCUREMENT', 'description': 'Sarung tangan',
        'items': [{'itemName': 'Gloves', 'quantity': 5, 'unit': 'box', 'unitPrice': '1000'}],
    })
    for req in (inv, proc):
        assert list(req.approvals.values_list('approval_level', 'role_name')) == [(1, 'KETUA')]


def test_seeded_approvals_time_out_after_seven_days(requester):
    before = timezone.now()
    req = _transaction_request(requester)
    for approval in req.approvals.all():
        assert before + timedelta(days=7) <= approval.timeout_at <= timezone.now() + timedelta(days=7)


def test_can_resolve_matches_role_or_superuser():
    assert can_resolve('KETUA', 'KETUA')
    assert can_resolve('owner', 'BENDAHARA')
    assert not can_resolve('BENDAHARA', 'KETUA')
    assert not can_resolve(None, 'KETUA')


def test_level_two_waits_for_level_one(requester, ketua):
    req = _transaction_request(requester)
    with pytest.raises(ApprovalConflict) as exc:
        resolve_approval(user=ketua, role='KETUA', approval_id=_level(req, 2).pk, action='APPROVE')
    assert str(exc.value.detail) == 'Level 1 approval must be completed first'
    assert _level(req, 2).status == Approval.STATUS_PENDING
    req.refresh_from_db()
    assert req.status == Request.STATUS_PENDING


def test_partial_approval_keeps_request_pending(requester, bendahara):
    req = _transaction_request(requester)
    resolve_approval(user=bendahara, role='BENDAHARA', approval_id=_level(req, 1).pk, action='APPROVE')
    req.refresh_from_db()
    level1 = _level(req, 1)
    assert level1.status == Approval.STATUS_APPROVED
    assert level1.approver == bendahara
    assert level1.approved_at is not None
    assert req.status == Request.STATUS_PENDING
    assert not Transaction.objects.exists()


def test_role_mismatch_is_forbidden(requester, bendahara, stock_item):
    req = _inventory_request(requester, stock_item)
    with pytest.raises(PermissionDenied):
        resolve_approval(user=bendahara, role='BENDAHARA', approval_id=_level(req, 1).pk, action='APPROVE')


def test_owner_bypasses_role_check(requester, owner):
    req = _transaction_request(requester)
    resolve_approval(user=owner, role='owner', approval_id=_level(req, 1).pk, action='APPROVE')
    resolve_approval(user=owner, role='owner', approval_id=_level(req, 2).pk, action='APPROVE')
    req.refresh_from_db()
    assert req.status == Request.STATUS_APPROVED


def test_resolving_twice_is_rejected_and_settles_once(requester, ketua, stock_item):
    req = _inventory_request(requester, stock_item)
    approval_id = _level(req, 1).pk
    resolve_approval(user=ketua, role='KETUA', approval_id=approval_id, action='APPROVE')
    with pytest.raises(ApprovalConflict) as exc:
        resolve_approval(user=ketua, role='KETUA', approval_id=approval_id, action='APPROVE')
    assert str(exc.value.detail) == 'This approval has already been processed'
    assert InventoryMovement.objects.filter(reference_id=req.pk).count() == 1
    stock_item.refresh_from_db()
    assert stock_item.quantity_on_hand == 70


def test_reject_at_level_one_rejects_request(requester, bendahara):
    req = _transaction_request(requester)
    resolve_approval(user=bendahara, role='BENDAHARA', approval_id=_level(req, 1).pk, action='REJECT',
                     comments='Anggaran habis')
    req.refresh_from_db()
    assert req.status == Request.STATUS_REJECTED
    assert _level(req, 1).comments == 'Anggaran habis'
    assert not Transaction.objects.exists()


def test_reject_after_earlier_approval_still_rejects(requester, bendahara, ketua):
    req = _transaction_request(requester)
    resolve_approval(user=bendahara, role='BENDAHARA', approval_id=_level(req, 1).pk, action='APPROVE')
    resolve_approval(user=ketua, role='KETUA', approval_id=_level(req, 2).pk, action='REJECT')
    req.refresh_from_db()
    assert req.status == Request.STATUS_REJECTED
    assert _level(req, 1).status == Approval.STATUS_APPROVED
    assert not Transaction.objects.exists()


def test_unknown_or_malformed_approval_is_not_found(ketua):
    with pytest.raises(NotFound):
        resolve_approval(user=ketua, role='KETUA', approval_id='not-a-uuid', action='APPROVE')
    with pytest.raises(NotFound):
        resolve_approval(user=ketua, role='KETUA', approval_id='1b4e28ba-2fa1-11d2-883f-0016d3cca427',
                         action='APPROVE')


def test_unknown_action_is_invalid(requester, ketua, stock_item):
    req = _inventory_request(requester, stock_item)
    with pytest.raises(ValidationError):
        resolve_approval(user=ketua, role='KETUA', approval_id=_level(req, 1).pk, action='MAYBE')


def test_pending_list_for_first_level_roles(requester, stock_item):
    txn = _transaction_request(requester)
    _inventory_request(requester, stock_item)
    pending = list_pending_for_role('BENDAHARA')
    assert [a.pk for a in pending] == [_level(txn, 1).pk]
    assert list_pending_for_role('SEKRETARIS') == []


def test_ketua_sees_level_two_only_after_level_one(requester, bendahara, stock_item):
    txn = _transaction_request(requester)
    inv = _inventory_request(requester, stock_item)

    assert {a.pk for a in list_pending_for_role('KETUA')} == {_level(inv, 1).pk}

    resolve_approval(user=bendahara, role='BENDAHARA', approval_id=_level(txn, 1).pk, action='APPROVE')
    assert {a.pk for a in list_pending_for_role('KETUA')} == {_level(inv, 1).pk, _level(txn, 2).pk}
    assert {a.pk for a in list_pending_for_role('owner')} == {_level(inv, 1).pk, _level(txn, 2).pk}


def test_other_roles_see_nothing(requester, stock_item):
    _inventory_request(requester, stock_item)
    assert list_pending_for_role('NURSE') == []
    assert list_pending_for_role('member') == []
