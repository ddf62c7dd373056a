import re

import pytest
from django.urls import reverse
from rest_framework.throttling import ScopedRateThrottle

from operations.models import AuditLog, InventoryItem, Request, Transaction

pytestmark = pytest.mark.django_db


def _expense(amount=5000000, **extra):
    body = {'requestType': 'TRANSACTION', 'transactionSubtype': 'EXPENSE', 'amount': amount,
            'description': 'Pembayaran listrik'}
    body.update(extra)
    return body


def test_requests_require_authentication(client_for):
    res = client_for().get(reverse('requests'))
    assert res.status_code == 401
    assert res.json()['success'] is False


def test_create_transaction_request(client_for, requester, expense_category):
    client = client_for(requester)
    res = client.post(reverse('requests'), _expense(expenseCategoryId=str(expense_category.pk)), format='json')
    assert res.status_code == 201
    data = res.json()['data']
    assert re.match(r'^REQ-\d{8}-001$', data['requestCode'])
    assert data['status'] == 'PENDING'
    assert data['amount'] == '5000000.00'
    assert data['categoryName'] == 'MEDICAL_SUPPLIES'
    assert data['priority'] == 'MEDIUM'

    second = client.post(reverse('requests'), _expense(amount=1000), format='json').json()['data']
    assert second['requestCode'].endswith('-002')
    assert AuditLog.objects.filter(action='CREATE', resource_type='REQUEST').count() == 2


def test_create_request_missing_description(client_for, requester):
    body = _expense()
    del body['description']
    res = client_for(requester).post(reverse('requests'), body, format='json')
    assert res.status_code == 400
    assert res.json()['error'] == 'Missing required fields'
    assert not Request.objects.exists()


def test_create_request_unknown_type(client_for, requester):
    res = client_for(requester).post(reverse('requests'), _expense(requestType='LOAN'), format='json')
    assert res.status_code == 400
    assert res.json()['error'] == 'Invalid request type'


def test_inventory_request_requires_item_movement_and_quantity(client_for, requester, stock_item):
    body = {'requestType': 'INVENTORY', 'description': 'Pemakaian', 'inventoryItemId': str(stock_item.pk),
            'movementType': 'OUT'}
    res = client_for(requester).post(reverse('requests'), body, format='json')
    assert res.status_code == 400
    assert res.json()['error'] == 'INVENTORY request requires inventoryItemId, movementType, and quantity'


def test_inventory_request_rejects_negative_quantity(client_for, requester, stock_item):
    body = {'requestType': 'INVENTORY', 'description': 'Pemakaian', 'inventoryItemId': str(stock_item.pk),
            'movementType': 'OUT', 'quantity': -3}
    res = client_for(requester).post(reverse('requests'), body, format='json')
    assert res.status_code == 400
    assert res.json()['error'] == 'Quantity must be a positive integer'


def test_inventory_request_for_missing_item(client_for, requester):
    body = {'requestType': 'INVENTORY', 'description': 'Pemakaian',
            'inventoryItemId': '1b4e28ba-2fa1-11d2-883f-0016d3cca427', 'movementType': 'OUT', 'quantity': 1}
    res = client_for(requester).post(reverse('requests'), body, format='json')
    assert res.status_code == 404
    assert res.json() == {'success': False, 'error': 'Inventory item not found'}


def test_procurement_request_requires_items(client_for, requester):
    body = {'requestType': 'PROCUREMENT', 'description': 'Restock', 'items': []}
    res = client_for(requester).post(reverse('requests'), body, format='json')
    assert res.status_code == 400
    assert res.json()['error'] == 'PROCUREMENT request requires at least one item'


def test_procurement_amount_defaults_to_item_total(client_for, requester):
    body = {'requestType': 'PROCUREMENT', 'description': 'Restock', 'items': [
        {'itemName': 'Gloves', 'quantity': 50, 'unit': 'box', 'unitPrice': '10000'},
        {'itemName': 'Masker', 'quantity': 2, 'unit': 'box', 'unitPrice': '1500', 'totalPrice': '2500'},
    ]}
    res = client_for(requester).post(reverse('requests'), body, format='json')
    assert res.status_code == 201
    assert res.json()['data']['amount'] == '502500.00'


def test_list_shows_only_own_requests(client_for, requester, make_user):
    other = make_user('perawat', 'NURSE')
    client_for(other).post(reverse('requests'), _expense(description='Milik orang lain'), format='json')
    client_for(requester).post(reverse('requests'), _expense(), format='json')

    res = client_for(requester).get(reverse('requests'))
    assert res.status_code == 200
    data = res.json()['data']
    assert len(data) == 1
    assert data[0]['description'] == 'Pembayaran listrik'
    assert [a['roleName'] for a in data[0]['approvals']] == ['BENDAHARA', 'KETUA']
    assert data[0]['items'] == []


def test_detail_visible_to_requester_and_chain_roles_only(client_for, requester, ketua, make_user):
    created = client_for(requester).post(reverse('requests'), _expense(), format='json').json()['data']
    url = reverse('request_detail', args=[created['id']])

    assert client_for(requester).get(url).status_code == 200
    assert client_for(ketua).get(url).status_code == 200
    nurse = make_user('perawat', 'NURSE')
    res = client_for(nurse).get(url)
    assert res.status_code == 404
    assert res.json()['error'] == 'Request not found'


def test_detail_lists_settled_transactions(client_for, requester, owner):
    created = client_for(requester).post(reverse('requests'), _expense(), format='json').json()['data']
    approver = client_for(owner)
    for approval in Request.objects.get(pk=created['id']).approvals.order_by('approval_level'):
        approver.post(reverse('approvals'), {'approvalId': str(approval.pk), 'action': 'APPROVE'}, format='json')

    data = client_for(requester).get(reverse('request_detail', args=[created['id']])).json()['data']
    assert data['status'] == 'APPROVED'
    assert len(data['transactions']) == 1
    assert data['transactions'][0]['amount'] == '5000000.00'
    assert Transaction.objects.count() == 1


def _approve_all(client, request_id):
    for approval in Request.objects.get(pk=request_id).approvals.order_by('approval_level'):
        res = client.post(reverse('approvals'), {'approvalId': str(approval.pk), 'action': 'APPROVE'}, format='json')
        assert res.status_code == 200


def test_plain_text_survives_into_ledger(client_for, requester, owner):
    body = _expense(description='Obat & alkes <5 box', justification='<i>Stok</i> habis & mendesak')
    created = client_for(requester).post(reverse('requests'), body, format='json').json()['data']
    _approve_all(client_for(owner), created['id'])

    req = Request.objects.get(pk=created['id'])
    assert req.description == 'Obat & alkes <5 box'
    assert req.justification == 'Stok habis & mendesak'
    assert Transaction.objects.get(reference_id=req.pk).description == 'Obat & alkes <5 box'


def test_procurement_item_name_keeps_ampersand(client_for, requester, owner):
    body = {
        'requestType': 'PROCUREMENT',
        'description': 'Kasa & perban IGD',
        'items': [{'itemName': 'Kasa & perban', 'quantity': 3, 'unit': 'pack', 'unitPrice': '15000'}],
    }
    created = client_for(requester).post(reverse('requests'), body, format='json').json()['data']
    _approve_all(client_for(owner), created['id'])

    assert InventoryItem.objects.get(name='Kasa & perban').quantity_on_hand == 3
    assert Transaction.objects.get().description == 'Pengadaan: Kasa & perban IGD'


def test_write_throttle_ignores_reads(monkeypatch, client_for, requester):
    monkeypatch.setitem(ScopedRateThrottle.THROTTLE_RATES, 'approval_write', '2/min')
    client = client_for(requester)
    for _ in range(5):
        assert client.get(reverse('requests')).status_code == 200
    for n in range(2):
        assert client.post(reverse('requests'), _expense(amount=n + 1), format='json').status_code == 201

    res = client.post(reverse('requests'), _expense(amount=3), format='json')
    assert res.status_code == 429
    assert res.json()['success'] is False
    assert client.get(reverse('requests')).status_code == 200
