from decimal import Decimal

import pytest

from operations.models import (
    Approval,
    AuditLog,
    InventoryItem,
    InventoryMovement,
    Request,
    RequestType,
    Transaction,
)
from operations.services import settlement
from operations.services.approvals import resolve_approval
from operations.services.requests import create_request
from operations.services.settlement import (
    SettlementError,
    category_from_specifications,
    ledger_type_for,
    settle,
    weighted_average_cost,
)

pytestmark = pytest.mark.django_db


def _approve_all(req, user, role='owner'):
    for approval in req.approvals.order_by('approval_level'):
        resolve_approval(user=user, role=role, approval_id=approval.pk, action='APPROVE')
    req.refresh_from_db()
    return req


def test_weighted_average_blends_existing_and_incoming():
    assert weighted_average_cost(10, Decimal('100'), 10, Decimal('200')) == Decimal('150.00')
    assert weighted_average_cost(2, Decimal('10'), 1, Decimal('11')) == Decimal('10.33')
    assert weighted_average_cost(1, Decimal('0.01'), 1, Decimal('0.02')) == Decimal('0.02')


def test_weighted_average_with_empty_stock_takes_incoming_price():
    assert weighted_average_cost(0, Decimal('999'), 5, Decimal('12.5')) == Decimal('12.50')


def test_ledger_type_follows_subtype():
    assert ledger_type_for('REVENUE') == Transaction.TYPE_REVENUE
    assert ledger_type_for('CAPITAL_INJECTION') == Transaction.TYPE_CAPITAL_INJECTION
    assert ledger_type_for('EXPENSE') == Transaction.TYPE_EXPENSE
    assert ledger_type_for(None) == Transaction.TYPE_EXPENSE


def test_category_hint_in_specifications():
    assert category_from_specifications('Nitrile, category:MEDICAL_SUPPLIES, size M') == 'MEDICAL_SUPPLIES'
    assert category_from_specifications('size M') == 'GENERAL'
    assert category_from_specifications(None) == 'GENERAL'


def test_approved_expense_lands_in_ledger(requester, owner, expense_category):
    req = create_request(requester, {
        'requestType': 'TRANSACTION', 'transactionSubtype': 'EXPENSE', 'amount': Decimal('5000000'),
        'expenseCategoryId': expense_category.pk, 'description': 'Pembelian obat',
    })
    req = _approve_all(req, owner)

    assert req.status == Request.STATUS_APPROVED
    txn = Transaction.objects.get(reference_id=req.pk)
    assert txn.transaction_type == Transaction.TYPE_EXPENSE
    assert txn.amount == Decimal('5000000.00')
    assert txn.category == expense_category
    assert txn.reference_type == 'REQUEST'
    assert txn.description == 'Pembelian obat'
    assert txn.created_by == owner
    assert txn.transaction_code.startswith('TRX-')


def test_approved_donation_is_revenue(requester, owner):
    req = create_request(requester, {
        'requestType': 'TRANSACTION', 'transactionSubtype': 'REVENUE', 'amount': Decimal('750000'),
        'description': 'Donasi jamaah',
    })
    _approve_all(req, owner)
    assert Transaction.objects.get(reference_id=req.pk).transaction_type == Transaction.TYPE_REVENUE


def test_inventory_out_reduces_stock(requester, ketua, stock_item):
    req = create_request(requester, {
        'requestType': 'INVENTORY', 'description': 'Pemakaian IGD',
        'inventoryItemId': stock_item.pk, 'movementType': 'OUT', 'quantity': 30,
    })
    _approve_all(req, ketua, role='KETUA')

    stock_item.refresh_from_db()
    assert stock_item.quantity_on_hand == 70
    movement = InventoryMovement.objects.get(reference_id=req.pk)
    assert movement.movement_type == InventoryMovement.TYPE_OUT
    assert movement.quantity == -30
    assert movement.unit_cost == Decimal('25000.00')
    assert movement.performed_by == ketua
    assert movement.notes == 'Pemakaian IGD'
    assert not Transaction.objects.exists()


def test_inventory_in_increases_stock(requester, ketua, stock_item):
    req = create_request(requester, {
        'requestType': 'INVENTORY', 'description': 'Retur dari bangsal',
        'inventoryItemId': stock_item.pk, 'movementType': 'IN', 'quantity': 5,
    })
    _approve_all(req, ketua, role='KETUA')
    stock_item.refresh_from_db()
    assert stock_item.quantity_on_hand == 105
    assert InventoryMovement.objects.get(reference_id=req.pk).movement_type == InventoryMovement.TYPE_IN


def test_procurement_of_known_item_updates_average_cost(requester, owner):
    item = InventoryItem.objects.create(item_code='INV-TEST-002', name='Kasa steril', category='MEDICAL_SUPPLIES',
                                        unit='pack', quantity_on_hand=10, average_unit_cost=Decimal('100.00'))
    req = create_request(requester, {
        'requestType': 'PROCUREMENT', 'description': 'Restock kasa',
        'items': [{'itemName': 'Kasa steril', 'quantity': 10, 'unit': 'pack', 'unitPrice': '200',
                   'inventoryItemId': item.pk}],
    })
    assert req.amount == Decimal('2000')
    _approve_all(req, owner)

    item.refresh_from_db()
    assert item.quantity_on_hand == 20
    assert item.average_unit_cost == Decimal('150.00')

    txn = Transaction.objects.get(reference_id=req.pk)
    assert txn.transaction_type == Transaction.TYPE_EXPENSE
    assert txn.amount == Decimal('2000.00')
    assert txn.description == 'Pengadaan: Restock kasa'

    movement = InventoryMovement.objects.get(reference_id=req.pk)
    assert movement.movement_type == InventoryMovement.TYPE_IN
    assert movement.quantity == 10
    assert movement.notes == 'Procurement: Kasa steril'


def test_procurement_of_new_item_creates_stock_row(requester, owner):
    req = create_request(requester, {
        'requestType': 'PROCUREMENT', 'description': 'Sarung tangan', 'amount': Decimal('500000'),
        'items': [{'itemName': 'Gloves', 'quantity': 50, 'unit': 'box', 'unitPrice': '10000',
                   'specifications': 'Nitrile category:MEDICAL_SUPPLIES'}],
    })
    _approve_all(req, owner)

    gloves = InventoryItem.objects.get(name='Gloves')
    assert gloves.item_code.startswith('INV-')
    assert gloves.category == 'MEDICAL_SUPPLIES'
    assert gloves.unit == 'box'
    assert gloves.quantity_on_hand == 50
    assert gloves.average_unit_cost == Decimal('10000.00')
    assert gloves.is_active
    assert Transaction.objects.get(reference_id=req.pk).amount == Decimal('500000.00')


def test_new_item_without_category_hint_is_general(requester, owner):
    req = create_request(requester, {
        'requestType': 'PROCUREMENT', 'description': 'Alat tulis',
        'items': [{'itemName': 'Pulpen', 'quantity': 12, 'unit': 'pcs', 'unitPrice': '2500'}],
    })
    _approve_all(req, owner)
    assert InventoryItem.objects.get(name='Pulpen').category == 'GENERAL'


def test_unregistered_request_type_cannot_settle(owner):
    with pytest.raises(SettlementError):
        settle(Request(request_code='REQ-TEST', request_type='BOGUS'), owner)


def test_failed_settlement_rolls_back_approval(monkeypatch, requester, ketua, stock_item):
    req = create_request(requester, {
        'requestType': 'INVENTORY', 'description': 'Pemakaian',
        'inventoryItemId': stock_item.pk, 'movementType': 'OUT', 'quantity': 1,
    })

    def fail(req, user):
        raise SettlementError('ledger unavailable')

    monkeypatch.setitem(settlement.SETTLEMENT_HANDLERS, RequestType.INVENTORY, fail)
    approval = req.approvals.get()
    with pytest.raises(SettlementError):
        resolve_approval(user=ketua, role='KETUA', approval_id=approval.pk, action='APPROVE')

    approval.refresh_from_db()
    req.refresh_from_db()
    assert approval.status == Approval.STATUS_PENDING
    assert approval.approver is None
    assert req.status == Request.STATUS_PENDING


def test_audit_entries_written_after_commit(django_capture_on_commit_callbacks, requester, ketua, stock_item):
    req = create_request(requester, {
        'requestType': 'INVENTORY', 'description': 'Pemakaian',
        'inventoryItemId': stock_item.pk, 'movementType': 'OUT', 'quantity': 2,
    })
    with django_capture_on_commit_callbacks(execute=True):
        resolve_approval(user=ketua, role='KETUA', approval_id=req.approvals.get().pk, action='APPROVE')

    approve = AuditLog.objects.get(action='APPROVE')
    assert approve.user == ketua
    assert approve.resource_type == 'APPROVAL'
    assert approve.new_values['requestStatus'] == Request.STATUS_APPROVED
    settle_log = AuditLog.objects.get(action='SETTLE')
    assert settle_log.resource_id == str(req.pk)
    assert settle_log.new_values['movements'] == 1
