"""
Output helpers shared by the API views.

Amounts are rendered as strings with two decimals, identifiers as
strings, and timestamps in ISO 8601.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..models import Approval, Request, RequestItem

CENTS = Decimal('0.01')


def money(value) -> Optional[str]:
    if value is None:
        return None
    return str(Decimal(value).quantize(CENTS))


def iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def display_name(user) -> Optional[str]:
    if user is None:
        return None
    return user.get_full_name() or user.username


def serialize_item(item: RequestItem) -> dict:
    return {
        'id': str(item.id),
        'requestId': str(item.request_id),
        'inventoryItemId': str(item.inventory_item_id) if item.inventory_item_id else None,
        'itemName': item.item_name,
        'quantity': item.quantity,
        'unit': item.unit,
        'unitPrice': money(item.unit_price),
        'totalPrice': money(item.total_price),
        'specifications': item.specifications,
    }


def serialize_approval(approval: Approval) -> dict:
    return {
        'id': str(approval.id),
        'requestId': str(approval.request_id),
        'approvalLevel': approval.approval_level,
        'roleName': approval.role_name,
        'approverUserId': approval.approver_id,
        'approverName': display_name(approval.approver),
        'status': approval.status,
        'comments': approval.comments,
        'approvedAt': iso(approval.approved_at),
        'timeoutAt': iso(approval.timeout_at),
    }


def serialize_request(req: Request, *, with_children: bool = False) -> dict:
    data = {
        'id': str(req.id),
        'requestCode': req.request_code,
        'requestType': req.request_type,
        'transactionSubtype': req.transaction_subtype,
        'expenseCategoryId': str(req.expense_category_id) if req.expense_category_id else None,
        'categoryName': req.expense_category.name if req.expense_category else None,
        'requesterUserId': req.requester_id,
        'requesterName': display_name(req.requester),
        'amount': money(req.amount),
        'description': req.description,
        'justification': req.justification,
        'status': req.status,
        'priority': req.priority,
        'neededByDate': iso(req.needed_by_date),
        'createdAt': iso(req.created_at),
        'updatedAt': iso(req.updated_at),
    }
    if with_children:
        data['approvals'] = [serialize_approval(a) for a in req.approvals.all()]
        data['items'] = [serialize_item(i) for i in req.items.all()]
    return data


def serialize_pending_approval(approval: Approval) -> dict:
    """Approval flattened with its request, as listed for approvers."""
    req = approval.request
    requester = req.requester
    return {
        'approvalId': str(approval.id),
        'approvalLevel': approval.approval_level,
        'roleName': approval.role_name,
        'approvalStatus': approval.status,
        'comments': approval.comments,
        'timeoutAt': iso(approval.timeout_at),
        'createdAt': iso(approval.created_at),
        'requestId': str(req.id),
        'requestCode': req.request_code,
        'requestType': req.request_type,
        'transactionSubtype': req.transaction_subtype,
        'amount': money(req.amount),
        'description': req.description,
        'justification': req.justification,
        'requestStatus': req.status,
        'priority': req.priority,
        'neededByDate': iso(req.needed_by_date),
        'requestCreatedAt': iso(req.created_at),
        'categoryName': req.expense_category.name if req.expense_category else None,
        'requesterName': display_name(requester),
        'requesterEmail': requester.email if requester else None,
        'items': [serialize_item(i) for i in req.items.all()],
    }
