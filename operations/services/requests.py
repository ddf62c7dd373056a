"""
Request intake: persist a request, its line items and its approval chain.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from ..models import InventoryItem, InventoryMovement, Request, RequestItem, RequestType, TransactionCategory
from .approvals import seed_chain
from .sequences import REQUEST_PREFIX, next_code

logger = logging.getLogger(__name__)


def _inventory_line(req: Request, item: InventoryItem, movement_type: str, quantity: int) -> RequestItem:
    signed = -quantity if movement_type == InventoryMovement.TYPE_OUT else quantity
    return RequestItem(
        request=req,
        inventory_item=item,
        item_name=item.name,
        quantity=signed,
        unit=item.unit,
        unit_price=item.average_unit_cost,
        total_price=item.average_unit_cost * quantity,
        specifications=f'Movement Type: {movement_type}',
    )


def _procurement_line(req: Request, data: Dict[str, Any], stock: Optional[InventoryItem]) -> RequestItem:
    unit_price = Decimal(data['unitPrice'])
    total = data.get('totalPrice')
    return RequestItem(
        request=req,
        inventory_item=stock,
        item_name=data['itemName'],
        quantity=data['quantity'],
        unit=data['unit'],
        unit_price=unit_price,
        total_price=Decimal(total) if total is not None else unit_price * data['quantity'],
        specifications=data.get('specifications') or None,
    )


def procurement_total(items: List[Dict[str, Any]]) -> Decimal:
    total = Decimal('0')
    for data in items:
        if data.get('totalPrice') is not None:
            total += Decimal(data['totalPrice'])
        else:
            total += Decimal(data['unitPrice']) * data['quantity']
    return total


@transaction.atomic
def create_request(requester, data: Dict[str, Any]) -> Request:
    """Create a request from validated input.

    ``data`` uses the API's field names (``requestType``, ``items``...).
    Raises :class:`NotFound` when a referenced inventory item is missing.
    """
    request_type = data['requestType']

    stock = None
    if request_type == RequestType.INVENTORY:
        stock = InventoryItem.objects.filter(pk=data['inventoryItemId']).first()
        if stock is None:
            raise NotFound('Inventory item not found')

    category = None
    if data.get('expenseCategoryId'):
        category = TransactionCategory.objects.filter(pk=data['expenseCategoryId']).first()
        if category is None:
            raise NotFound('Transaction category not found')

    linked: Dict[str, InventoryItem] = {}
    if request_type == RequestType.PROCUREMENT:
        ids = {str(i['inventoryItemId']) for i in data['items'] if i.get('inventoryItemId')}
        linked = {str(i.pk): i for i in InventoryItem.objects.filter(pk__in=ids)}
        missing = ids - set(linked)
        if missing:
            raise NotFound('Inventory item not found')

    amount = data.get('amount')
    if amount is None:
        amount = procurement_total(data['items']) if request_type == RequestType.PROCUREMENT else Decimal('0')

    req = Request.objects.create(
        request_code=next_code(REQUEST_PREFIX),
        request_type=request_type,
        requester=requester,
        transaction_subtype=data.get('transactionSubtype') or None,
        expense_category=category,
        amount=amount,
        description=data['description'],
        justification=data.get('justification') or None,
        priority=data.get('priority') or 'MEDIUM',
        needed_by_date=data.get('neededByDate'),
        status=Request.STATUS_PENDING,
    )

    if request_type == RequestType.INVENTORY:
        _inventory_line(req, stock, data['movementType'], data['quantity']).save()
    elif request_type == RequestType.PROCUREMENT:
        RequestItem.objects.bulk_create([
            _procurement_line(req, item, linked.get(str(item.get('inventoryItemId') or '')))
            for item in data['items']
        ])

    seed_chain(req)
    logger.info('Created %s request %s for %s', request_type, req.request_code, requester)
    return req


def list_own_requests(user):
    return (
        Request.objects.filter(requester=user)
        .select_related('expense_category', 'requester')
        .prefetch_related('approvals__approver', 'items')
        .order_by('-created_at')
    )


def get_request_or_404(pk) -> Request:
    req = (
        Request.objects.select_related('expense_category', 'requester')
        .prefetch_related('approvals__approver', 'items')
        .filter(pk=pk)
        .first()
    )
    if req is None:
        raise NotFound('Request not found')
    return req
