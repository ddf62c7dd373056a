"""
Business effects applied when a request's approval chain completes.

Each request type registers exactly one settlement function. The
approval engine calls :func:`settle` inside its own database transaction,
so every write here commits or rolls back together with the approval
that triggered it. Inventory rows are locked before they are read or
changed.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List

from django.utils import timezone

from ..models import (
    REFERENCE_REQUEST,
    InventoryItem,
    InventoryMovement,
    Request,
    RequestType,
    Transaction,
    TransactionSubtype,
)
from .sequences import INVENTORY_PREFIX, TRANSACTION_PREFIX, next_code

logger = logging.getLogger(__name__)

CATEGORY_HINT = re.compile(r'category:(\w+)')
DEFAULT_INVENTORY_CATEGORY = 'GENERAL'
PROCUREMENT_DESCRIPTION_PREFIX = 'Pengadaan: '
CENTS = Decimal('0.01')


class SettlementError(Exception):
    """Raised when a request cannot be settled."""


@dataclass
class SettlementResult:
    request_id: str
    request_type: str
    transactions: List[Transaction] = field(default_factory=list)
    movements: List[InventoryMovement] = field(default_factory=list)
    created_items: List[InventoryItem] = field(default_factory=list)

    def summary(self) -> dict:
        return {
            'requestType': self.request_type,
            'transactions': [t.transaction_code for t in self.transactions],
            'movements': len(self.movements),
            'createdItems': [i.item_code for i in self.created_items],
        }


Settler = Callable[[Request, object], SettlementResult]

SETTLEMENT_HANDLERS: Dict[str, Settler] = {}


def settles(request_type: str):
    def register(fn: Settler) -> Settler:
        SETTLEMENT_HANDLERS[request_type] = fn
        return fn
    return register


def settle(req: Request, performed_by) -> SettlementResult:
    """Run the settlement registered for ``req.request_type``."""
    handler = SETTLEMENT_HANDLERS.get(req.request_type)
    if handler is None:
        raise SettlementError(f'No settlement registered for request type {req.request_type!r}')
    result = handler(req, performed_by)
    logger.debug('Settled %s: %s', req.request_code, result.summary())
    return result


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------

def ledger_type_for(subtype) -> str:
    if subtype == TransactionSubtype.REVENUE:
        return Transaction.TYPE_REVENUE
    if subtype == TransactionSubtype.CAPITAL_INJECTION:
        return Transaction.TYPE_CAPITAL_INJECTION
    return Transaction.TYPE_EXPENSE


def category_from_specifications(specifications) -> str:
    match = CATEGORY_HINT.search(specifications or '')
    return match.group(1) if match else DEFAULT_INVENTORY_CATEGORY


def weighted_average_cost(old_quantity: int, old_cost, quantity: int, unit_price) -> Decimal:
    """Blend the cost of stock on hand with an incoming batch.

    An item with no stock (or one that would end at zero) takes the
    incoming price as is.
    """
    old_cost = Decimal(old_cost)
    unit_price = Decimal(unit_price)
    new_quantity = old_quantity + quantity
    if old_quantity == 0 or new_quantity == 0:
        return unit_price.quantize(CENTS, rounding=ROUND_HALF_UP)
    total = old_quantity * old_cost + quantity * unit_price
    return (total / new_quantity).quantize(CENTS, rounding=ROUND_HALF_UP)


def _record_transaction(req: Request, user, transaction_type: str, description: str) -> Transaction:
    txn = Transaction.objects.create(
        transaction_code=next_code(TRANSACTION_PREFIX),
        transaction_type=transaction_type,
        category_id=req.expense_category_id,
        amount=req.amount,
        transaction_date=timezone.localdate(),
        reference_type=REFERENCE_REQUEST,
        reference_id=req.id,
        description=description,
        created_by=user,
    )
    logger.debug('Recorded %s %s for %s', txn.transaction_type, txn.transaction_code, req.request_code)
    return txn


def _create_inventory_item(line) -> InventoryItem:
    return InventoryItem.objects.create(
        item_code=next_code(INVENTORY_PREFIX),
        name=line.item_name,
        category=category_from_specifications(line.specifications),
        unit=line.unit,
        quantity_on_hand=0,
        minimum_stock=0,
        average_unit_cost=line.unit_price,
        is_active=True,
    )


# ---------------------------------------------------------------------------
# settlement per request type
# ---------------------------------------------------------------------------

@settles(RequestType.TRANSACTION)
def settle_transaction(req: Request, user) -> SettlementResult:
    txn = _record_transaction(req, user, ledger_type_for(req.transaction_subtype), req.description)
    return SettlementResult(str(req.id), req.request_type, transactions=[txn])


@settles(RequestType.INVENTORY)
def settle_inventory(req: Request, user) -> SettlementResult:
    result = SettlementResult(str(req.id), req.request_type)
    now = timezone.now()
    lines = req.items.filter(inventory_item__isnull=False).order_by('inventory_item_id')
    for line in lines:
        stock = InventoryItem.objects.select_for_update().get(pk=line.inventory_item_id)
        movement = InventoryMovement.objects.create(
            inventory_item=stock,
            movement_type=InventoryMovement.TYPE_OUT if line.quantity < 0 else InventoryMovement.TYPE_IN,
            quantity=line.quantity,
            unit_cost=line.unit_price,
            reference_type=REFERENCE_REQUEST,
            reference_id=req.id,
            performed_by=user,
            notes=req.description,
            movement_date=now,
        )
        stock.quantity_on_hand = stock.quantity_on_hand + line.quantity
        stock.save(update_fields=['quantity_on_hand', 'updated_at'])
        logger.debug('%s %s x%d for %s', movement.movement_type, stock.item_code, line.quantity, req.request_code)
        result.movements.append(movement)
    return result


@settles(RequestType.PROCUREMENT)
def settle_procurement(req: Request, user) -> SettlementResult:
    txn = _record_transaction(
        req, user, Transaction.TYPE_EXPENSE, f'{PROCUREMENT_DESCRIPTION_PREFIX}{req.description}'
    )
    result = SettlementResult(str(req.id), req.request_type, transactions=[txn])
    now = timezone.now()
    for line in req.items.all():
        if line.inventory_item_id is None:
            stock = _create_inventory_item(line)
            result.created_items.append(stock)
        else:
            stock = InventoryItem.objects.select_for_update().get(pk=line.inventory_item_id)

        movement = InventoryMovement.objects.create(
            inventory_item=stock,
            movement_type=InventoryMovement.TYPE_IN,
            quantity=line.quantity,
            unit_cost=line.unit_price,
            reference_type=REFERENCE_REQUEST,
            reference_id=req.id,
            performed_by=user,
            notes=f'Procurement: {line.item_name}',
            movement_date=now,
        )
        result.movements.append(movement)

        old_quantity = stock.quantity_on_hand
        stock.average_unit_cost = weighted_average_cost(
            old_quantity, stock.average_unit_cost, line.quantity, line.unit_price
        )
        stock.quantity_on_hand = old_quantity + line.quantity
        stock.save(update_fields=['quantity_on_hand', 'average_unit_cost', 'updated_at'])
        logger.debug('IN %s x%d @ %s for %s', stock.item_code, line.quantity, line.unit_price, req.request_code)
    return result
