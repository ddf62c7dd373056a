from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from django.db import IntegrityError, transaction
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from rest_framework.exceptions import NotFound

from ..exceptions import DuplicateResource
from ..models import InventoryItem

# API field -> model field for writable attributes
EDITABLE_FIELDS = {
    'name': 'name',
    'category': 'category',
    'unit': 'unit',
    'quantityOnHand': 'quantity_on_hand',
    'minimumStock': 'minimum_stock',
    'averageUnitCost': 'average_unit_cost',
    'isActive': 'is_active',
}

_stock_value = ExpressionWrapper(
    F('quantity_on_hand') * F('average_unit_cost'),
    output_field=DecimalField(max_digits=20, decimal_places=2),
)


def filter_items(*, category: Optional[str] = None, is_active: Optional[str] = None,
                 low_stock: bool = False, search: Optional[str] = None):
    qs = InventoryItem.objects.all()
    if category and category != 'all':
        qs = qs.filter(category=category)
    if is_active is not None and is_active != 'all':
        qs = qs.filter(is_active=(is_active == 'true'))
    if low_stock:
        qs = qs.filter(quantity_on_hand__lt=F('minimum_stock'))
    if search:
        qs = qs.filter(Q(item_code__icontains=search) | Q(name__icontains=search))
    return qs.order_by('name')


def category_stats():
    rows = (
        InventoryItem.objects.filter(is_active=True)
        .values('category')
        .annotate(count=Count('id'), totalValue=Sum(_stock_value))
        .order_by('category')
    )
    return [
        {
            'category': r['category'],
            'count': r['count'],
            'totalValue': str((r['totalValue'] or Decimal('0')).quantize(Decimal('0.01'))),
        }
        for r in rows
    ]


def low_stock_count() -> int:
    return InventoryItem.objects.filter(is_active=True, quantity_on_hand__lt=F('minimum_stock')).count()


def get_item_or_404(pk) -> InventoryItem:
    item = InventoryItem.objects.filter(pk=pk).first()
    if item is None:
        raise NotFound('Item not found')
    return item


def snapshot(item: InventoryItem) -> Dict[str, Any]:
    return {api: getattr(item, field) for api, field in EDITABLE_FIELDS.items()}


def create_item(data: Dict[str, Any]) -> InventoryItem:
    if InventoryItem.objects.filter(item_code=data['itemCode']).exists():
        raise DuplicateResource('Item code already exists')
    try:
        with transaction.atomic():
            return InventoryItem.objects.create(
                item_code=data['itemCode'],
                name=data['name'],
                category=data['category'],
                unit=data['unit'],
                quantity_on_hand=data.get('quantityOnHand') or 0,
                minimum_stock=data.get('minimumStock') or 0,
                average_unit_cost=data.get('averageUnitCost') or Decimal('0'),
                is_active=data.get('isActive', True),
            )
    except IntegrityError:
        raise DuplicateResource('Item code already exists')


@transaction.atomic
def update_item(pk, data: Dict[str, Any]) -> Tuple[InventoryItem, Dict[str, Any], Dict[str, Any]]:
    """Apply a partial update. ``itemCode`` is never changed.

    Returns the item with its before and after snapshots.
    """
    item = InventoryItem.objects.select_for_update().filter(pk=pk).first()
    if item is None:
        raise NotFound('Item not found')
    before = snapshot(item)
    changed = []
    for api, field in EDITABLE_FIELDS.items():
        if api in data:
            setattr(item, field, data[api])
            changed.append(field)
    if changed:
        item.save(update_fields=changed + ['updated_at'])
    return item, before, snapshot(item)


def movements_for(item: InventoryItem):
    return item.movements.select_related('performed_by').order_by('-movement_date', '-created_at')
