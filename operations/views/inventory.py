"""
Inventory catalog endpoints.

Stock levels normally change only through settled requests; the
``PATCH`` endpoint exists for corrections and is always audit-logged with
the values before and after the change.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import InventoryItem, InventoryMovement
from ..serializers.inventory import (
    InventoryItemCreateSerializer,
    InventoryItemUpdateSerializer,
    InventoryListQuerySerializer,
)
from ..services import audit
from ..services import inventory as svc
from .common import display_name, iso, money


def _serialize(item: InventoryItem) -> dict:
    return {
        'id': str(item.id),
        'itemCode': item.item_code,
        'name': item.name,
        'category': item.category,
        'unit': item.unit,
        'quantityOnHand': item.quantity_on_hand,
        'minimumStock': item.minimum_stock,
        'averageUnitCost': money(item.average_unit_cost),
        'isActive': item.is_active,
        'createdAt': iso(item.created_at),
        'updatedAt': iso(item.updated_at),
    }


def _serialize_movement(m: InventoryMovement) -> dict:
    return {
        'id': str(m.id),
        'inventoryItemId': str(m.inventory_item_id),
        'movementType': m.movement_type,
        'quantity': m.quantity,
        'unitCost': money(m.unit_cost),
        'referenceType': m.reference_type,
        'referenceId': str(m.reference_id) if m.reference_id else None,
        'performedByUserId': m.performed_by_id,
        'performedByName': display_name(m.performed_by),
        'notes': m.notes,
        'movementDate': iso(m.movement_date),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def inventory_list(request):
    if request.method == 'GET':
        q = InventoryListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        items = svc.filter_items(
            category=vd.get('category'),
            is_active=vd.get('isActive'),
            low_stock=vd.get('lowStock') == 'true',
            search=vd.get('search'),
        )
        return Response({
            'success': True,
            'data': [_serialize(i) for i in items],
            'stats': svc.category_stats(),
            'lowStockCount': svc.low_stock_count(),
        })

    s = InventoryItemCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    item = svc.create_item(s.validated_data)
    audit.record(
        user=request.user,
        action='CREATE',
        resource_type='INVENTORY',
        resource_id=item.pk,
        description=f'Inventaris yang dibuat: {item.name}',
        new_values=svc.snapshot(item),
        metadata={'itemCode': item.item_code},
        request=request,
    )
    return Response({'success': True, 'data': _serialize(item)}, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH'])
@permission_classes([IsAuthenticated])
def inventory_detail(request, pk):
    if request.method == 'GET':
        return Response({'success': True, 'data': _serialize(svc.get_item_or_404(pk))})

    s = InventoryItemUpdateSerializer(data=request.data, partial=True)
    s.is_valid(raise_exception=True)
    item, before, after = svc.update_item(pk, s.validated_data)
    audit.record(
        user=request.user,
        action='UPDATE',
        resource_type='INVENTORY',
        resource_id=item.pk,
        description=f'Inventaris diperbarui: {item.name}',
        old_values=before,
        new_values=after,
        metadata={'itemCode': item.item_code},
        request=request,
    )
    return Response({'success': True, 'data': _serialize(item)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_movements(request, pk):
    item = svc.get_item_or_404(pk)
    return Response({
        'success': True,
        'data': [_serialize_movement(m) for m in svc.movements_for(item)],
    })
