"""
Room and facility endpoints.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Room
from ..serializers.rooms import RoomCreateSerializer, RoomListQuerySerializer
from ..services import audit
from ..services import rooms as svc
from .common import iso, money


def _serialize(room: Room) -> dict:
    return {
        'id': str(room.id),
        'roomNumber': room.room_number,
        'roomType': room.room_type,
        'capacity': room.capacity,
        'baseRate': money(room.base_rate),
        'status': room.status,
        'description': room.description,
        'isActive': room.is_active,
        'createdAt': iso(room.created_at),
        'updatedAt': iso(room.updated_at),
        'facilities': [
            {'id': str(f.id), 'name': f.name, 'additionalPrice': money(f.additional_price)}
            for f in room.facilities.all()
        ],
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def rooms_view(request):
    if request.method == 'GET':
        q = RoomListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        vd = q.validated_data
        rooms = svc.filter_rooms(
            room_type=vd.get('roomType'),
            status=vd.get('status'),
            is_active=vd.get('isActive'),
            search=vd.get('search'),
        )
        return Response({
            'success': True,
            'data': [_serialize(r) for r in rooms],
            'stats': svc.status_counts(),
        })

    s = RoomCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    room = svc.create_room(s.validated_data)
    audit.record(
        user=request.user,
        action='CREATE',
        resource_type='ROOM',
        resource_id=room.pk,
        description=f'Kamar yang dibuat: {room.room_number}',
        new_values={
            'roomNumber': room.room_number,
            'roomType': room.room_type,
            'baseRate': room.base_rate,
            'facilityIds': [str(f) for f in s.validated_data.get('facilityIds') or []],
        },
        request=request,
    )
    return Response({'success': True, 'data': _serialize(room)}, status=status.HTTP_201_CREATED)
