from typing import Any, Dict, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, Q
from rest_framework.exceptions import ValidationError

from ..exceptions import DuplicateResource
from ..models import Facility, Room, RoomFacility


def filter_rooms(*, room_type: Optional[str] = None, status: Optional[str] = None,
                 is_active: Optional[str] = None, search: Optional[str] = None):
    qs = Room.objects.prefetch_related('facilities')
    if room_type and room_type != 'all':
        qs = qs.filter(room_type=room_type)
    if status and status != 'all':
        qs = qs.filter(status=status)
    if is_active is not None and is_active != 'all':
        qs = qs.filter(is_active=(is_active == 'true'))
    if search:
        qs = qs.filter(Q(room_number__icontains=search) | Q(description__icontains=search))
    return qs.order_by('room_number')


def status_counts():
    rows = Room.objects.filter(is_active=True).values('status').annotate(count=Count('id')).order_by('status')
    return [{'status': r['status'], 'count': r['count']} for r in rows]


@transaction.atomic
def create_room(data: Dict[str, Any]) -> Room:
    if Room.objects.filter(room_number=data['roomNumber']).exists():
        raise DuplicateResource('Room number already exists')
    facility_ids = data.get('facilityIds') or []
    facilities = list(Facility.objects.filter(pk__in=facility_ids))
    if len(facilities) != len(set(facility_ids)):
        raise ValidationError({'facilityIds': ['Unknown facility']})
    try:
        with transaction.atomic():
            room = Room.objects.create(
                room_number=data['roomNumber'],
                room_type=data['roomType'],
                capacity=data.get('capacity') or 1,
                base_rate=data['baseRate'],
                status=data.get('status') or 'AVAILABLE',
                description=data.get('description') or None,
                is_active=data.get('isActive', True),
            )
    except IntegrityError:
        raise DuplicateResource('Room number already exists')
    RoomFacility.objects.bulk_create([RoomFacility(room=room, facility=f) for f in facilities])
    return room
