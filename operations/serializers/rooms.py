from rest_framework import serializers

from ..models import Room
from .requests import REQUIRED, clean_text


class RoomCreateSerializer(serializers.Serializer):
    roomNumber = serializers.CharField(max_length=20, error_messages=REQUIRED)
    roomType = serializers.ChoiceField(choices=Room.TYPE_CHOICES, error_messages=REQUIRED)
    capacity = serializers.IntegerField(min_value=1, required=False)
    baseRate = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0, error_messages=REQUIRED)
    status = serializers.ChoiceField(choices=Room.STATUS_CHOICES, required=False)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    isActive = serializers.BooleanField(required=False, default=True)
    facilityIds = serializers.ListField(child=serializers.UUIDField(), required=False)

    def validate_description(self, v):
        return clean_text(v)


class RoomListQuerySerializer(serializers.Serializer):
    roomType = serializers.CharField(max_length=10, required=False)
    status = serializers.CharField(max_length=15, required=False)
    isActive = serializers.ChoiceField(choices=['true', 'false', 'all'], required=False)
    search = serializers.CharField(max_length=100, required=False)
