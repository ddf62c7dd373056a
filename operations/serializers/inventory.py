from rest_framework import serializers

from .requests import MISSING, REQUIRED, clean_text


def _required_text(max_length):
    return serializers.CharField(max_length=max_length, error_messages=REQUIRED)


class InventoryItemCreateSerializer(serializers.Serializer):
    itemCode = _required_text(30)
    name = _required_text(255)
    category = _required_text(50)
    unit = _required_text(20)
    quantityOnHand = serializers.IntegerField(required=False, allow_null=True)
    minimumStock = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    averageUnitCost = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0,
                                               required=False, allow_null=True)
    isActive = serializers.BooleanField(required=False, default=True)

    def validate_name(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError(MISSING)
        return v


class InventoryItemUpdateSerializer(serializers.Serializer):
    # itemCode is immutable and deliberately absent
    name = serializers.CharField(max_length=255, required=False)
    category = serializers.CharField(max_length=50, required=False)
    unit = serializers.CharField(max_length=20, required=False)
    quantityOnHand = serializers.IntegerField(required=False)
    minimumStock = serializers.IntegerField(min_value=0, required=False)
    averageUnitCost = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0, required=False)
    isActive = serializers.BooleanField(required=False)

    def validate_name(self, v):
        return clean_text(v)


class InventoryListQuerySerializer(serializers.Serializer):
    category = serializers.CharField(max_length=50, required=False)
    isActive = serializers.ChoiceField(choices=['true', 'false', 'all'], required=False)
    lowStock = serializers.ChoiceField(choices=['true', 'false'], required=False)
    search = serializers.CharField(max_length=100, required=False)
