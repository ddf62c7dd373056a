import html

import bleach
from rest_framework import serializers

from ..models import Request, RequestType, TransactionSubtype

MISSING = 'Missing required fields'
REQUIRED = {'required': MISSING, 'null': MISSING, 'blank': MISSING}


def clean_text(v):
    """Strip all markup from a plain-text field, keeping literal characters."""
    return html.unescape(bleach.clean((v or '').strip(), tags=set(), strip=True))


class BlankAsNullMixin:
    """Treat empty strings in optional fields as absent."""
    blank_as_null: tuple = ()

    def to_internal_value(self, data):
        if hasattr(data, 'items'):
            data = {k: (None if k in self.blank_as_null and v == '' else v) for k, v in data.items()}
        return super().to_internal_value(data)


class RequestItemInputSerializer(BlankAsNullMixin, serializers.Serializer):
    blank_as_null = ('inventoryItemId', 'totalPrice', 'specifications')

    itemName = serializers.CharField(max_length=255, error_messages=REQUIRED)
    quantity = serializers.IntegerField(min_value=1, error_messages={
        **REQUIRED, 'min_value': 'Quantity must be a positive integer',
    })
    unit = serializers.CharField(max_length=20, error_messages=REQUIRED)
    unitPrice = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0, error_messages=REQUIRED)
    totalPrice = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0, required=False, allow_null=True)
    specifications = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    inventoryItemId = serializers.UUIDField(required=False, allow_null=True)

    def validate_itemName(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError(MISSING)
        return v


class RequestCreateSerializer(BlankAsNullMixin, serializers.Serializer):
    blank_as_null = (
        'transactionSubtype', 'expenseCategoryId', 'amount', 'justification', 'priority',
        'neededByDate', 'inventoryItemId', 'movementType', 'quantity',
    )

    requestType = serializers.ChoiceField(choices=RequestType.choices, error_messages={
        **REQUIRED, 'invalid_choice': 'Invalid request type',
    })
    transactionSubtype = serializers.ChoiceField(choices=TransactionSubtype.choices, required=False, allow_null=True)
    expenseCategoryId = serializers.UUIDField(required=False, allow_null=True)
    amount = serializers.DecimalField(max_digits=15, decimal_places=2, min_value=0, required=False, allow_null=True)
    description = serializers.CharField(error_messages=REQUIRED)
    justification = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    priority = serializers.ChoiceField(choices=Request.PRIORITY_CHOICES, required=False, allow_null=True)
    neededByDate = serializers.DateField(required=False, allow_null=True)
    # INVENTORY
    inventoryItemId = serializers.UUIDField(required=False, allow_null=True)
    movementType = serializers.ChoiceField(choices=['IN', 'OUT'], required=False, allow_null=True)
    quantity = serializers.IntegerField(required=False, allow_null=True)
    # PROCUREMENT
    items = RequestItemInputSerializer(many=True, required=False)

    def validate_description(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError(MISSING)
        return v

    def validate_justification(self, v):
        return clean_text(v) or None

    def validate(self, attrs):
        request_type = attrs['requestType']
        if request_type == RequestType.INVENTORY:
            if not attrs.get('inventoryItemId') or not attrs.get('movementType') or not attrs.get('quantity'):
                raise serializers.ValidationError(
                    'INVENTORY request requires inventoryItemId, movementType, and quantity'
                )
            if attrs['quantity'] < 1:
                raise serializers.ValidationError({'quantity': ['Quantity must be a positive integer']})
        if request_type == RequestType.PROCUREMENT and not attrs.get('items'):
            raise serializers.ValidationError('PROCUREMENT request requires at least one item')
        return attrs


class ApprovalActionSerializer(serializers.Serializer):
    approvalId = serializers.CharField(error_messages=REQUIRED)
    action = serializers.CharField(error_messages=REQUIRED)
    comments = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=2000)

    def validate_comments(self, v):
        return clean_text(v) or None
