from rest_framework import serializers

from ..models import AuditLog, Transaction


class TransactionListQuerySerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Transaction.TYPE_CHOICES, required=False)
    categoryId = serializers.UUIDField(required=False)
    startDate = serializers.DateField(required=False)
    endDate = serializers.DateField(required=False)
    search = serializers.CharField(max_length=100, required=False)


class CategoryQuerySerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=['REVENUE', 'EXPENSE'], required=False)


class ChartQuerySerializer(serializers.Serializer):
    groupBy = serializers.ChoiceField(choices=['category', 'month'], required=False, default='category')
    month = serializers.RegexField(r'^\d{4}-(0[1-9]|1[0-2])$', required=False)
    category = serializers.CharField(max_length=100, required=False)


class AuditLogQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, required=False, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=100, required=False, default=20)
    action = serializers.CharField(max_length=64, required=False)
    resourceType = serializers.CharField(max_length=32, required=False)
    severity = serializers.ChoiceField(choices=AuditLog.SEVERITY_CHOICES, required=False)
    search = serializers.CharField(max_length=100, required=False)
    userId = serializers.IntegerField(min_value=1, required=False)
