from rest_framework import serializers

from ..models import Patient
from .requests import MISSING, REQUIRED, clean_text


class PatientCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, error_messages=REQUIRED)
    birthDate = serializers.DateField(error_messages=REQUIRED)
    gender = serializers.ChoiceField(choices=Patient.GENDER_CHOICES, error_messages=REQUIRED)
    address = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    phone = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=32)
    emergencyContact = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)
    emergencyPhone = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=32)
    medicalNotes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_name(self, v):
        v = clean_text(v)
        if not v:
            raise serializers.ValidationError(MISSING)
        return v

    def validate_phone(self, v):
        return clean_text(v)

    def validate_medicalNotes(self, v):
        return clean_text(v)
