from typing import Any, Dict, Optional

from django.db import transaction
from django.db.models import Q

from ..models import Patient
from .sequences import PATIENT_PREFIX, next_code


def search_patients(search: Optional[str] = None):
    qs = Patient.objects.all()
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(patient_code__icontains=search) | Q(phone__icontains=search))
    return qs.order_by('-created_at')


@transaction.atomic
def create_patient(data: Dict[str, Any]) -> Patient:
    return Patient.objects.create(
        patient_code=next_code(PATIENT_PREFIX),
        name=data['name'],
        birth_date=data['birthDate'],
        gender=data['gender'],
        address=data.get('address') or None,
        phone=data.get('phone') or None,
        emergency_contact=data.get('emergencyContact') or None,
        emergency_phone=data.get('emergencyPhone') or None,
        medical_notes=data.get('medicalNotes') or None,
    )
