"""
Patient registration endpoints.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Patient
from ..serializers.patient import PatientCreateSerializer
from ..services import audit
from ..services.patients import create_patient, search_patients
from .common import iso


def _serialize(p: Patient) -> dict:
    return {
        'id': str(p.id),
        'patientCode': p.patient_code,
        'name': p.name,
        'birthDate': iso(p.birth_date),
        'gender': p.gender,
        'address': p.address,
        'phone': p.phone,
        'emergencyContact': p.emergency_contact,
        'emergencyPhone': p.emergency_phone,
        'medicalNotes': p.medical_notes,
        'createdAt': iso(p.created_at),
        'updatedAt': iso(p.updated_at),
    }


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def patients_view(request):
    if request.method == 'GET':
        search = (request.query_params.get('search') or '').strip()
        return Response({'success': True, 'data': [_serialize(p) for p in search_patients(search)]})

    s = PatientCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = create_patient(s.validated_data)
    audit.record(
        user=request.user,
        action='CREATE',
        resource_type='PATIENT',
        resource_id=patient.pk,
        description=f'Pasien yang dibuat: {patient.name}',
        new_values={
            'patientCode': patient.patient_code,
            'name': patient.name,
            'birthDate': patient.birth_date,
            'gender': patient.gender,
        },
        request=request,
    )
    return Response({'success': True, 'data': _serialize(patient)}, status=status.HTTP_201_CREATED)
