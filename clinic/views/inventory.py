"""
Pharmacy endpoints: prescriptions, direct sales and sales analytics.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import MedicalRecord, User
from ..permissions import IsAdminRole
from ..serializers.inventory import (
    AnalyticsQuerySerializer,
    PrescriptionSerializer,
    SaleSerializer,
    format_medical_record,
)
from ..services.audit import log_action
from ..services.inventory import consume, record_sale, sales_analytics


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def create_prescription(request):
    s = PrescriptionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    patient = User.objects.filter(pk=vd['patientId']).first()
    if patient is None:
        raise NotFound('Patient not found')
    record = consume(
        patient,
        vd['medications'],
        type=vd.get('type'),
        date=vd.get('date'),
        diagnosis=vd.get('diagnosis'),
        treatment=vd.get('treatment'),
        doctor_notes=vd.get('doctorNotes'),
        lab_results=vd.get('labResults'),
        attachments=vd.get('attachments'),
    )
    log_action(user=request.user, action='prescription_create', object_type='medical_record',
               object_id=record.id, detail={'patientId': patient.id, 'lines': len(vd['medications'])})
    return Response(
        {'ok': True, 'message': 'Prescription created successfully', 'record': format_medical_record(record)},
        status=status.HTTP_201_CREATED,
    )


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def inventory_sale(request):
    s = SaleSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    buyer = None
    if vd.get('userId'):
        buyer = User.objects.filter(pk=vd['userId']).first()
        if buyer is None:
            raise NotFound('User not found')
    record = None
    if vd.get('prescriptionId'):
        record = MedicalRecord.objects.filter(pk=vd['prescriptionId']).first()
        if record is None:
            raise NotFound('Prescription not found')
    item = record_sale(vd['itemId'], vd['quantity'], user=buyer, medical_record=record)
    return Response({
        'ok': True,
        'message': 'Sale recorded successfully',
        'updatedStock': item.quantity,
        'lowStock': item.is_low_stock,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def inventory_analytics(request):
    q = AnalyticsQuerySerializer(data=request.query_params)
    q.is_valid(raise_exception=True)
    data = sales_analytics(months=q.validated_data.get('months', 6), top=q.validated_data.get('top', 5))
    return Response({'ok': True, **data})
