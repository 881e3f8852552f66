"""
Appointment endpoints.

Patients book and list their own appointments and may cancel them;
administrators see every appointment, book on behalf of a patient and
drive the remaining transitions.  The lifecycle rules themselves live
in :mod:`clinic.services.appointments`.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..models import Appointment, User
from ..permissions import IsAdminRole
from ..serializers.appointments import (
    AdminAppointmentCreateSerializer,
    AdminAppointmentUpdateSerializer,
    AppointmentCreateSerializer,
    AppointmentListQuerySerializer,
    PatientAppointmentUpdateSerializer,
    format_appointment,
)
from ..services.appointments import (
    TransitionIntent,
    create_appointment,
    list_all_appointments,
    list_appointments_for_patient,
    transition,
)


def _create_for(patient: User, vd: dict) -> Appointment:
    return create_appointment(
        patient,
        reason=vd['reason'],
        time_slot=vd['timeSlot'],
        doctor_id=vd.get('doctorId'),
        type=vd.get('type') or 'regular',
        symptoms=vd.get('symptoms') or [],
        notes=vd.get('notes') or '',
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def appointments(request):
    """List the caller's appointments (``?status=``) or book a new one."""
    if request.method == 'GET':
        q = AppointmentListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        wanted = q.validated_data.get('status')
        qs = list_appointments_for_patient(request.user, None if wanted == 'all' else wanted)
        return Response({'ok': True, 'data': [format_appointment(a) for a in qs]})

    s = AppointmentCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    appointment = _create_for(request.user, s.validated_data)
    return Response({'ok': True, 'data': format_appointment(appointment)}, status=status.HTTP_201_CREATED)


@api_view(['PUT'])
@permission_classes([IsAuthenticated])
def appointment_detail(request, pk: int):
    """Let a patient cancel one of their own appointments."""
    owner_id = Appointment.objects.filter(pk=pk).values_list('patient_id', flat=True).first()
    if owner_id is None:
        raise NotFound('Appointment not found')
    if owner_id != request.user.id:
        raise PermissionDenied('You can only change your own appointments')
    s = PatientAppointmentUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    intent = TransitionIntent(
        status=s.validated_data['status'],
        reason=s.validated_data.get('reason') or 'cancelled by patient',
    )
    appointment = transition(pk, intent, operator=request.user)
    return Response({'ok': True, 'data': format_appointment(appointment)})


@api_view(['GET', 'POST', 'PUT'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_appointments(request):
    """All appointments for staff; POST books for a patient, PUT transitions.

    PUT body: ``appointmentId`` plus ``status`` and/or ``doctorId`` and/or
    ``datetime``.  Assigning a doctor approves the appointment.
    """
    if request.method == 'GET':
        return Response({'ok': True, 'data': [format_appointment(a) for a in list_all_appointments()]})

    if request.method == 'POST':
        s = AdminAppointmentCreateSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        patient = User.objects.filter(pk=s.validated_data['patientId']).first()
        if patient is None:
            raise NotFound('Patient not found')
        appointment = _create_for(patient, s.validated_data)
        return Response({'ok': True, 'data': format_appointment(appointment)}, status=status.HTTP_201_CREATED)

    s = AdminAppointmentUpdateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    intent = TransitionIntent(
        status=vd.get('status'),
        doctor_id=vd.get('doctorId'),
        time_slot=vd.get('datetime'),
        reason=vd.get('reason') or '',
    )
    appointment = transition(vd['appointmentId'], intent, operator=request.user)
    return Response({'ok': True, 'data': format_appointment(appointment)})
