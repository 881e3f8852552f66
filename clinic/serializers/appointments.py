import bleach
from rest_framework import serializers

from clinic.models import Appointment
from clinic.utils import to_clinic_time

from .fields import ClinicDateTimeField

STATUS_INPUT_CHOICES = [c for c, _ in Appointment.STATUS_CHOICES] + ['scheduled']


class AppointmentCreateSerializer(serializers.Serializer):
    doctorId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    timeSlot = ClinicDateTimeField()
    reason = serializers.CharField(max_length=2000)
    type = serializers.CharField(max_length=64, required=False, allow_blank=True)
    symptoms = serializers.ListField(child=serializers.CharField(max_length=255), required=False)
    notes = serializers.CharField(max_length=4000, required=False, allow_blank=True)

    def validate_reason(self, v):
        v = bleach.clean((v or '').strip(), strip=True)
        if not v:
            raise serializers.ValidationError('This field may not be blank.')
        return v


class AdminAppointmentCreateSerializer(AppointmentCreateSerializer):
    patientId = serializers.IntegerField(min_value=1)


class AppointmentListQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=STATUS_INPUT_CHOICES + ['all'], required=False)


class PatientAppointmentUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[Appointment.STATUS_CANCELLED])
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)


class AdminAppointmentUpdateSerializer(serializers.Serializer):
    appointmentId = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=STATUS_INPUT_CHOICES, required=False)
    doctorId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    datetime = ClinicDateTimeField(required=False, allow_null=True)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate(self, attrs):
        if not (attrs.get('status') or attrs.get('doctorId') or attrs.get('datetime')):
            raise serializers.ValidationError('Provide status, doctorId or datetime')
        return attrs


def format_appointment(a: Appointment) -> dict:
    doctor = a.doctor
    patient = a.patient
    when = to_clinic_time(a.time_slot)
    return {
        'id': a.id,
        'status': a.status,
        'reason': a.reason,
        'type': a.type,
        'symptoms': a.symptoms,
        'notes': a.notes,
        'timeSlot': when.isoformat() if when else None,
        'patient': {
            'id': patient.id,
            'fullName': patient.display_name,
            'email': patient.email,
            'phone': patient.phone,
        },
        'doctor': {
            'id': doctor.id,
            'name': doctor.name,
            'email': doctor.email,
            'specialization': doctor.specialization,
            'consultationFee': str(doctor.consultation_fee),
        } if doctor else None,
        'createdAt': a.created_at.isoformat(),
        'updatedAt': a.updated_at.isoformat(),
    }
