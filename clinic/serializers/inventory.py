from rest_framework import serializers

from clinic.models import MedicalRecord

from .fields import ClinicDateTimeField


class MedicationLineSerializer(serializers.Serializer):
    medicationId = serializers.IntegerField(min_value=1, required=False)
    itemId = serializers.IntegerField(min_value=1, required=False)
    name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1)
    dosage = serializers.CharField(max_length=255, required=False, allow_blank=True)
    duration = serializers.CharField(max_length=255, required=False, allow_blank=True)

    def validate(self, attrs):
        if not (attrs.get('medicationId') or attrs.get('itemId') or (attrs.get('name') or '').strip()):
            raise serializers.ValidationError('Each medication needs a medicationId or name')
        return attrs


class PrescriptionSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    medications = MedicationLineSerializer(many=True, allow_empty=False)
    type = serializers.CharField(max_length=64, required=False, allow_blank=True)
    date = ClinicDateTimeField(required=False)
    diagnosis = serializers.CharField(required=False, allow_blank=True)
    treatment = serializers.CharField(required=False, allow_blank=True)
    doctorNotes = serializers.CharField(required=False, allow_blank=True)
    labResults = serializers.ListField(child=serializers.DictField(), required=False)
    attachments = serializers.ListField(child=serializers.DictField(), required=False)


class SaleSerializer(serializers.Serializer):
    itemId = serializers.IntegerField(min_value=1)
    quantity = serializers.IntegerField(min_value=1)
    userId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    prescriptionId = serializers.IntegerField(min_value=1, required=False, allow_null=True)


class AnalyticsQuerySerializer(serializers.Serializer):
    months = serializers.IntegerField(min_value=1, max_value=24, required=False)
    top = serializers.IntegerField(min_value=1, max_value=50, required=False)


def format_medical_record(r: MedicalRecord) -> dict:
    return {
        'id': r.id,
        'patientId': r.patient_id,
        'type': r.type,
        'date': r.date.isoformat(),
        'diagnosis': r.diagnosis,
        'treatment': r.treatment,
        'doctorNotes': r.doctor_notes,
        'labResults': r.lab_results,
        'attachments': r.attachments,
        'medications': [
            {
                'medicationId': m.item_id,
                'name': m.name,
                'dosage': m.dosage,
                'duration': m.duration,
                'quantity': m.quantity,
                'unit': m.unit,
                'price': str(m.price),
            }
            for m in r.medications.all()
        ],
        'createdAt': r.created_at.isoformat(),
    }
