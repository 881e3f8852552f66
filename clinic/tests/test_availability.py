from datetime import date, datetime
from zoneinfo import ZoneInfo

import pytest
from django.urls import reverse

from clinic.models import Appointment, Doctor
from clinic.services.availability import available_slots, generate_slots

pytestmark = pytest.mark.django_db

MONDAY = date(2025, 3, 3)


def _starts(result):
    return [s.start.strftime('%H:%M') for s in result.slots]


def test_generate_slots_drops_short_remainder():
    tz = ZoneInfo('UTC')
    slots = generate_slots(datetime(2025, 3, 3, 9, 0, tzinfo=tz), datetime(2025, 3, 3, 9, 40, tzinfo=tz), 15)
    assert [s.start.minute for s in slots] == [0, 15]
    assert slots[-1].end == datetime(2025, 3, 3, 9, 30, tzinfo=tz)


def test_booked_slot_is_removed(settings, doctor, patient):
    settings.CLINIC_TIME_ZONE = 'Europe/Berlin'
    Appointment.objects.create(
        patient=patient, doctor=doctor, reason='x',
        time_slot=datetime(2025, 3, 3, 9, 30, tzinfo=ZoneInfo('Europe/Berlin')),
    )
    result = available_slots(doctor.pk, MONDAY)
    assert result.day_of_week == 'Monday'
    assert _starts(result) == ['09:00', '09:15', '09:45']
    assert result.slots[0].as_payload() == {
        'startTime': '2025-03-03T09:00:00+01:00',
        'endTime': '2025-03-03T09:15:00+01:00',
    }
    assert result.message == 'Found 3 slots for Monday'


def test_cancelled_booking_frees_the_slot(doctor, patient):
    Appointment.objects.create(
        patient=patient, doctor=doctor, reason='x', status=Appointment.STATUS_CANCELLED,
        time_slot=datetime(2025, 3, 3, 9, 30, tzinfo=ZoneInfo('UTC')),
    )
    assert _starts(available_slots(doctor.pk, MONDAY)) == ['09:00', '09:15', '09:30', '09:45']


def test_other_doctors_bookings_do_not_count(doctor, other_doctor, patient):
    Appointment.objects.create(
        patient=patient, doctor=other_doctor, reason='x',
        time_slot=datetime(2025, 3, 3, 9, 0, tzinfo=ZoneInfo('UTC')),
    )
    assert len(available_slots(doctor.pk, MONDAY).slots) == 4


def test_overlapping_intervals_are_merged_and_sorted():
    doctor = Doctor.objects.create(name='Dr. Cuddy', availability=[
        {'day': 'Monday', 'slots': [
            {'startTime': '09:15', 'endTime': '10:00'},
            {'startTime': '09:00', 'endTime': '09:30'},
        ]},
    ])
    assert _starts(available_slots(doctor.pk, MONDAY)) == ['09:00', '09:15', '09:30', '09:45']


def test_day_without_schedule(doctor):
    result = available_slots(doctor.pk, date(2025, 3, 4))
    assert result.slots == []
    assert result.message == 'No slots available for Tuesday'


def test_endpoint_returns_slots(patient_client, doctor):
    r = patient_client.get(reverse('doctor_availability', args=[doctor.pk]), {'date': '2025-03-03'})
    assert r.status_code == 200
    assert r.data['dayOfWeek'] == 'Monday'
    assert len(r.data['availableSlots']) == 4


def test_endpoint_requires_date(patient_client, doctor):
    r = patient_client.get(reverse('doctor_availability', args=[doctor.pk]))
    assert r.status_code == 400
    assert 'date' in r.data['error']['message']


def test_endpoint_unknown_doctor(patient_client):
    r = patient_client.get(reverse('doctor_availability', args=[999]), {'date': '2025-03-03'})
    assert r.status_code == 404
