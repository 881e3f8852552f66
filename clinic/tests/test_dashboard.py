from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from clinic.models import Appointment
from clinic.services.inventory import consume

pytestmark = pytest.mark.django_db


def test_healthz(client):
    r = client.get(reverse('healthz'))
    assert r.status_code == 200
    assert r.json() == {'ok': True, 'db': True}


def test_patient_dashboard_counts(patient_client, make_appointment):
    now = timezone.now()
    make_appointment(time_slot=now + timedelta(days=2))
    make_appointment(status=Appointment.STATUS_COMPLETED, time_slot=now - timedelta(days=2))
    make_appointment(status=Appointment.STATUS_CANCELLED, time_slot=now - timedelta(days=3))
    r = patient_client.get(reverse('dashboard'))
    assert r.status_code == 200
    data = r.data['data']
    assert data['upcomingAppointments'] == 1
    assert data['pastAppointments'] == 1
    assert [a['status'] for a in data['recentActivity']] == ['upcoming', 'completed']


def test_admin_dashboard_is_cached(admin_client, patient, set_ledger, make_appointment):
    set_ledger(8, 6, 2)
    make_appointment()
    first = admin_client.get(reverse('admin_dashboard')).data['data']
    assert first['stats']['pendingRequests'] == 1
    assert first['stats']['totalPatients'] == 1
    assert first['beds']['bedsInUse'] == 2
    make_appointment()
    second = admin_client.get(reverse('admin_dashboard')).data['data']
    assert second['stats']['pendingRequests'] == 1


def test_medical_records_are_private(patient_client, patient, other_patient, make_item):
    item = make_item('Ibuprofen', 10)
    consume(patient, [{'medicationId': item.pk, 'quantity': 1}], diagnosis='sprain')
    consume(other_patient, [{'medicationId': item.pk, 'quantity': 1}], diagnosis='cold')
    r = patient_client.get(reverse('medical_records'))
    assert r.status_code == 200
    assert [rec['diagnosis'] for rec in r.data['data']] == ['sprain']
    assert r.data['data'][0]['medications'][0]['name'] == 'Ibuprofen'


def test_patient_dashboard_is_for_patients(admin_client):
    assert admin_client.get(reverse('dashboard')).status_code == 403
