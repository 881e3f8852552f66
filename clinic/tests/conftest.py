import itertools
from datetime import datetime, timedelta
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from clinic.models import Appointment, BedLedger, Doctor, InventoryItem, User

MONDAY_SCHEDULE = [{"day": "Monday", "slots": [{"startTime": "09:00", "endTime": "10:00"}]}]


@pytest.fixture(autouse=True)
def _clear_cache():
    # throttle counters and the dashboard cache live in the shared locmem cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def patient(db):
    return User.objects.create_user(
        username='patient1', email='patient1@example.com', password='P@ssw0rd1',
        role=User.ROLE_PATIENT, full_name='Pat Ient',
    )


@pytest.fixture
def other_patient(db):
    return User.objects.create_user(
        username='patient2', email='patient2@example.com', password='P@ssw0rd1',
        role=User.ROLE_PATIENT, full_name='Other Patient',
    )


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(
        username='admin1', email='admin1@example.com', password='P@ssw0rd1',
        role=User.ROLE_ADMIN, full_name='Ad Min',
    )


@pytest.fixture
def doctor(db):
    return Doctor.objects.create(
        name='Dr. House', email='house@example.com', specialization='Diagnostics',
        consultation_fee=Decimal('80.00'), availability=MONDAY_SCHEDULE,
    )


@pytest.fixture
def other_doctor(db):
    return Doctor.objects.create(name='Dr. Wilson', specialization='Oncology', availability=MONDAY_SCHEDULE)


@pytest.fixture
def patient_client(api_client, patient):
    api_client.force_authenticate(user=patient)
    return api_client


@pytest.fixture
def admin_client(api_client, admin_user):
    api_client.force_authenticate(user=admin_user)
    return api_client


@pytest.fixture
def set_ledger(db):
    def _set(total, available, in_use):
        BedLedger.objects.update_or_create(
            pk=BedLedger.SINGLETON_ID,
            defaults={'total_beds': total, 'available_beds': available, 'beds_in_use': in_use},
        )
    return _set


@pytest.fixture
def make_appointment(db, patient, doctor):
    counter = itertools.count()

    def _make(status=Appointment.STATUS_PENDING, time_slot=None, **extra):
        extra.setdefault('patient', patient)
        extra.setdefault('doctor', doctor)
        return Appointment.objects.create(
            status=status,
            time_slot=time_slot or datetime(2030, 1, 7, 9, 0, tzinfo=ZoneInfo('UTC')) + timedelta(minutes=15 * next(counter)),
            reason='check-up',
            **extra,
        )
    return _make


@pytest.fixture
def make_item(db):
    def _make(name, quantity, price='2.50', **extra):
        return InventoryItem.objects.create(
            name=name, category='Medicine', quantity=quantity, initial_stock=quantity,
            unit='tablets', min_quantity=extra.pop('min_quantity', 0), location='A1',
            price=Decimal(price), **extra,
        )
    return _make
