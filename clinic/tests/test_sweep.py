from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from django.core.management import call_command
from django.urls import reverse

from clinic.models import Appointment, BedLedger
from clinic.services import appointments as appointment_service
from clinic.services.appointments import TransitionIntent, sweep_expired_approvals, transition
from clinic.tasks import sweep_expired_appointments

pytestmark = pytest.mark.django_db

NOW = datetime(2030, 1, 8, 12, 0, tzinfo=ZoneInfo('UTC'))
LAST_YEAR = datetime(2020, 5, 4, 9, 0, tzinfo=ZoneInfo('UTC'))


def _in_use():
    return BedLedger.objects.get().beds_in_use


def test_sweep_completes_expired_and_releases_beds(set_ledger, make_appointment):
    set_ledger(10, 7, 3)
    expired = [make_appointment(status=Appointment.STATUS_APPROVED) for _ in range(2)]
    future = make_appointment(status=Appointment.STATUS_APPROVED, time_slot=NOW + timedelta(days=1))

    assert sweep_expired_approvals(now=NOW) == 2
    for a in expired:
        a.refresh_from_db()
        assert a.status == Appointment.STATUS_COMPLETED
        assert a.transitions.get().reason == 'time slot passed'
    future.refresh_from_db()
    assert future.status == Appointment.STATUS_APPROVED
    assert _in_use() == 1


def test_sweep_is_idempotent(set_ledger, make_appointment):
    set_ledger(10, 9, 1)
    make_appointment(status=Appointment.STATUS_APPROVED)
    assert sweep_expired_approvals(now=NOW) == 1
    assert sweep_expired_approvals(now=NOW) == 0
    assert _in_use() == 0


def test_sweep_ignores_pending_and_cancelled(set_ledger, make_appointment):
    set_ledger(10, 10, 0)
    pending = make_appointment()
    cancelled = make_appointment(status=Appointment.STATUS_CANCELLED)
    assert sweep_expired_approvals(now=NOW) == 0
    pending.refresh_from_db()
    cancelled.refresh_from_db()
    assert (pending.status, cancelled.status) == ('pending', 'cancelled')


def test_sweep_task_reports_count(set_ledger, make_appointment):
    set_ledger(10, 9, 1)
    make_appointment(status=Appointment.STATUS_APPROVED, time_slot=LAST_YEAR)
    assert sweep_expired_appointments() == {'updatedCount': 1}


def test_sweep_command(set_ledger, make_appointment, capsys):
    set_ledger(10, 9, 1)
    make_appointment(status=Appointment.STATUS_APPROVED, time_slot=LAST_YEAR)
    call_command('sweep_appointments')
    assert '1 appointment(s) completed' in capsys.readouterr().out


def test_cron_endpoint_as_admin(admin_client, set_ledger, make_appointment):
    set_ledger(10, 9, 1)
    make_appointment(status=Appointment.STATUS_APPROVED, time_slot=LAST_YEAR)
    r = admin_client.get(reverse('cron_check_appointments'))
    assert r.status_code == 200
    assert r.data == {'ok': True, 'updatedCount': 1}


def test_cron_endpoint_with_secret(api_client, settings, set_ledger):
    settings.CRON_SECRET = 's3cret'
    set_ledger(10, 10, 0)
    r = api_client.get(reverse('cron_check_appointments'), HTTP_X_CRON_SECRET='s3cret')
    assert r.status_code == 200
    assert r.data['updatedCount'] == 0


def test_cron_endpoint_rejects_others(patient_client, settings):
    settings.CRON_SECRET = 's3cret'
    assert patient_client.get(reverse('cron_check_appointments'), HTTP_X_CRON_SECRET='wrong').status_code == 403
    settings.CRON_SECRET = ''
    assert patient_client.get(reverse('cron_check_appointments'), HTTP_X_CRON_SECRET='').status_code == 403


def test_sweep_skips_appointment_cancelled_after_scan(set_ledger, make_appointment, monkeypatch):
    set_ledger(10, 8, 2)
    expired = make_appointment(status=Appointment.STATUS_APPROVED)
    raced = make_appointment(status=Appointment.STATUS_APPROVED)
    scan = appointment_service._expired_candidates

    def scan_then_cancel(now):
        candidates = scan(now)
        # a patient cancels between the scan and the locked re-read
        transition(raced.pk, TransitionIntent(status='cancelled'))
        return candidates

    monkeypatch.setattr(appointment_service, '_expired_candidates', scan_then_cancel)
    assert sweep_expired_approvals(now=NOW) == 1

    raced.refresh_from_db()
    assert raced.status == Appointment.STATUS_CANCELLED
    assert list(raced.transitions.values_list('to_status', flat=True)) == ['cancelled']
    sweep_move = expired.transitions.get()
    assert (sweep_move.to_status, sweep_move.bed_delta) == ('completed', -1)
    assert _in_use() == 0
