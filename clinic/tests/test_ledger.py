import random

import pytest
from django.urls import reverse

from clinic.exceptions import ResourceExhausted
from clinic.models import BedLedger
from clinic.services import ledger

pytestmark = pytest.mark.django_db


def _assert_balanced(status):
    assert status.available_beds + status.beds_in_use == status.total_beds
    assert status.available_beds >= 0 and status.beds_in_use >= 0


def test_get_status_creates_default_ledger_once(settings):
    settings.BED_DEFAULT_CAPACITY = 12
    first = ledger.get_status()
    second = ledger.get_status()
    assert (first.total_beds, first.available_beds, first.beds_in_use) == (12, 12, 0)
    assert second == first
    assert BedLedger.objects.count() == 1


def test_random_allocate_release_sequence_keeps_invariant(set_ledger):
    set_ledger(5, 5, 0)
    rng = random.Random(7)
    for _ in range(60):
        if rng.random() < 0.5:
            try:
                status = ledger.allocate()
            except ResourceExhausted:
                status = ledger.get_status()
                assert status.available_beds == 0
        else:
            status, _ = ledger.release()
        _assert_balanced(status)
    row = BedLedger.objects.get()
    assert row.available_beds + row.beds_in_use == row.total_beds


def test_allocate_on_empty_ledger_fails_without_change(set_ledger):
    set_ledger(3, 0, 3)
    before = ledger.get_status()
    with pytest.raises(ResourceExhausted):
        ledger.allocate()
    assert ledger.get_status() == before


def test_release_at_zero_is_noop(set_ledger):
    set_ledger(3, 3, 0)
    status, released = ledger.release()
    assert released is False
    assert (status.available_beds, status.beds_in_use) == (3, 0)


def test_version_increases_on_every_change(set_ledger):
    set_ledger(4, 4, 0)
    v0 = ledger.get_status().version
    ledger.allocate()
    ledger.release()
    ledger.set_capacity(total_beds=6)
    assert ledger.get_status().version == v0 + 3


def test_set_capacity_rejects_more_in_use_than_total(set_ledger):
    from rest_framework.exceptions import ValidationError
    set_ledger(4, 2, 2)
    with pytest.raises(ValidationError):
        ledger.set_capacity(total_beds=3, beds_in_use=5)
    status = ledger.set_capacity(total_beds=10, beds_in_use=4)
    assert (status.total_beds, status.available_beds, status.beds_in_use) == (10, 6, 4)


def test_admin_beds_occupy_and_release(admin_client, set_ledger):
    set_ledger(2, 2, 0)
    url = reverse('admin_beds')
    r = admin_client.put(url, {'action': 'occupy'}, format='json')
    assert r.status_code == 200
    assert r.data['data'] == {'totalBeds': 2, 'availableBeds': 1, 'bedsInUse': 1, 'version': 1}
    r = admin_client.put(url, {'action': 'release'}, format='json')
    assert r.status_code == 200
    r = admin_client.put(url, {'action': 'release'}, format='json')
    assert r.status_code == 400
    assert r.data['ok'] is False


def test_admin_beds_occupy_when_full_returns_400(admin_client, set_ledger):
    set_ledger(1, 0, 1)
    r = admin_client.put(reverse('admin_beds'), {'action': 'occupy'}, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'resource_exhausted'


def test_admin_beds_overwrite(admin_client, set_ledger):
    set_ledger(2, 2, 0)
    r = admin_client.put(reverse('admin_beds'), {'totalBeds': 20, 'bedsInUse': 5}, format='json')
    assert r.status_code == 200
    assert r.data['data']['availableBeds'] == 15


def test_patient_cannot_modify_beds(patient_client, set_ledger):
    set_ledger(2, 2, 0)
    assert patient_client.get(reverse('beds')).status_code == 200
    assert patient_client.put(reverse('admin_beds'), {'action': 'occupy'}, format='json').status_code == 403
