import pytest
from django.urls import reverse

from clinic.exceptions import InsufficientStock
from clinic.models import InventoryItem, MedicalRecord, PrescribedMedication, SaleRecord
from clinic.services.inventory import consume, low_stock_items, record_sale

pytestmark = pytest.mark.django_db


def test_insufficient_stock_changes_nothing(patient, make_item):
    item = make_item('Amoxicillin', 3)
    with pytest.raises(InsufficientStock) as info:
        consume(patient, [{'medicationId': item.pk, 'quantity': 5}], diagnosis='infection')
    assert info.value.shortfall == 2
    item.refresh_from_db()
    assert (item.quantity, item.sold_quantity) == (3, 0)
    assert not MedicalRecord.objects.exists()
    assert not SaleRecord.objects.exists()


def test_prescription_is_all_or_nothing(patient, make_item):
    a = make_item('Ibuprofen', 10)
    b = make_item('Paracetamol', 1)
    with pytest.raises(InsufficientStock):
        consume(patient, [
            {'medicationId': a.pk, 'quantity': 4},
            {'medicationId': b.pk, 'quantity': 2},
        ])
    a.refresh_from_db()
    b.refresh_from_db()
    assert (a.quantity, b.quantity) == (10, 1)
    assert not SaleRecord.objects.exists()


def test_repeated_lines_are_checked_together(patient, make_item):
    item = make_item('Ibuprofen', 5)
    with pytest.raises(InsufficientStock):
        consume(patient, [
            {'medicationId': item.pk, 'quantity': 3},
            {'medicationId': item.pk, 'quantity': 3},
        ])
    item.refresh_from_db()
    assert item.quantity == 5


def test_successful_prescription(patient, make_item):
    a = make_item('Ibuprofen', 10, price='1.20')
    b = make_item('Paracetamol', 4)
    record = consume(patient, [
        {'medicationId': a.pk, 'quantity': 3, 'dosage': '1 tablet', 'duration': '5 days'},
        {'name': 'Paracetamol', 'quantity': 4},
    ], diagnosis='<i>flu</i>')
    a.refresh_from_db()
    b.refresh_from_db()
    assert (a.quantity, a.sold_quantity) == (7, 3)
    assert (b.quantity, b.sold_quantity) == (0, 4)
    assert record.diagnosis == 'flu'
    assert record.type == 'Prescription'
    assert [m.name for m in record.medications.order_by('pk')] == ['Ibuprofen', 'Paracetamol']
    sale = SaleRecord.objects.get(item=a)
    assert sale.quantity == 3
    assert str(sale.total_amount) == '3.60'
    assert sale.medical_record == record


def test_unknown_medication_is_404(admin_client, patient):
    r = admin_client.post(reverse('prescription_create'), {
        'patientId': patient.pk,
        'medications': [{'medicationId': 999, 'quantity': 1}],
    }, format='json')
    assert r.status_code == 404
    assert not MedicalRecord.objects.exists()


def test_prescription_endpoint(admin_client, patient, make_item):
    item = make_item('Cetirizine', 6)
    r = admin_client.post(reverse('prescription_create'), {
        'patientId': patient.pk,
        'diagnosis': 'allergy',
        'medications': [{'medicationId': item.pk, 'quantity': 2, 'dosage': 'daily'}],
    }, format='json')
    assert r.status_code == 201
    record = r.data['record']
    assert record['patientId'] == patient.pk
    assert record['medications'][0]['quantity'] == 2
    assert PrescribedMedication.objects.get().dosage == 'daily'


def test_prescription_endpoint_reports_shortfall(admin_client, patient, make_item):
    item = make_item('Cetirizine', 1)
    r = admin_client.post(reverse('prescription_create'), {
        'patientId': patient.pk,
        'medications': [{'medicationId': item.pk, 'quantity': 3}],
    }, format='json')
    assert r.status_code == 400
    assert r.data['error']['code'] == 'insufficient_stock'
    assert 'Cetirizine' in r.data['error']['message']


def test_prescription_requires_admin(patient_client, patient, make_item):
    item = make_item('Cetirizine', 1)
    r = patient_client.post(reverse('prescription_create'), {
        'patientId': patient.pk,
        'medications': [{'medicationId': item.pk, 'quantity': 1}],
    }, format='json')
    assert r.status_code == 403


def test_record_sale(make_item, patient):
    item = make_item('Vitamin C', 5, price='3.00')
    updated = record_sale(item.pk, 2, user=patient)
    assert updated.quantity == 3
    assert updated.sold_quantity == 2
    with pytest.raises(InsufficientStock):
        record_sale(item.pk, 4)
    assert SaleRecord.objects.count() == 1


def test_sale_endpoint(admin_client, make_item):
    item = make_item('Vitamin C', 5)
    r = admin_client.post(reverse('inventory_sale'), {'itemId': item.pk, 'quantity': 5}, format='json')
    assert r.status_code == 200
    assert r.data['updatedStock'] == 0
    assert r.data['lowStock'] is True
    r = admin_client.post(reverse('inventory_sale'), {'itemId': item.pk, 'quantity': 1}, format='json')
    assert r.status_code == 400


def test_low_stock_items(make_item):
    make_item('Plenty', 50, min_quantity=10)
    low = make_item('Scarce', 2, min_quantity=5)
    assert list(low_stock_items()) == [low]


def test_analytics_endpoint(admin_client, make_item):
    item = make_item('Ibuprofen', 10, price='2.00', min_quantity=8)
    record_sale(item.pk, 3)
    r = admin_client.get(reverse('inventory_analytics'))
    assert r.status_code == 200
    assert r.data['summary']['totalSales'] == 1
    assert r.data['topItems'][0]['name'] == 'Ibuprofen'
    assert r.data['topItems'][0]['soldQuantity'] == 3
    assert r.data['topItems'][0]['isLowStock'] is True
    assert r.data['lowStock'][0]['id'] == item.pk
    assert len(r.data['monthly']) == 1
