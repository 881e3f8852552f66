"""
Inventory consumption: prescriptions and direct sales.

Stock only leaves the inventory together with a ``SaleRecord`` row, and
``sold_quantity`` grows by exactly what ``quantity`` loses.  A
prescription touching several items either commits every decrement,
every sale row and the medical record, or nothing at all.
"""
from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from django.db import transaction
from django.db.models import Avg, Count, F, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import InsufficientStock
from clinic.models import InventoryItem, MedicalRecord, PrescribedMedication, SaleRecord, User
from clinic.utils import clean_text

logger = logging.getLogger(__name__)

RECORD_TEXT_FIELDS = ('diagnosis', 'treatment', 'doctor_notes')


def resolve_item(ref: dict, *, lock: bool = False) -> InventoryItem:
    """Find the inventory item a medication line refers to.

    Lines carry ``medicationId`` or ``itemId``; a bare ``name`` is still
    accepted for older clients.
    """
    qs = InventoryItem.objects.all()
    if lock:
        qs = qs.select_for_update()
    item_id = ref.get('medicationId') or ref.get('itemId')
    if item_id not in (None, ''):
        item = qs.filter(pk=item_id).first()
    else:
        name = (ref.get('name') or '').strip()
        if not name:
            raise ValidationError({'medications': ['Each medication needs a medicationId or name']})
        item = qs.filter(name=name).order_by('pk').first()
    if item is None:
        label = item_id if item_id not in (None, '') else ref.get('name')
        raise NotFound(f'Medication {label} not found in inventory')
    return item


def _quantity(value) -> int:
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise ValidationError({'quantity': ['Quantity must be a whole number']})
    if quantity < 1:
        raise ValidationError({'quantity': ['Quantity must be at least 1']})
    return quantity


def _take(item: InventoryItem, quantity: int) -> None:
    updated = InventoryItem.objects.filter(pk=item.pk, quantity__gte=quantity).update(
        quantity=F('quantity') - quantity,
        sold_quantity=F('sold_quantity') + quantity,
        last_updated=timezone.now(),
    )
    if not updated:
        item.refresh_from_db(fields=['quantity'])
        raise InsufficientStock(item.name, quantity, item.quantity)


def consume(patient: User, medications, **record_fields) -> MedicalRecord:
    """Create a medical record and take its prescribed medications out of stock."""
    if not medications:
        raise ValidationError({'medications': ['At least one medication is required']})

    with transaction.atomic():
        lines = []
        for med in medications:
            if not isinstance(med, dict):
                raise ValidationError({'medications': ['Invalid medication entry']})
            lines.append((resolve_item(med), _quantity(med.get('quantity')), med))

        # Rows are locked in id order to keep concurrent prescriptions deadlock free.
        totals: dict[int, int] = {}
        for item, quantity, _ in sorted(lines, key=lambda line: line[0].pk):
            totals[item.pk] = totals.get(item.pk, 0) + quantity
        locked = {
            item.pk: item
            for item in InventoryItem.objects.select_for_update().filter(pk__in=totals).order_by('pk')
        }
        for pk, requested in totals.items():
            item = locked[pk]
            if item.quantity < requested:
                logger.warning('prescription refused: %s requested %s, %s in stock',
                               item.name, requested, item.quantity)
                raise InsufficientStock(item.name, requested, item.quantity)

        record = MedicalRecord.objects.create(
            patient=patient,
            type=clean_text(record_fields.get('type')) or 'Prescription',
            date=record_fields.get('date') or timezone.now(),
            attachments=record_fields.get('attachments') or [],
            lab_results=record_fields.get('lab_results') or [],
            **{name: clean_text(record_fields.get(name)) for name in RECORD_TEXT_FIELDS},
        )
        for item, quantity, med in lines:
            item = locked[item.pk]
            _take(item, quantity)
            SaleRecord.objects.create(
                item=item,
                quantity=quantity,
                total_amount=item.price * quantity,
                medical_record=record,
                user=patient,
            )
            PrescribedMedication.objects.create(
                record=record,
                item=item,
                name=item.name,
                dosage=clean_text(med.get('dosage')),
                duration=clean_text(med.get('duration')),
                quantity=quantity,
                unit=item.unit,
                price=item.price,
            )
    logger.info('medical record %s created for patient %s with %s medication line(s)',
                record.pk, patient.pk, len(lines))
    return MedicalRecord.objects.prefetch_related('medications').get(pk=record.pk)


def record_sale(item_id, quantity, *, user: User | None = None, medical_record: MedicalRecord | None = None) -> InventoryItem:
    """Sell ``quantity`` of a single item and return it with the new stock."""
    quantity = _quantity(quantity)
    with transaction.atomic():
        item = resolve_item({'itemId': item_id}, lock=True)
        _take(item, quantity)
        SaleRecord.objects.create(
            item=item,
            quantity=quantity,
            total_amount=item.price * quantity,
            medical_record=medical_record,
            user=user,
        )
        item.refresh_from_db()
    logger.info('sale recorded: %s x%s, %s left', item.name, quantity, item.quantity)
    if item.is_low_stock:
        logger.warning('%s is at or below its reorder level (%s)', item.name, item.min_quantity)
    return item


def _months_back(now: datetime, months: int) -> datetime:
    year, month = now.year, now.month - (months - 1)
    while month < 1:
        month += 12
        year -= 1
    return now.replace(year=year, month=month, day=1, hour=0, minute=0, second=0, microsecond=0)


def low_stock_items():
    return InventoryItem.objects.filter(quantity__lte=F('min_quantity')).order_by('quantity', 'name')


def sales_analytics(months: int = 6, top: int = 5) -> dict:
    """Monthly revenue, best sellers, overall totals and items to reorder."""
    since = _months_back(timezone.localtime(), months)
    monthly = (
        SaleRecord.objects.filter(date__gte=since)
        .annotate(month=TruncMonth('date'))
        .values('month')
        .annotate(total=Sum('total_amount'), count=Count('id'))
        .order_by('month')
    )
    top_items = (
        InventoryItem.objects.annotate(
            total_sold=Sum('sales__quantity'),
            revenue=Sum('sales__total_amount'),
        )
        .filter(total_sold__gt=0)
        .order_by('-total_sold', 'name')[:top]
    )
    summary = SaleRecord.objects.aggregate(
        total_revenue=Sum('total_amount'),
        total_sales=Count('id'),
        average_order_value=Avg('total_amount'),
    )
    return {
        'monthly': [
            {'month': row['month'].strftime('%b %Y'), 'total': row['total'], 'count': row['count']}
            for row in monthly
        ],
        'topItems': [
            {
                'id': item.pk,
                'name': item.name,
                'soldQuantity': item.total_sold,
                'initialStock': item.initial_stock,
                'currentStock': item.quantity,
                'price': item.price,
                'totalRevenue': item.revenue,
                'isLowStock': item.is_low_stock,
            }
            for item in top_items
        ],
        'summary': {
            'totalRevenue': summary['total_revenue'] or Decimal('0'),
            'totalSales': summary['total_sales'],
            'averageOrderValue': summary['average_order_value'] or Decimal('0'),
        },
        'lowStock': [
            {'id': item.pk, 'name': item.name, 'quantity': item.quantity, 'minQuantity': item.min_quantity}
            for item in low_stock_items()
        ],
    }
