"""
Bed ledger operations.

The ledger is a single ``BedLedger`` row.  Every mutation is one
conditional ``UPDATE`` built from ``F()`` expressions, so two concurrent
approvals can never both take the last bed: the database evaluates the
``WHERE available_beds > 0`` guard and the decrement together, and the
affected row count tells us whether we won.  Callers that combine a
ledger change with other writes wrap both in ``transaction.atomic()``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import transaction
from django.db.models import F
from rest_framework.exceptions import ValidationError

from clinic.exceptions import ResourceExhausted
from clinic.models import BedLedger

logger = logging.getLogger(__name__)

BEDS_GROUP = 'beds'


@dataclass(frozen=True)
class LedgerStatus:
    total_beds: int
    available_beds: int
    beds_in_use: int
    version: int

    def as_payload(self) -> dict:
        return {
            'totalBeds': self.total_beds,
            'availableBeds': self.available_beds,
            'bedsInUse': self.beds_in_use,
            'version': self.version,
        }


def _status_of(row: BedLedger) -> LedgerStatus:
    return LedgerStatus(row.total_beds, row.available_beds, row.beds_in_use, row.version)


def _ledger():
    return BedLedger.objects.filter(pk=BedLedger.SINGLETON_ID)


def _ensure_row() -> None:
    capacity = settings.BED_DEFAULT_CAPACITY
    _, created = BedLedger.objects.get_or_create(
        pk=BedLedger.SINGLETON_ID,
        defaults={'total_beds': capacity, 'available_beds': capacity, 'beds_in_use': 0},
    )
    if created:
        logger.info('bed ledger created with capacity %s', capacity)


def _broadcast(status: LedgerStatus) -> None:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return
    event = {'type': 'ledger.update', **status.as_payload()}
    try:
        async_to_sync(channel_layer.group_send)(BEDS_GROUP, event)
    except Exception:
        logger.warning('bed ledger broadcast failed', exc_info=True)


def _publish() -> LedgerStatus:
    status = get_status()
    transaction.on_commit(lambda: _broadcast(status))
    return status


def get_status() -> LedgerStatus:
    """Return the current counts, creating the ledger on first use."""
    _ensure_row()
    return _status_of(_ledger().get())


def allocate() -> LedgerStatus:
    """Move one bed from available to in use, or raise ``ResourceExhausted``."""
    _ensure_row()
    updated = _ledger().filter(available_beds__gt=0).update(
        available_beds=F('available_beds') - 1,
        beds_in_use=F('beds_in_use') + 1,
        version=F('version') + 1,
    )
    if not updated:
        logger.warning('bed allocation refused: no beds available')
        raise ResourceExhausted()
    status = _publish()
    logger.info('bed allocated: %s/%s in use', status.beds_in_use, status.total_beds)
    return status


def release() -> tuple[LedgerStatus, bool]:
    """Move one bed back to available.

    Returns the new status and whether a bed was actually released; at
    zero beds in use the call is a logged no-op.
    """
    _ensure_row()
    updated = _ledger().filter(beds_in_use__gt=0).update(
        available_beds=F('available_beds') + 1,
        beds_in_use=F('beds_in_use') - 1,
        version=F('version') + 1,
    )
    if not updated:
        logger.warning('bed release skipped: no beds in use')
        return get_status(), False
    status = _publish()
    logger.info('bed released: %s/%s in use', status.beds_in_use, status.total_beds)
    return status, True


def set_capacity(total_beds: int | None = None, beds_in_use: int | None = None) -> LedgerStatus:
    """Overwrite the counts directly; available beds are derived."""
    with transaction.atomic():
        _ensure_row()
        row = _ledger().select_for_update().get()
        total = row.total_beds if total_beds is None else int(total_beds)
        in_use = row.beds_in_use if beds_in_use is None else int(beds_in_use)
        if total < 0 or in_use < 0:
            raise ValidationError('Bed counts must not be negative')
        if in_use > total:
            raise ValidationError('Beds in use cannot exceed total beds')
        _ledger().update(
            total_beds=total,
            beds_in_use=in_use,
            available_beds=total - in_use,
            version=F('version') + 1,
        )
        status = _publish()
    logger.info('bed capacity set: total=%s in_use=%s', status.total_beds, status.beds_in_use)
    return status
