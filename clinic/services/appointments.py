"""
Appointment lifecycle.

Every status change goes through :func:`transition`, which locks the
appointment row, checks the move against the transition table, applies
the bed ledger effect and records an ``AppointmentTransition`` row, all
in one database transaction.  E-mails are queued for after the commit
so a mail problem can never undo a transition.

    pending  -> approved | cancelled
    approved -> approved (reassignment) | cancelled | completed
    cancelled, completed: terminal
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clinic.exceptions import IllegalTransition, SlotUnavailable
from clinic.models import Appointment, AppointmentTransition, Doctor, User
from clinic.services import ledger
from clinic.services.notifications import kind_for_status, queue_appointment_notification
from clinic.utils import clean_text

logger = logging.getLogger(__name__)

PENDING = Appointment.STATUS_PENDING
APPROVED = Appointment.STATUS_APPROVED
CANCELLED = Appointment.STATUS_CANCELLED
COMPLETED = Appointment.STATUS_COMPLETED

# Older clients call an approved appointment "scheduled".
STATUS_ALIASES = {'scheduled': APPROVED}

TERMINAL = {CANCELLED, COMPLETED}


def _can_transition(current: str, new: str) -> bool:
    """Return True if an appointment may move from ``current`` to ``new``."""
    transitions = {
        PENDING: [APPROVED, CANCELLED],
        APPROVED: [APPROVED, CANCELLED, COMPLETED],
        CANCELLED: [],
        COMPLETED: [],
    }
    return new in transitions.get(current, [])


def normalize_status(value: str | None) -> str | None:
    if value in (None, ''):
        return None
    value = str(value).strip().lower()
    value = STATUS_ALIASES.get(value, value)
    if value not in dict(Appointment.STATUS_CHOICES):
        raise ValidationError({'status': [f'Unknown status: {value}']})
    return value


@dataclass
class TransitionIntent:
    status: str | None = None
    doctor_id: int | None = None
    time_slot: datetime | None = None
    reason: str = ''

    def target_status(self) -> str | None:
        status = normalize_status(self.status)
        if self.doctor_id is not None and status is None:
            return APPROVED
        return status


def _populated():
    return Appointment.objects.select_related('patient', 'doctor')


def _get_bookable_doctor(doctor_id) -> Doctor:
    doctor = Doctor.objects.filter(pk=doctor_id).first()
    if doctor is None:
        raise NotFound('Doctor not found')
    if doctor.status != 'active':
        raise ValidationError({'doctorId': ['Doctor is not accepting appointments']})
    return doctor


def _ensure_slot_free(doctor: Doctor, time_slot: datetime, *, exclude_id: int | None = None) -> None:
    clash = Appointment.objects.filter(doctor=doctor, time_slot=time_slot).exclude(status=CANCELLED)
    if exclude_id is not None:
        clash = clash.exclude(pk=exclude_id)
    if clash.exists():
        raise SlotUnavailable()


def create_appointment(patient: User, *, reason, time_slot, doctor_id=None, type='regular',
                       symptoms=(), notes='') -> Appointment:
    """Create a ``pending`` appointment for ``patient``."""
    reason = clean_text(reason)
    missing = []
    if not reason:
        missing.append('reason')
    if time_slot is None:
        missing.append('timeSlot')
    if missing:
        raise ValidationError({name: ['This field is required.'] for name in missing})

    doctor = None
    if doctor_id not in (None, ''):
        doctor = _get_bookable_doctor(doctor_id)

    with transaction.atomic():
        if doctor is not None:
            _ensure_slot_free(doctor, time_slot)
        appointment = Appointment.objects.create(
            patient=patient,
            doctor=doctor,
            time_slot=time_slot,
            reason=reason,
            type=clean_text(type) or 'regular',
            symptoms=[s for s in (clean_text(x) for x in symptoms or ()) if s],
            notes=clean_text(notes),
        )
        AppointmentTransition.objects.create(
            appointment=appointment, from_status='', to_status=PENDING,
            operator=patient, reason='created',
        )
    logger.info('appointment %s created for patient %s', appointment.pk, patient.pk)
    return _populated().get(pk=appointment.pk)


def _apply_ledger(current: str, target: str) -> int:
    """Bed effect of a move; approved -> approved keeps its bed."""
    if target == APPROVED and current != APPROVED:
        ledger.allocate()
        return 1
    if current == APPROVED and target in TERMINAL:
        _, released = ledger.release()
        return -1 if released else 0
    return 0


def _move(appointment: Appointment, target: str, *, operator: User | None = None, reason: str = '') -> int:
    """Apply a checked status move to a row locked by the caller; returns the bed delta.

    Must run inside the caller's ``transaction.atomic()`` block.
    """
    current = appointment.status
    bed_delta = _apply_ledger(current, target)
    appointment.status = target
    appointment.save()
    AppointmentTransition.objects.create(
        appointment=appointment,
        from_status=current,
        to_status=target,
        operator=operator,
        bed_delta=bed_delta,
        reason=clean_text(reason)[:255],
    )
    if target != current or target == APPROVED:
        queue_appointment_notification(appointment.pk, kind_for_status(target))
    logger.info('appointment %s: %s -> %s (beds %+d)', appointment.pk, current, target, bed_delta)
    return bed_delta


def transition(appointment_id, intent: TransitionIntent, *, operator: User | None = None) -> Appointment:
    """Move an appointment according to ``intent`` and return it populated."""
    target = intent.target_status()
    if target is None and intent.time_slot is None:
        raise ValidationError({'status': ['A status, doctorId or new time is required']})

    with transaction.atomic():
        appointment = Appointment.objects.select_for_update().filter(pk=appointment_id).first()
        if appointment is None:
            raise NotFound('Appointment not found')
        current = appointment.status

        if target is None:
            # time only: reschedule without a status change
            if current in TERMINAL:
                raise IllegalTransition(current, 'rescheduled')
            target = current
        elif not _can_transition(current, target):
            raise IllegalTransition(current, target)

        if intent.doctor_id is not None:
            appointment.doctor = _get_bookable_doctor(intent.doctor_id)
        if intent.time_slot is not None:
            appointment.time_slot = intent.time_slot

        if target == APPROVED and (appointment.doctor_id is None or appointment.time_slot is None):
            raise ValidationError({'detail': ['A doctor and a time slot are required for approval']})
        if target not in TERMINAL and appointment.doctor_id and appointment.time_slot:
            _ensure_slot_free(appointment.doctor, appointment.time_slot, exclude_id=appointment.pk)

        _move(appointment, target, operator=operator, reason=intent.reason)

    return _populated().get(pk=appointment.pk)


def _expired_candidates(now: datetime) -> list[int]:
    return list(
        Appointment.objects.filter(status=APPROVED, time_slot__lt=now)
        .order_by('time_slot')
        .values_list('pk', flat=True)
    )


def sweep_expired_approvals(now: datetime | None = None) -> int:
    """Complete every approved appointment whose slot lies before ``now``.

    Each candidate is re-read under a row lock and skipped if it is no
    longer approved, so a cancellation racing the sweep wins cleanly.
    Running the sweep twice in a row completes nothing the second time.
    """
    now = now or timezone.now()
    updated = 0
    for pk in _expired_candidates(now):
        with transaction.atomic():
            appointment = Appointment.objects.select_for_update().filter(pk=pk).first()
            if appointment is None or not _can_transition(appointment.status, COMPLETED) \
                    or not appointment.time_slot or appointment.time_slot >= now:
                logger.info('sweep: appointment %s changed concurrently, skipped', pk)
                continue
            _move(appointment, COMPLETED, reason='time slot passed')
        updated += 1
    if updated:
        logger.info('sweep completed %s expired appointment(s)', updated)
    return updated


def list_appointments_for_patient(user: User, status: str | None = None):
    qs = _populated().filter(patient=user)
    status = normalize_status(status)
    if status:
        qs = qs.filter(status=status)
    return qs.order_by('-time_slot', '-created_at')


def list_all_appointments():
    return _populated().order_by('-created_at')
