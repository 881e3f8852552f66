"""
Appointment e-mails.

Rendering and sending live here; scheduling (retry, on-commit) lives
in :mod:`clinic.tasks`.  ``send_appointment_email`` raises on transport
errors so the task can retry; ``queue_appointment_notification`` never
raises.
"""
from __future__ import annotations

import logging

from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
from django.template.loader import render_to_string

from clinic.models import Appointment
from clinic.utils import to_clinic_time

logger = logging.getLogger(__name__)

KIND_APPROVED = 'approved'
KIND_CANCELLED = 'cancelled'

SUBJECTS = {
    KIND_APPROVED: 'Your Appointment has been Approved',
    KIND_CANCELLED: 'Your Appointment has been Cancelled',
}


def kind_for_status(status: str) -> str | None:
    """Notification kind for a status reached by a transition (none for completed)."""
    if status == Appointment.STATUS_APPROVED:
        return KIND_APPROVED
    if status == Appointment.STATUS_CANCELLED:
        return KIND_CANCELLED
    return None


def build_context(appointment: Appointment) -> dict:
    doctor = appointment.doctor
    return {
        'patient_name': appointment.patient.display_name,
        'doctor_name': doctor.name if doctor else '',
        'specialization': doctor.specialization if doctor else '',
        'when': to_clinic_time(appointment.time_slot),
        'appointment_type': appointment.type,
        'clinic_name': settings.CLINIC_NAME,
    }


def send_appointment_email(appointment: Appointment, kind: str) -> bool:
    """Render and send one notification. Returns False when there is nothing to send."""
    if kind not in SUBJECTS:
        raise ValueError(f'unknown notification kind: {kind}')
    recipient = appointment.patient.email
    if not recipient:
        logger.info('appointment %s: patient has no e-mail, %s notice skipped', appointment.pk, kind)
        return False
    context = build_context(appointment)
    template = f'clinic/emails/appointment_{kind}'
    send_mail(
        SUBJECTS[kind],
        render_to_string(f'{template}.txt', context),
        settings.DEFAULT_FROM_EMAIL,
        [recipient],
        html_message=render_to_string(f'{template}.html', context),
    )
    logger.info('appointment %s: %s notice sent to %s', appointment.pk, kind, recipient)
    return True


def _enqueue(appointment_id: int, kind: str) -> None:
    from clinic.tasks import send_appointment_notification

    try:
        send_appointment_notification.delay(appointment_id, kind)
    except Exception:
        logger.exception('appointment %s: could not queue %s notice', appointment_id, kind)


def queue_appointment_notification(appointment_id: int, kind: str | None) -> None:
    """Queue a notice to go out once the surrounding transaction commits."""
    if kind is None:
        return
    transaction.on_commit(lambda: _enqueue(appointment_id, kind))
