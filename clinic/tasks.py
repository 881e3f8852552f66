"""
Celery tasks for the clinic app.
"""
import logging
import smtplib

from celery import shared_task
from celery.utils.time import get_exponential_backoff_interval
from django.conf import settings

from clinic.models import Appointment
from clinic.services.appointments import sweep_expired_approvals
from clinic.services.notifications import send_appointment_email

logger = logging.getLogger(__name__)

TRANSIENT_MAIL_ERRORS = (smtplib.SMTPException, OSError)


@shared_task(bind=True, name='clinic.send_appointment_notification', max_retries=settings.NOTIFICATION_MAX_RETRIES)
def send_appointment_notification(self, appointment_id, kind):
    """Send an approval or cancellation e-mail for an appointment.

    Transport errors are retried with exponential backoff on a worker.
    When the task runs eagerly (no broker) it makes a single attempt so
    the request that queued it is never held up by a failing mail server.
    """
    appointment = (
        Appointment.objects.select_related('patient', 'doctor')
        .filter(pk=appointment_id)
        .first()
    )
    if appointment is None:
        logger.warning('appointment %s vanished before its %s notice was sent', appointment_id, kind)
        return False
    try:
        return send_appointment_email(appointment, kind)
    except TRANSIENT_MAIL_ERRORS as exc:
        if self.request.is_eager:
            logger.error('appointment %s: %s notice failed: %s', appointment_id, kind, exc)
            return False
        countdown = get_exponential_backoff_interval(
            factor=1, retries=self.request.retries, maximum=600, full_jitter=True,
        )
        logger.warning('appointment %s: %s notice failed (%s), retry %s in %ss',
                       appointment_id, kind, exc, self.request.retries + 1, countdown)
        raise self.retry(exc=exc, countdown=countdown)


@shared_task(name='clinic.sweep_expired_appointments')
def sweep_expired_appointments():
    """Complete approved appointments whose slot has passed."""
    updated = sweep_expired_approvals()
    return {'updatedCount': updated}
