from __future__ import annotations

from datetime import datetime, time, timedelta

from django.core.cache import cache
from django.utils import timezone

from clinic.models import Appointment, Doctor, MedicalRecord, User
from clinic.services import ledger
from clinic.utils import clinic_timezone

ADMIN_DASHBOARD_CACHE_KEY = 'dashboard:admin'
ADMIN_DASHBOARD_TTL = 60


def patient_dashboard(user: User) -> dict:
    now = timezone.now()
    mine = Appointment.objects.filter(patient=user).select_related('doctor')
    upcoming = mine.filter(status=Appointment.STATUS_PENDING, time_slot__gte=now)
    past = mine.filter(
        status__in=[Appointment.STATUS_APPROVED, Appointment.STATUS_COMPLETED],
        time_slot__lt=now,
    )
    recent = sorted(
        list(upcoming.order_by('time_slot')[:5]) + list(past.order_by('-time_slot')[:5]),
        key=lambda a: a.time_slot,
        reverse=True,
    )[:5]
    return {
        'fullName': user.display_name,
        'email': user.email,
        'phone': user.phone,
        'upcomingAppointments': upcoming.count(),
        'pastAppointments': past.count(),
        'medicalRecords': MedicalRecord.objects.filter(patient=user).count(),
        'recentActivity': [
            {
                'type': 'appointment',
                'title': f'Appointment {a.reason}',
                'datetime': a.time_slot.isoformat(),
                'status': 'upcoming' if a.status == Appointment.STATUS_PENDING else 'completed',
            }
            for a in recent
        ],
    }


def _build_admin_dashboard() -> dict:
    tz = clinic_timezone()
    today = timezone.localtime(timezone.now(), tz).date()
    start = datetime.combine(today, time.min, tzinfo=tz)
    end = start + timedelta(days=1)
    recent = Appointment.objects.select_related('patient', 'doctor').order_by('-created_at')[:3]
    return {
        'stats': {
            'totalPatients': User.objects.filter(role=User.ROLE_PATIENT).count(),
            'totalDoctors': Doctor.objects.count(),
            'appointmentsToday': Appointment.objects.filter(time_slot__gte=start, time_slot__lt=end).count(),
            'pendingRequests': Appointment.objects.filter(status=Appointment.STATUS_PENDING).count(),
            'totalMedicalRecords': MedicalRecord.objects.count(),
        },
        'beds': ledger.get_status().as_payload(),
        'recentActivity': [
            {
                'id': a.pk,
                'type': 'appointment',
                'patient': a.patient.display_name,
                'doctor': a.doctor.name if a.doctor else 'Unassigned',
                'status': a.status,
                'createdAt': a.created_at.isoformat(),
            }
            for a in recent
        ],
    }


def admin_dashboard() -> dict:
    """Admin overview, cached briefly; counts may lag writes by up to a minute."""
    payload = cache.get(ADMIN_DASHBOARD_CACHE_KEY)
    if payload is None:
        payload = _build_admin_dashboard()
        cache.set(ADMIN_DASHBOARD_CACHE_KEY, payload, ADMIN_DASHBOARD_TTL)
    return payload
