"""
Free appointment slots for a doctor on a given day.

A doctor's weekly schedule lists wall-clock intervals per weekday in
``CLINIC_TIME_ZONE``.  Each interval is cut into fixed slots starting at
the interval start; a remainder shorter than a slot is dropped.  Slots
whose start instant equals the start of a non-cancelled appointment of
the same doctor are removed.  All comparisons use aware datetimes, so
the result does not depend on the server time zone or on DST.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone as dt_timezone

from django.conf import settings
from rest_framework.exceptions import NotFound, ValidationError

from clinic.models import Appointment, Doctor
from clinic.utils import clinic_timezone

logger = logging.getLogger(__name__)

WEEKDAYS = ['Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday']


@dataclass
class Slot:
    start: datetime
    end: datetime

    def as_payload(self) -> dict:
        return {'startTime': self.start.isoformat(), 'endTime': self.end.isoformat()}


@dataclass
class AvailabilityResult:
    day_of_week: str
    slots: list[Slot] = field(default_factory=list)
    message: str = ''

    def as_payload(self) -> dict:
        return {
            'dayOfWeek': self.day_of_week,
            'availableSlots': [s.as_payload() for s in self.slots],
            'message': self.message,
        }


def _parse_clock(value) -> time:
    try:
        hours, minutes = str(value).strip().split(':')[:2]
        return time(int(hours), int(minutes))
    except (TypeError, ValueError):
        raise ValidationError({'availability': [f'Invalid time of day: {value!r}']})


def generate_slots(start: datetime, end: datetime, minutes: int) -> list[Slot]:
    """Cut ``[start, end)`` into slots of ``minutes``, left aligned, remainder dropped."""
    step = timedelta(minutes=minutes)
    slots = []
    cursor = start
    while cursor + step <= end:
        slots.append(Slot(cursor, cursor + step))
        cursor += step
    return slots


def _intervals_for(doctor: Doctor, weekday: str) -> list[dict]:
    intervals = []
    for entry in doctor.availability or []:
        if isinstance(entry, dict) and entry.get('day') == weekday:
            intervals.extend(entry.get('slots') or [])
    return intervals


def parse_day(value) -> date:
    if isinstance(value, date):
        return value
    if not value:
        raise ValidationError({'date': ['Date parameter is required']})
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        raise ValidationError({'date': ['Invalid date, expected YYYY-MM-DD']})


def _booked_starts(doctor: Doctor, day: date, tz) -> set[datetime]:
    day_start = datetime.combine(day, time.min, tzinfo=tz)
    next_day = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    booked = (
        Appointment.objects.filter(doctor=doctor, time_slot__gte=day_start, time_slot__lt=next_day)
        .exclude(status=Appointment.STATUS_CANCELLED)
        .values_list('time_slot', flat=True)
    )
    return {t.astimezone(dt_timezone.utc).replace(second=0, microsecond=0) for t in booked}


def available_slots(doctor_id, day) -> AvailabilityResult:
    day = parse_day(day)
    doctor = Doctor.objects.filter(pk=doctor_id).first()
    if doctor is None:
        raise NotFound('Doctor not found')

    tz = clinic_timezone()
    weekday = WEEKDAYS[day.weekday()]
    intervals = _intervals_for(doctor, weekday)
    if not intervals:
        return AvailabilityResult(weekday, [], f'No slots available for {weekday}')

    minutes = settings.SLOT_MINUTES
    by_start: dict[datetime, Slot] = {}
    for interval in intervals:
        start = datetime.combine(day, _parse_clock(interval.get('startTime')), tzinfo=tz)
        end = datetime.combine(day, _parse_clock(interval.get('endTime')), tzinfo=tz)
        for slot in generate_slots(start, end, minutes):
            by_start.setdefault(slot.start.astimezone(dt_timezone.utc), slot)

    booked = _booked_starts(doctor, day, tz)
    free = [slot for key, slot in sorted(by_start.items()) if key not in booked]
    logger.debug('doctor %s on %s: %s generated, %s booked, %s free',
                 doctor.pk, day, len(by_start), len(booked), len(free))
    return AvailabilityResult(weekday, free, f'Found {len(free)} slots for {weekday}')
