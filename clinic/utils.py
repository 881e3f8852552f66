from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import bleach
from django.conf import settings
from django.utils import timezone


def clinic_timezone() -> ZoneInfo:
    return ZoneInfo(settings.CLINIC_TIME_ZONE)


def clean_text(value) -> str:
    """Strip markup from user supplied free text."""
    return bleach.clean(str(value or '').strip(), tags=set(), strip=True)


def to_clinic_time(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return timezone.localtime(value, clinic_timezone())
