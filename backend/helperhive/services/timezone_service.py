# backend/helperhive/services/timezone_service.py
"""
Local-time handling for bookings.

Customers pick a service date and start time in the platform timezone
(``settings.timezone``, Africa/Johannesburg unless configured otherwise).
Everything persisted or compared is an aware UTC instant.
"""

from datetime import date, datetime, time, timezone
from typing import Optional

import pytz

from ..core.config import settings

FALLBACK_TIMEZONE = "Africa/Johannesburg"


class TimezoneService:
    @staticmethod
    def get_timezone(tz_name: Optional[str] = None) -> pytz.BaseTzInfo:
        try:
            return pytz.timezone(tz_name or settings.timezone)
        except pytz.UnknownTimeZoneError:
            return pytz.timezone(FALLBACK_TIMEZONE)

    @staticmethod
    def local_to_utc(service_date: date, start_time: time, tz_name: Optional[str] = None) -> datetime:
        """
        Resolve a local wall-clock slot to UTC.

        Ambiguous wall times take the first occurrence; wall times skipped
        by a DST jump raise ``ValueError``.
        """
        zone = TimezoneService.get_timezone(tz_name)
        wall_clock = datetime.combine(service_date, start_time)
        try:
            localized = zone.localize(wall_clock, is_dst=None)
        except pytz.exceptions.AmbiguousTimeError:
            localized = zone.localize(wall_clock, is_dst=True)
        except pytz.exceptions.NonExistentTimeError:
            raise ValueError(f"{start_time:%H:%M} does not exist on {service_date} in {zone.zone}")
        return localized.astimezone(timezone.utc)

    @staticmethod
    def utc_to_local(value: datetime, tz_name: Optional[str] = None) -> datetime:
        return TimezoneService.ensure_utc(value).astimezone(TimezoneService.get_timezone(tz_name))

    @staticmethod
    def ensure_utc(value: datetime) -> datetime:
        # SQLite hands back naive datetimes
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
