# app/utils/time_utils.py
"""Timezone and wall-clock helpers shared by the scheduling services"""
import logging
from datetime import date, datetime, time, timezone

import pytz

logger = logging.getLogger(__name__)


def get_tz(tz_name: str) -> pytz.BaseTzInfo:
    """Resolve a timezone name, falling back to UTC for unknown names"""
    try:
        return pytz.timezone(tz_name or "UTC")
    except pytz.UnknownTimeZoneError:
        logger.error(f"Invalid timezone '{tz_name}', using UTC")
        return pytz.UTC


def day_of_week(target_date: date) -> int:
    """Weekday with Sunday=0 ... Saturday=6"""
    return (target_date.weekday() + 1) % 7


def localize(target_date: date, wall_time: time, tz: pytz.BaseTzInfo) -> datetime:
    """Combine a civil date and wall time in tz into an aware datetime"""
    return tz.localize(datetime.combine(target_date, wall_time))


def start_of_day(target_date: date, tz: pytz.BaseTzInfo) -> datetime:
    return localize(target_date, time.min, tz)


def end_of_day(target_date: date, tz: pytz.BaseTzInfo) -> datetime:
    return localize(target_date, time.max, tz)


def ensure_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_hhmm(value: datetime, tz: pytz.BaseTzInfo) -> str:
    return value.astimezone(tz).strftime("%H:%M")
