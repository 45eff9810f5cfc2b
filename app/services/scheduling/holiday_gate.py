"""
Holiday/Override Gate

Suppresses a whole day of slots on public holidays in the host's region
when the host opted in. An explicit date override always wins.
"""
import logging
from datetime import date
from typing import Dict, List, Optional

import holidays

logger = logging.getLogger(__name__)

TIMEZONE_TO_COUNTRY: Dict[str, str] = {
    "Asia/Jerusalem": "IL",
    "Asia/Tel_Aviv": "IL",
    "America/New_York": "US",
    "America/Chicago": "US",
    "America/Denver": "US",
    "America/Los_Angeles": "US",
    "America/Phoenix": "US",
    "America/Anchorage": "US",
    "Pacific/Honolulu": "US",
    "Europe/London": "GB",
    "Europe/Paris": "FR",
    "Europe/Berlin": "DE",
    "Europe/Madrid": "ES",
    "Europe/Rome": "IT",
    "Europe/Amsterdam": "NL",
    "Europe/Brussels": "BE",
    "Europe/Zurich": "CH",
    "Europe/Vienna": "AT",
    "Europe/Stockholm": "SE",
    "Europe/Oslo": "NO",
    "Europe/Copenhagen": "DK",
    "Europe/Helsinki": "FI",
    "Europe/Warsaw": "PL",
    "Europe/Prague": "CZ",
    "Europe/Budapest": "HU",
    "Europe/Bucharest": "RO",
    "Europe/Athens": "GR",
    "Europe/Istanbul": "TR",
    "Europe/Moscow": "RU",
    "Europe/Lisbon": "PT",
    "Europe/Dublin": "IE",
    "Asia/Tokyo": "JP",
    "Asia/Seoul": "KR",
    "Asia/Shanghai": "CN",
    "Asia/Hong_Kong": "HK",
    "Asia/Singapore": "SG",
    "Asia/Kolkata": "IN",
    "Asia/Dubai": "AE",
    "Asia/Riyadh": "SA",
    "Australia/Sydney": "AU",
    "Australia/Melbourne": "AU",
    "Australia/Perth": "AU",
    "Pacific/Auckland": "NZ",
    "America/Toronto": "CA",
    "America/Vancouver": "CA",
    "America/Sao_Paulo": "BR",
    "America/Mexico_City": "MX",
    "America/Argentina/Buenos_Aires": "AR",
    "Africa/Johannesburg": "ZA",
    "Africa/Cairo": "EG",
    "Africa/Lagos": "NG",
}

# Continent-level guesses for zones missing from the table; Asia and Africa are too diverse
REGION_FALLBACKS: Dict[str, str] = {
    "America": "US",
    "Europe": "GB",
    "Australia": "AU",
}


def country_for_timezone(tz_name: str) -> Optional[str]:
    if not tz_name:
        return None
    if tz_name in TIMEZONE_TO_COUNTRY:
        return TIMEZONE_TO_COUNTRY[tz_name]
    return REGION_FALLBACKS.get(tz_name.split("/")[0])


def resolve_country(tz_name: str, holiday_country: Optional[str] = None) -> Optional[str]:
    """Explicit country setting first, timezone-derived region otherwise"""
    if holiday_country:
        return holiday_country.upper()
    return country_for_timezone(tz_name)


def is_public_holiday(target_date: date, tz_name: str, holiday_country: Optional[str] = None) -> bool:
    country = resolve_country(tz_name, holiday_country)
    if not country:
        return False

    try:
        calendar = holidays.country_holidays(country, years=target_date.year)
    except NotImplementedError:
        logger.error(f"Holiday data not available for country {country} (timezone {tz_name})")
        return False

    return target_date in calendar


def get_public_holidays(country_or_timezone: str, year: int, month: Optional[int] = None) -> List[Dict[str, str]]:
    """
    Public holidays of a country for a year, optionally one month (1-12).

    country_or_timezone is either an ISO country code or a timezone name.
    """
    if len(country_or_timezone) == 2:
        country = country_or_timezone.upper()
    else:
        country = country_for_timezone(country_or_timezone)
    if not country:
        return []

    try:
        calendar = holidays.country_holidays(country, years=year)
    except NotImplementedError:
        logger.error(f"Holiday data not available for {country_or_timezone}")
        return []

    return [
        {"date": day.isoformat(), "name": name}
        for day, name in sorted(calendar.items())
        if month is None or day.month == month
    ]


def blocks_day(
        target_date: date,
        block_holidays: bool,
        has_override: bool,
        tz_name: str,
        holiday_country: Optional[str] = None
) -> bool:
    """
    True when the whole day must yield no slots because it is a holiday.

    Behaviorally the same as "no availability"; callers use the flag to tell
    the guest why the day is empty.
    """
    if not block_holidays or has_override:
        return False
    return is_public_holiday(target_date, tz_name, holiday_country)
