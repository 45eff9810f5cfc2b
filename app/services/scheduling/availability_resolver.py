"""
Availability Resolver

Turns a user's weekly rules and date overrides into the raw open windows of
one civil date. Exactly one source is used per date:

- an override for the date replaces the weekly rules entirely
- otherwise every weekly rule of the date's weekday becomes one window
"""
import logging
from datetime import date
from typing import Iterable, List, Optional

import pytz

from app.schemas.availability import (
    DateOverride,
    OverrideAvailability,
    TimeWindow,
    WeeklyAvailability,
    WeeklyRule,
)
from app.utils.time_utils import day_of_week, localize

logger = logging.getLogger(__name__)


def find_override(overrides: Iterable[DateOverride], target_date: date) -> Optional[DateOverride]:
    return next((o for o in overrides if o.date == target_date), None)


def resolve_day(
        rules: Iterable[WeeklyRule],
        overrides: Iterable[DateOverride],
        target_date: date
):
    """
    Pick the single source of truth for target_date.

    Returns:
        OverrideAvailability if an override exists for the date,
        WeeklyAvailability with the weekday's rules otherwise
    """
    override = find_override(overrides, target_date)
    if override is not None:
        return OverrideAvailability(override=override)

    weekday = day_of_week(target_date)
    return WeeklyAvailability(rules=[r for r in rules if r.day_of_week == weekday])


def day_windows(day, target_date: date, tz: pytz.BaseTzInfo) -> List[TimeWindow]:
    """
    Localize a resolved day into aware windows, in source order.

    Malformed entries fail closed: an available override without both bounds
    and rules whose start is not before their end produce no window.
    """
    if isinstance(day, OverrideAvailability):
        override = day.override
        if not override.is_available:
            return []
        if override.start_time is None or override.end_time is None:
            logger.warning(f"Override for {target_date} is available but has no hours, treating as closed")
            return []
        if override.start_time >= override.end_time:
            logger.warning(f"Override for {target_date} has start >= end, treating as closed")
            return []
        return [TimeWindow(
            start=localize(target_date, override.start_time, tz),
            end=localize(target_date, override.end_time, tz),
        )]

    windows = []
    for rule in day.rules:
        if rule.start_time >= rule.end_time:
            logger.warning(f"Skipping weekly rule with start >= end: {rule}")
            continue
        windows.append(TimeWindow(
            start=localize(target_date, rule.start_time, tz),
            end=localize(target_date, rule.end_time, tz),
        ))
    return windows


def resolve_windows(
        rules: Iterable[WeeklyRule],
        overrides: Iterable[DateOverride],
        target_date: date,
        tz: pytz.BaseTzInfo
) -> List[TimeWindow]:
    """Open windows of target_date for one user"""
    return day_windows(resolve_day(rules, overrides, target_date), target_date, tz)
