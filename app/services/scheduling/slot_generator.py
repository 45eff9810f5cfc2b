"""
Slot Generator

Walks availability windows in fixed steps and emits bookable start times.

Algorithm, per window [window_start, window_end):
    1. cursor = window_start
    2. while cursor + duration <= window_end:
        - skip the candidate if cursor <= now + min_notice
        - keep it if the availability predicate accepts [cursor, cursor + duration)
        - advance by 15 minutes for meetings of 30 minutes or less, else 30

Before any of that the whole date is rejected when it starts after the end of
the day that is max_days_ahead days from now. Candidates overlap on purpose
when the step is shorter than the duration.
"""
from datetime import date, datetime, timedelta
from typing import Callable, Iterable, Iterator, List, Tuple

import pytz

from app.schemas.availability import EventTypeConfig, TimeWindow
from app.utils.time_utils import end_of_day, format_hhmm, start_of_day

SHORT_MEETING_MINUTES = 30
SHORT_MEETING_STEP = 15
LONG_MEETING_STEP = 30

# (slot_start, slot_end) -> bool
AvailabilityPredicate = Callable[[datetime, datetime], bool]


def step_minutes(duration: int) -> int:
    return SHORT_MEETING_STEP if duration <= SHORT_MEETING_MINUTES else LONG_MEETING_STEP


def is_beyond_horizon(target_date: date, now: datetime, max_days_ahead: int, tz: pytz.BaseTzInfo) -> bool:
    """True when target_date starts after the end of the last bookable day"""
    last_day = (now.astimezone(tz) + timedelta(days=max_days_ahead)).date()
    return start_of_day(target_date, tz) > end_of_day(last_day, tz)


def iter_candidates(window: TimeWindow, duration: int) -> Iterator[Tuple[datetime, datetime]]:
    length = timedelta(minutes=duration)
    step = timedelta(minutes=step_minutes(duration))
    cursor = window.start
    while cursor + length <= window.end:
        yield cursor, cursor + length
        cursor += step


def generate_slot_starts(
        windows: Iterable[TimeWindow],
        config: EventTypeConfig,
        now: datetime,
        is_available: AvailabilityPredicate
) -> List[datetime]:
    """
    Accepted start instants, chronological within each window, windows in
    the order given. The horizon check is the caller's job (see generate_slots).
    """
    earliest = now + timedelta(minutes=config.min_notice)
    starts = []
    for window in windows:
        for slot_start, slot_end in iter_candidates(window, config.duration):
            if slot_start <= earliest:
                continue
            if is_available(slot_start, slot_end):
                starts.append(slot_start)
    return starts


def generate_slots(
        target_date: date,
        windows: Iterable[TimeWindow],
        config: EventTypeConfig,
        now: datetime,
        is_available: AvailabilityPredicate,
        tz: pytz.BaseTzInfo
) -> List[str]:
    """Bookable "HH:MM" start times of target_date in tz"""
    if is_beyond_horizon(target_date, now, config.max_days_ahead, tz):
        return []
    return [format_hhmm(s, tz) for s in generate_slot_starts(windows, config, now, is_available)]
