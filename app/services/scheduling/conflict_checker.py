"""
Conflict Checker

Decides whether a candidate slot collides with a host's busy time. Buffers
widen only the candidate; stored bookings and external busy periods are
compared as-is with a half-open overlap test, so touching endpoints never
conflict.
"""
from datetime import datetime, timedelta
from typing import Iterable, List

from app.schemas.availability import BusyInterval


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and a_end > b_start


def buffered_window(
        slot_start: datetime,
        slot_end: datetime,
        buffer_before: int = 0,
        buffer_after: int = 0
):
    return (
        slot_start - timedelta(minutes=buffer_before),
        slot_end + timedelta(minutes=buffer_after),
    )


def has_conflict(
        slot_start: datetime,
        slot_end: datetime,
        busy: Iterable[BusyInterval],
        buffer_before: int = 0,
        buffer_after: int = 0
) -> bool:
    buffered_start, buffered_end = buffered_window(slot_start, slot_end, buffer_before, buffer_after)
    return any(intervals_overlap(buffered_start, buffered_end, b.start, b.end) for b in busy)


class ConflictChecker:
    """
    Busy context of one host for one request.

    bookings are the host's non-cancelled bookings, external the busy periods
    reported by their connected calendar (empty when the lookup failed).
    """

    def __init__(self, bookings: Iterable[BusyInterval] = (), external: Iterable[BusyInterval] = ()):
        self.bookings: List[BusyInterval] = list(bookings)
        self.external: List[BusyInterval] = list(external)

    def is_free(
            self,
            slot_start: datetime,
            slot_end: datetime,
            buffer_before: int = 0,
            buffer_after: int = 0
    ) -> bool:
        if has_conflict(slot_start, slot_end, self.bookings, buffer_before, buffer_after):
            return False
        return not has_conflict(slot_start, slot_end, self.external, buffer_before, buffer_after)
