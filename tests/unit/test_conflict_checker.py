"""Tests for buffered half-open conflict detection."""

from datetime import date, datetime, time, timezone

from app.schemas.availability import BusyInterval
from app.services.scheduling.conflict_checker import ConflictChecker, has_conflict, intervals_overlap

DAY = date(2026, 3, 2)


def at(hhmm):
    return datetime.combine(DAY, time.fromisoformat(hhmm), tzinfo=timezone.utc)


def interval(start, end):
    return BusyInterval(start=at(start), end=at(end))


class TestIntervalsOverlap:

    def test_touching_end_does_not_overlap(self):
        assert not intervals_overlap(at("09:30"), at("10:00"), at("10:00"), at("10:30"))

    def test_touching_start_does_not_overlap(self):
        assert not intervals_overlap(at("10:30"), at("11:00"), at("10:00"), at("10:30"))

    def test_partial_overlap(self):
        assert intervals_overlap(at("09:45"), at("10:15"), at("10:00"), at("10:30"))

    def test_containment(self):
        assert intervals_overlap(at("10:05"), at("10:10"), at("10:00"), at("10:30"))


class TestHasConflict:
    """Buffers widen the candidate, never the busy interval."""

    def test_no_busy_time(self):
        assert not has_conflict(at("10:00"), at("10:30"), [])

    def test_buffer_after_reaches_booking(self):
        booking = [interval("10:40", "11:00")]

        assert not has_conflict(at("10:00"), at("10:30"), booking)
        assert has_conflict(at("10:00"), at("10:30"), booking, buffer_after=15)

    def test_buffer_before_reaches_booking(self):
        booking = [interval("09:00", "09:50")]

        assert not has_conflict(at("10:00"), at("10:30"), booking)
        assert has_conflict(at("10:00"), at("10:30"), booking, buffer_before=15)

    def test_buffer_touching_booking_is_free(self):
        booking = [interval("10:45", "11:00")]

        assert not has_conflict(at("10:00"), at("10:30"), booking, buffer_after=15)


class TestConflictChecker:

    def test_free_without_busy_time(self):
        assert ConflictChecker().is_free(at("10:00"), at("10:30"))

    def test_booking_blocks(self):
        checker = ConflictChecker(bookings=[interval("10:00", "10:30")])

        assert not checker.is_free(at("10:15"), at("10:45"))

    def test_external_busy_blocks(self):
        checker = ConflictChecker(external=[interval("10:00", "10:30")])

        assert not checker.is_free(at("10:00"), at("10:30"))
        assert checker.is_free(at("10:30"), at("11:00"))
