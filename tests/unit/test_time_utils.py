"""Tests for timezone helpers and the correlation-id log filter."""

import logging
from datetime import date, datetime, time, timezone

import pytz

from app.core.middleware import correlation_id_var
from app.utils.my_logging import CorrelationIdFilter
from app.utils.time_utils import end_of_day, ensure_utc, format_hhmm, get_tz, localize, start_of_day


class TestTimezones:

    def test_unknown_timezone_falls_back_to_utc(self):
        assert get_tz("Mars/Olympus_Mons") is pytz.UTC

    def test_localize_applies_dst_offset(self):
        tz = pytz.timezone("America/New_York")

        winter = localize(date(2026, 1, 5), time(9, 0), tz)
        summer = localize(date(2026, 7, 6), time(9, 0), tz)

        assert winter.utcoffset().total_seconds() == -5 * 3600
        assert summer.utcoffset().total_seconds() == -4 * 3600

    def test_day_bounds(self):
        start = start_of_day(date(2026, 3, 2), pytz.UTC)
        end = end_of_day(date(2026, 3, 2), pytz.UTC)

        assert start.time() == time.min
        assert end.time() == time.max

    def test_ensure_utc_naive_value(self):
        value = ensure_utc(datetime(2026, 3, 2, 9, 0))

        assert value.tzinfo == timezone.utc
        assert value.hour == 9

    def test_ensure_utc_converts(self):
        value = ensure_utc(pytz.timezone("Asia/Tokyo").localize(datetime(2026, 3, 2, 9, 0)))

        assert value.hour == 0

    def test_format_hhmm(self):
        assert format_hhmm(datetime(2026, 3, 2, 14, 5, tzinfo=timezone.utc), pytz.timezone("Europe/Berlin")) == "15:05"


class TestCorrelationIdFilter:

    def test_default_placeholder(self):
        record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)

        assert CorrelationIdFilter().filter(record)
        assert record.correlation_id == "-"

    def test_current_request_id(self):
        token = correlation_id_var.set("req-42")
        try:
            record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
            CorrelationIdFilter().filter(record)
        finally:
            correlation_id_var.reset(token)

        assert record.correlation_id == "req-42"
