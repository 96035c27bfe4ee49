"""Tests for fixed-offset day and week windows."""

from datetime import date, datetime, timedelta, timezone

import pytest

from goalday.alignment.errors import InvalidDateError
from goalday.alignment.window import day_window, local_day, parse_when, week_start, week_window


class TestDayWindow:
    def test_date_maps_to_ist_midnight(self):
        w = day_window(date(2026, 2, 15))
        assert w.day == date(2026, 2, 15)
        assert w.start == datetime(2026, 2, 14, 18, 30, tzinfo=timezone.utc)
        assert w.end == datetime(2026, 2, 15, 18, 30, tzinfo=timezone.utc)

    def test_window_is_one_day(self):
        w = day_window(date(2026, 2, 15))
        assert w.end - w.start == timedelta(days=1)

    def test_late_utc_evening_is_next_local_day(self):
        w = day_window(datetime(2026, 2, 15, 20, 0, tzinfo=timezone.utc))
        assert w.day == date(2026, 2, 16)

    def test_naive_datetime_treated_as_utc(self):
        naive = datetime(2026, 2, 15, 20, 0)
        aware = datetime(2026, 2, 15, 20, 0, tzinfo=timezone.utc)
        assert day_window(naive) == day_window(aware)

    def test_same_calendar_date_same_window_regardless_of_input_offset(self):
        a = day_window(datetime(2026, 2, 15, 10, 0, tzinfo=timezone(timedelta(hours=5, minutes=30))))
        b = day_window(datetime(2026, 2, 15, 0, 0, tzinfo=timezone(timedelta(hours=-2))))
        assert a.day == b.day == date(2026, 2, 15)
        assert a == b

    def test_custom_offset(self):
        assert local_day(datetime(2026, 2, 15, 23, 0, tzinfo=timezone.utc), offset_minutes=0) == date(2026, 2, 15)

    def test_default_is_now(self):
        w = day_window()
        assert w.start <= datetime.now(timezone.utc) < w.end


class TestWeekWindow:
    def test_week_start_midweek(self):
        # 2026-02-18 is a Wednesday
        assert week_start(date(2026, 2, 18)) == date(2026, 2, 15)

    def test_week_start_sunday_is_itself(self):
        assert week_start(date(2026, 2, 15)) == date(2026, 2, 15)

    def test_week_start_saturday(self):
        assert week_start(date(2026, 2, 21)) == date(2026, 2, 15)

    def test_week_window_bounds(self):
        w = week_window(date(2026, 2, 18))
        assert w.day == date(2026, 2, 15)
        assert w.start == datetime(2026, 2, 14, 18, 30, tzinfo=timezone.utc)
        assert w.end - w.start == timedelta(days=7)


class TestParseWhen:
    def test_date(self):
        assert parse_when("2026-02-15") == date(2026, 2, 15)

    def test_datetime_with_z(self):
        assert parse_when("2026-02-15T10:00:00Z") == datetime(2026, 2, 15, 10, 0, tzinfo=timezone.utc)

    def test_empty_means_now(self):
        assert parse_when(None) is None
        assert parse_when("  ") is None

    def test_garbage_rejected(self):
        with pytest.raises(InvalidDateError):
            parse_when("not-a-date")

    def test_impossible_date_rejected(self):
        with pytest.raises(InvalidDateError):
            parse_when("2026-02-30")
