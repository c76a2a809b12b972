"""Tests for app-day boundary arithmetic."""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from daily_trainer.core.day_boundary import (
    app_day_boundary,
    day_start,
    format_hms,
    ms_to_next_reset,
    ms_until,
    next_day_start,
    plan_date_key,
    split_hms,
)
from daily_trainer.gateways import SystemClock

TZ = timezone(timedelta(hours=2))


def local(day, hour, minute=0):
    return datetime(2024, 5, day, hour, minute, tzinfo=TZ)


class TestDayStart:
    """Tests for day_start and next_day_start."""

    def test_before_offset_belongs_to_previous_day(self):
        assert day_start(local(13, 3), offset_hours=5) == local(12, 5)

    def test_after_offset_belongs_to_same_day(self):
        assert day_start(local(13, 6), offset_hours=5) == local(13, 5)

    def test_exactly_at_boundary(self):
        assert day_start(local(13, 5), offset_hours=5) == local(13, 5)

    @pytest.mark.parametrize("hour", [3, 6])
    def test_next_day_start_is_one_day_later(self, hour):
        now = local(13, hour)
        assert next_day_start(now, 5) == day_start(now, 5) + timedelta(hours=24)

    def test_zero_offset_is_midnight(self):
        assert day_start(local(13, 23, 59), 0) == local(13, 0)

    def test_negative_offset(self):
        # Day runs 22:00 -> 22:00
        assert day_start(local(13, 23), offset_hours=-2) == local(13, 22)
        assert day_start(local(13, 21), offset_hours=-2) == local(12, 22)

    def test_large_negative_offset_is_most_recent_boundary(self):
        now = local(13, 10)
        start = day_start(now, offset_hours=-30)
        assert start <= now < start + timedelta(days=1)
        assert start == local(12, 18)

    def test_large_positive_offset(self):
        now = local(13, 10)
        start = day_start(now, offset_hours=30)
        assert start <= now < start + timedelta(days=1)
        assert start == local(13, 6)

    def test_naive_datetime(self):
        assert day_start(datetime(2024, 5, 13, 3), 5) == datetime(2024, 5, 12, 5)


class TestBoundaryHelpers:
    """Tests for boundary helpers."""

    def test_app_day_boundary(self):
        boundary = app_day_boundary(local(13, 3), 5)
        assert boundary.start == local(12, 5)
        assert boundary.next_start == local(13, 5)
        assert boundary.plan_date == "2024-05-12"

    def test_plan_date_key_uses_app_day(self):
        assert plan_date_key(local(13, 3), 5) == "2024-05-12"
        assert plan_date_key(local(13, 6), 5) == "2024-05-13"

    def test_ms_to_next_reset(self):
        assert ms_to_next_reset(local(13, 4, 30), 5) == 30 * 60 * 1000

    def test_ms_until_clamps_past(self):
        assert ms_until(local(13, 1), local(13, 2)) == 0


class TestFormatting:
    """Tests for countdown formatting."""

    def test_format_hms(self):
        assert format_hms(((3 * 60 + 4) * 60 + 5) * 1000) == "03:04:05"

    def test_format_floors(self):
        assert format_hms(1999) == "00:00:01"

    def test_format_clamps_negative(self):
        assert format_hms(-500) == "00:00:00"

    def test_format_over_a_day(self):
        assert format_hms(25 * 3600 * 1000) == "25:00:00"

    def test_split_hms(self):
        assert split_hms(3_723_000) == (1, 2, 3)


class TestDaylightSaving:
    """Boundaries in a zone with DST changes."""

    MADRID = ZoneInfo("Europe/Madrid")

    def test_next_start_is_local_midnight_after_spring_forward(self):
        # Clocks jump from 02:00 to 03:00 on 2024-03-31
        now = datetime(2024, 3, 31, 1, 0, tzinfo=self.MADRID)

        target = next_day_start(now)

        assert target == datetime(2024, 4, 1, 0, 0, tzinfo=self.MADRID)
        assert target.utcoffset() == timedelta(hours=2)

    def test_ms_to_next_reset_counts_real_time(self):
        now = datetime(2024, 3, 31, 1, 0, tzinfo=self.MADRID)
        # 23 wall-clock hours, 22 real ones
        assert ms_to_next_reset(now) == 22 * 3600 * 1000

    def test_fall_back_day_is_25_hours(self):
        now = datetime(2024, 10, 27, 0, 30, tzinfo=self.MADRID)
        assert ms_to_next_reset(now) == (24 * 60 + 30) * 60 * 1000

    def test_system_clock_uses_configured_zone(self):
        now = SystemClock("Europe/Madrid").now()
        assert now.tzinfo == self.MADRID
