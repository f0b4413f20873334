"""
Unit tests for date/time composition.

Tests time normalization, full-day handling, invalid input, and that the
composed instant maps back to the selected day whatever the host timezone.
"""

import os
import time
from datetime import date, datetime, timezone

import pytest
from freezegun import freeze_time

from schoolcal.exceptions import InvalidTimeError, ValidationError
from schoolcal.time_compositor import (
    compose,
    local_day_of,
    local_today,
    normalize_time,
    parse_local_date,
    upcoming_window,
)


@pytest.fixture
def host_timezone(monkeypatch):
    """
    Switch the process timezone for the duration of a test.

    Returns:
        Function taking a TZ string
    """
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")

    def switch(tz: str) -> None:
        monkeypatch.setenv("TZ", tz)
        time.tzset()

    yield switch
    monkeypatch.undo()
    time.tzset()


class TestNormalizeTime:
    """Tests for clock time normalization."""

    def test_hh_mm_gets_seconds(self):
        assert normalize_time("09:30") == "09:30:00"

    def test_hh_mm_ss_kept(self):
        assert normalize_time("17:45:10") == "17:45:10"

    def test_bare_hour(self):
        assert normalize_time("9") == "09:00:00"

    def test_single_digit_parts_are_padded(self):
        assert normalize_time("7:5") == "07:05:00"

    @pytest.mark.parametrize("value", ["24:00", "12:60", "ab:cd", "10:00:61", "1:2:3:4"])
    def test_out_of_range_or_malformed(self, value):
        with pytest.raises(InvalidTimeError):
            normalize_time(value)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing(self, value):
        with pytest.raises(InvalidTimeError) as exc_info:
            normalize_time(value, field="start_time")
        assert exc_info.value.field == "start_time"


class TestParseLocalDate:
    """Tests for calendar date parsing."""

    def test_date_passthrough(self):
        assert parse_local_date(date(2025, 8, 29)) == date(2025, 8, 29)

    def test_datetime_reduced_to_date(self):
        assert parse_local_date(datetime(2025, 8, 29, 23, 0)) == date(2025, 8, 29)

    def test_iso_string(self):
        assert parse_local_date("2025-08-29") == date(2025, 8, 29)

    def test_february_30_rejected(self):
        with pytest.raises(InvalidTimeError) as exc_info:
            parse_local_date("2025-02-30")
        assert exc_info.value.field == "event_date"

    def test_garbage_rejected(self):
        with pytest.raises(InvalidTimeError):
            parse_local_date("29/08/2025")


class TestCompose:
    """Tests for compose()."""

    def test_timed_event(self):
        result = compose(date(2025, 8, 29), "09:00", "10:30")

        assert result.start_time == "09:00:00"
        assert result.end_time == "10:30:00"
        assert result.wall_clock == datetime(2025, 8, 29, 9, 0)
        # 09:00 IST is 03:30 UTC
        assert result.event_date_utc == datetime(2025, 8, 29, 3, 30, tzinfo=timezone.utc)
        assert result.event_date_iso == "2025-08-29T03:30:00.000Z"

    def test_full_day_ignores_times(self):
        result = compose("2025-08-29", "14:00", "09:00", is_full_day=True)

        assert result.start_time == "00:00:00"
        assert result.end_time == "23:59:59"
        assert local_day_of(result.event_date_utc) == date(2025, 8, 29)

    def test_full_day_without_times(self):
        result = compose("2025-08-29", is_full_day=True)

        assert (result.start_time, result.end_time) == ("00:00:00", "23:59:59")

    def test_missing_start_time(self):
        with pytest.raises(InvalidTimeError) as exc_info:
            compose("2025-08-29", None, "10:00")
        assert exc_info.value.field == "start_time"

    def test_missing_end_time(self):
        with pytest.raises(InvalidTimeError):
            compose("2025-08-29", "09:00", None)

    def test_end_before_start(self):
        with pytest.raises(InvalidTimeError) as exc_info:
            compose("2025-08-29", "12:00", "11:59")
        assert exc_info.value.field == "end_time"

    def test_equal_start_and_end_allowed(self):
        result = compose("2025-08-29", "12:00", "12:00")
        assert result.start_time == result.end_time == "12:00:00"

    def test_invalid_date(self):
        with pytest.raises(InvalidTimeError):
            compose("2025-02-30", "09:00", "10:00")

    def test_invalid_time_is_a_validation_error(self):
        with pytest.raises(ValidationError):
            compose("2025-08-29", "25:00", "26:00")

    def test_unknown_timezone(self):
        with pytest.raises(InvalidTimeError):
            compose("2025-08-29", "09:00", "10:00", tz_name="Mars/Olympus_Mons")


class TestTimezoneStability:
    """The composed instant must map back to the selected local day."""

    @pytest.mark.parametrize("host_tz", ["UTC", "America/Los_Angeles", "Asia/Tokyo", "Pacific/Kiritimati"])
    def test_round_trip_independent_of_host(self, host_timezone, host_tz):
        host_timezone(host_tz)

        result = compose(date(2025, 8, 29), "09:00", "10:00")

        assert local_day_of(result.event_date_utc, "Asia/Kolkata").isoformat() == "2025-08-29"
        assert result.event_date_iso == "2025-08-29T03:30:00.000Z"

    @pytest.mark.parametrize("start", ["00:00", "05:29", "05:30", "18:29", "18:30", "23:30"])
    def test_round_trip_for_any_time_of_day(self, start):
        result = compose(date(2025, 12, 31), start, "23:59")

        assert local_day_of(result.event_date_utc) == date(2025, 12, 31)

    def test_round_trip_across_many_days(self):
        day = date(2024, 1, 1)
        for offset in range(0, 366, 7):
            local = date.fromordinal(day.toordinal() + offset)
            result = compose(local, "21:15", "22:00")
            assert local_day_of(result.event_date_utc) == local


class TestLocalDays:
    """Tests for deployment-timezone day helpers."""

    def test_local_day_of_naive_is_utc(self):
        # 20:00 UTC is 01:30 IST the next day
        assert local_day_of(datetime(2025, 8, 29, 20, 0)) == date(2025, 8, 30)

    @freeze_time("2025-08-29 19:00:00")
    def test_local_today_uses_deployment_zone(self):
        assert local_today() == date(2025, 8, 30)
        assert local_today("UTC") == date(2025, 8, 29)

    def test_local_today_with_explicit_now(self):
        now = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)
        assert local_today(now=now) == date(2025, 1, 1)

    @freeze_time("2025-08-29 06:00:00")
    def test_upcoming_window(self):
        assert upcoming_window() == (date(2025, 8, 29), date(2025, 9, 5))
        assert upcoming_window(days=1) == (date(2025, 8, 29), date(2025, 8, 30))
