"""Tests for local calendar day boundaries."""

from datetime import UTC, date, datetime, timedelta

import pytest

from tests.helpers import interval
from timew_import.boundaries import (
    ONE_MILLISECOND,
    boundaries_for,
    calendar_date_of,
    group_by_local_date,
    iter_days,
    parse_calendar_date,
    range_boundaries,
    within_boundary,
)
from timew_import.errors import FormatError
from timew_import.timebasis import format_instant


class TestParseCalendarDate:
    """Tests for strict YYYY-MM-DD parsing."""

    def test_valid_date(self) -> None:
        assert parse_calendar_date("2024-02-29") == date(2024, 2, 29)

    @pytest.mark.parametrize("value", ["2024-02-30", "2023-02-29", "2024-1-5", "20240105", "", None])
    def test_impossible_or_malformed_dates_raise(self, value) -> None:
        with pytest.raises(FormatError):
            parse_calendar_date(value)

    def test_date_and_datetime_passthrough(self) -> None:
        assert parse_calendar_date(date(2024, 1, 5)) == date(2024, 1, 5)
        assert parse_calendar_date(datetime(2024, 1, 5, 23, 0)) == date(2024, 1, 5)


class TestBoundariesFor:
    """Tests for boundaries_for."""

    def test_utc_plus_eight(self) -> None:
        """Local day 2024-01-15 under UTC+8 starts at 16:00Z the day before."""
        boundary = boundaries_for("2024-01-15", 480)

        assert format_instant(boundary.start) == "2024-01-14T16:00:00.000Z"
        assert format_instant(boundary.end) == "2024-01-15T15:59:59.999Z"
        assert boundary.day == date(2024, 1, 15)

    def test_utc(self) -> None:
        boundary = boundaries_for(date(2024, 1, 15), 0)

        assert boundary.start == datetime(2024, 1, 15, tzinfo=UTC)
        assert boundary.end == datetime(2024, 1, 15, 23, 59, 59, 999000, tzinfo=UTC)

    def test_negative_offset(self) -> None:
        """UTC-5: local midnight is 05:00Z on the same date."""
        boundary = boundaries_for("2024-01-15", -300)

        assert format_instant(boundary.start) == "2024-01-15T05:00:00.000Z"
        assert format_instant(boundary.end) == "2024-01-16T04:59:59.999Z"

    def test_local_representation(self) -> None:
        boundary = boundaries_for("2024-01-15", 480)

        assert boundary.local_start() == "2024-01-15T00:00:00+08:00"
        assert boundary.local_end() == "2024-01-15T23:59:59+08:00"

    @pytest.mark.parametrize("offset", [0, 480, -300, 330, 840, -720])
    @pytest.mark.parametrize(
        "day",
        [
            date(2024, 2, 28),  # leap year, next day is Feb 29
            date(2024, 2, 29),
            date(2023, 2, 28),  # non-leap year, next day is Mar 1
            date(2024, 1, 31),  # month rollover
            date(2024, 12, 31),  # year rollover
        ],
    )
    def test_consecutive_days_tile(self, day, offset) -> None:
        """Each day ends exactly one millisecond before the next one starts."""
        today = boundaries_for(day, offset)
        tomorrow = boundaries_for(day + timedelta(days=1), offset)

        assert today.end + ONE_MILLISECOND == tomorrow.start
        assert today.end - today.start == timedelta(days=1) - ONE_MILLISECOND

    @pytest.mark.parametrize("offset", [0, 480, -300, 330, 840, -720])
    def test_boundaries_map_back_to_their_day(self, offset) -> None:
        """Both ends of a day fall on that day when seen locally."""
        day = date(2024, 2, 29)
        boundary = boundaries_for(day, offset)

        assert calendar_date_of(boundary.start, offset) == day
        assert calendar_date_of(boundary.end, offset) == day
        assert calendar_date_of(boundary.start - ONE_MILLISECOND, offset) == date(2024, 2, 28)
        assert calendar_date_of(boundary.end + ONE_MILLISECOND, offset) == date(2024, 3, 1)

    def test_invalid_day_raises(self) -> None:
        with pytest.raises(FormatError):
            boundaries_for("2024-02-30", 0)


class TestCalendarDateOf:
    """Tests for calendar_date_of."""

    def test_evening_utc_is_next_local_day(self) -> None:
        """18:00Z is already 02:00 the next morning under UTC+8."""
        assert calendar_date_of("2024-01-15T18:00:00Z", 480) == date(2024, 1, 16)

    def test_same_instant_different_offsets(self) -> None:
        instant = "2024-01-15T02:00:00Z"

        assert calendar_date_of(instant, 480) == date(2024, 1, 15)
        assert calendar_date_of(instant, -300) == date(2024, 1, 14)


class TestWithinBoundary:
    """Tests for within_boundary."""

    def test_inclusive_at_both_ends(self) -> None:
        boundary = boundaries_for("2024-01-15", 480)

        assert within_boundary(boundary.start, boundary)
        assert within_boundary(boundary.end, boundary)
        assert within_boundary("2024-01-15T02:00:00Z", boundary)

    def test_outside(self) -> None:
        boundary = boundaries_for("2024-01-15", 480)

        assert not within_boundary(boundary.start - ONE_MILLISECOND, boundary)
        assert not within_boundary(boundary.end + ONE_MILLISECOND, boundary)


class TestRanges:
    """Tests for multi-day ranges."""

    def test_iter_days_inclusive(self) -> None:
        days = list(iter_days(date(2024, 2, 27), date(2024, 3, 1)))
        assert days == [date(2024, 2, 27), date(2024, 2, 28), date(2024, 2, 29), date(2024, 3, 1)]

    def test_iter_days_empty_when_reversed(self) -> None:
        assert list(iter_days(date(2024, 3, 1), date(2024, 2, 27))) == []

    def test_range_boundaries(self) -> None:
        start, end = range_boundaries("2024-01-14", "2024-01-15", 480)

        assert format_instant(start) == "2024-01-13T16:00:00.000Z"
        assert format_instant(end) == "2024-01-15T15:59:59.999Z"

    def test_range_boundaries_reversed_raises(self) -> None:
        with pytest.raises(ValueError):
            range_boundaries("2024-01-15", "2024-01-14", 0)

    def test_group_by_local_date(self) -> None:
        """Intervals are grouped by the local day of their start."""
        late = interval("2024-01-15T17:00:00Z", "2024-01-15T18:00:00Z")  # 01:00 on the 16th
        early = interval("2024-01-15T01:00:00Z", "2024-01-15T02:00:00Z")  # 09:00 on the 15th

        grouped = group_by_local_date([late, early], 480)

        assert list(grouped) == [date(2024, 1, 15), date(2024, 1, 16)]
        assert grouped[date(2024, 1, 15)] == [early]
        assert grouped[date(2024, 1, 16)] == [late]
