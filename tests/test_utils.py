"""Tests for utility functions."""

from datetime import UTC, date, datetime

import pytest

from timew_import.errors import FormatError
from timew_import.utils import local_today, local_yesterday, parse_date_arg

# 2026-01-21 01:00 local under UTC+8, still the 20th in UTC
NOW = datetime(2026, 1, 20, 17, 0, 0, tzinfo=UTC)


class TestParseDateArg:
    """Tests for parse_date_arg."""

    def test_strict_date(self) -> None:
        assert parse_date_arg("2026-01-14", 480, NOW) == date(2026, 1, 14)

    def test_impossible_strict_date_is_not_guessed(self) -> None:
        """A YYYY-MM-DD string is never handed to the fuzzy parser."""
        with pytest.raises(FormatError):
            parse_date_arg("2026-02-30", 480, NOW)

    def test_relative_dates_use_local_today(self) -> None:
        assert parse_date_arg("today", 480, NOW) == date(2026, 1, 21)
        assert parse_date_arg("yesterday", 480, NOW) == date(2026, 1, 20)
        assert parse_date_arg("yesterday", 0, NOW) == date(2026, 1, 19)

    def test_days_ago(self) -> None:
        assert parse_date_arg("3 days ago", 480, NOW) == date(2026, 1, 18)

    def test_unparsable(self) -> None:
        with pytest.raises(FormatError):
            parse_date_arg("xyzzy plugh", 480, NOW)


class TestLocalToday:
    """Tests for local_today and local_yesterday."""

    def test_local_today(self) -> None:
        assert local_today(480, NOW) == date(2026, 1, 21)
        assert local_today(0, NOW) == date(2026, 1, 20)

    def test_local_yesterday_across_month(self) -> None:
        first_of_march = datetime(2024, 3, 1, 12, 0, tzinfo=UTC)
        assert local_yesterday(0, first_of_march) == date(2024, 2, 29)
