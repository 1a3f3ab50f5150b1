"""Shared utility functions for timew-import."""

import re
from datetime import date, datetime, timedelta

import dateparser

from .boundaries import calendar_date_of, parse_calendar_date
from .errors import FormatError
from .timebasis import to_local

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_date_arg(text: str, offset: int, now: datetime) -> date:
    """
    Parse a local calendar date given on the command line.

    Supports:
    - Strict dates: "2026-01-14" (impossible dates like "2026-02-30" are rejected)
    - Relative dates: "yesterday", "3 days ago", "last monday"

    Relative dates are resolved against ``now`` seen under the local offset,
    not against the machine's timezone.

    Raises:
        FormatError: If the text cannot be parsed as a date
    """
    text = text.strip()
    if _DATE_RE.match(text):
        return parse_calendar_date(text)

    local_now = to_local(now, offset).replace(tzinfo=None)
    parsed = dateparser.parse(
        text,
        settings={
            "RELATIVE_BASE": local_now,
            "PREFER_DATES_FROM": "past",
            "RETURN_AS_TIMEZONE_AWARE": False,
        },
    )
    if parsed is None:
        raise FormatError(f"Unable to parse date: {text!r}", value=text)
    return parsed.date()


def local_today(offset: int, now: datetime) -> date:
    """The local calendar date of ``now``."""
    return calendar_date_of(now, offset)


def local_yesterday(offset: int, now: datetime) -> date:
    return local_today(offset, now) - timedelta(days=1)
