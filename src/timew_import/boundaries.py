"""Local calendar days expressed as UTC instant ranges.

A local day under offset ``o`` starts at local midnight, which is the UTC
instant ``midnight - o``, and ends at local 23:59:59.999. Consecutive days
tile the UTC timeline: ``boundaries_for(d).end + 1ms == boundaries_for(d + 1).start``.
"""

import re
from collections import defaultdict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta

from .errors import FormatError
from .timebasis import format_local, local_calendar_date, parse_instant, to_local

ONE_MILLISECOND = timedelta(milliseconds=1)
_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DayBoundary:
    """UTC instant range covering exactly one local calendar day.

    Attributes:
        day: The local calendar date
        offset: Local offset in minutes
        start: UTC instant of local 00:00:00.000
        end: UTC instant of local 23:59:59.999
    """

    day: date
    offset: int
    start: datetime
    end: datetime

    def local_start(self) -> str:
        return format_local(self.start, self.offset)

    def local_end(self) -> str:
        return format_local(self.end, self.offset)


def parse_calendar_date(value: str | date) -> date:
    """Parse a ``YYYY-MM-DD`` string, rejecting impossible dates like 2024-02-30."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value):
        raise FormatError(f"Invalid date format. Expected YYYY-MM-DD: {value!r}", value=value)
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise FormatError(
            f"Invalid date format. Expected YYYY-MM-DD: {value!r}", value=value
        ) from e


def boundaries_for(day: str | date, offset: int) -> DayBoundary:
    """Return the UTC range spanned by a local calendar day."""
    day = parse_calendar_date(day)
    local_midnight = datetime(day.year, day.month, day.day)
    start = (local_midnight - timedelta(minutes=offset)).replace(tzinfo=UTC)
    end = start + timedelta(days=1) - ONE_MILLISECOND
    return DayBoundary(day=day, offset=offset, start=start, end=end)


def calendar_date_of(instant: str | datetime, offset: int) -> date:
    """Return the local calendar date an instant falls on."""
    return local_calendar_date(to_local(instant, offset))


def within_boundary(instant: str | datetime, boundary: DayBoundary) -> bool:
    """Check whether an instant lies in a day boundary, inclusive at both ends."""
    moment = parse_instant(instant)
    return boundary.start <= moment <= boundary.end


def iter_days(first_day: date, last_day: date) -> Iterator[date]:
    """Yield every calendar date from first_day to last_day inclusive."""
    day = first_day
    while day <= last_day:
        yield day
        day += timedelta(days=1)


def range_boundaries(
    first_day: str | date, last_day: str | date, offset: int
) -> tuple[datetime, datetime]:
    """Return the UTC range from the start of first_day to the end of last_day."""
    first_day = parse_calendar_date(first_day)
    last_day = parse_calendar_date(last_day)
    if first_day > last_day:
        raise ValueError(f"Start date {first_day} must be before or equal to end date {last_day}")
    return boundaries_for(first_day, offset).start, boundaries_for(last_day, offset).end


def group_by_local_date(intervals: Iterable, offset: int) -> dict[date, list]:
    """Group intervals by the local date of their start, in chronological order."""
    grouped = defaultdict(list)
    for interval in intervals:
        grouped[calendar_date_of(interval.start, offset)].append(interval)
    return {day: grouped[day] for day in sorted(grouped)}
