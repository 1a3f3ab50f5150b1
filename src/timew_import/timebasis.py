"""Conversions between UTC instants and a fixed local offset.

An instant is always a timezone-aware ``datetime`` in UTC. A local offset
is a plain ``int`` number of minutes east of UTC (``+480`` for UTC+8).
The offset is constant: no daylight saving adjustment is ever applied,
so a fixed ``datetime.timezone`` is used rather than a zoneinfo zone.
"""

import re
from datetime import UTC, date, datetime, timedelta, timezone

from .errors import FormatError

# Timewarrior's export format, e.g. 20260114T020000Z
TIMEW_COMPACT_FORMAT = "%Y%m%dT%H%M%SZ"
_TIMEW_COMPACT_RE = re.compile(r"^\d{8}T\d{6}Z$")
_ISO_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})?$"
)
_OFFSET_HHMM_RE = re.compile(r"^([+-])(\d{2}):?(\d{2})$")
_OFFSET_MINUTES_RE = re.compile(r"^[+-]?\d+$")

# Real-world UTC offsets range from -12:00 to +14:00
MAX_OFFSET_MINUTES = 14 * 60


def parse_instant(value: str | datetime) -> datetime:
    """
    Parse an instant into a timezone-aware UTC datetime.

    Supports:
    - Timewarrior compact format: "20260114T020000Z"
    - ISO format with Z or numeric offset: "2026-01-14T02:00:00Z", "2026-01-14T10:00:00+08:00"
    - ISO format without zone (interpreted as UTC): "2026-01-14T02:00:00"
    - datetime objects (naive ones are interpreted as UTC)

    Raises:
        FormatError: If the value is not a recognised instant
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    if not isinstance(value, str) or not value:
        raise FormatError(f"Invalid timestamp format: {value!r}", value=value)

    try:
        if _TIMEW_COMPACT_RE.match(value):
            return datetime.strptime(value, TIMEW_COMPACT_FORMAT).replace(tzinfo=UTC)
        if _ISO_RE.match(value):
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed.astimezone(UTC)
    except ValueError as e:
        # Matches the pattern but names an impossible date, e.g. month 13
        raise FormatError(f"Invalid timestamp format: {value!r}", value=value) from e

    raise FormatError(f"Invalid timestamp format: {value!r}", value=value)


def format_instant(instant: str | datetime) -> str:
    """Serialize an instant as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    The output is fixed width, so string order equals time order. Only
    millisecond precision survives: microseconds below that are truncated.
    """
    instant = parse_instant(instant)
    millis = instant.microsecond // 1000
    return f"{instant.strftime('%Y-%m-%dT%H:%M:%S')}.{millis:03d}Z"


def parse_offset(value: int | str) -> int:
    """
    Parse a fixed local offset into minutes east of UTC.

    Accepts an int (minutes), "+08:00", "-0530", "+480" or "480".

    Raises:
        FormatError: If the value is unparsable or outside +-14:00
    """
    if isinstance(value, bool):
        raise FormatError(f"Invalid UTC offset: {value!r}", value=value)

    if isinstance(value, int):
        minutes = value
    elif isinstance(value, str):
        text = value.strip()
        match = _OFFSET_HHMM_RE.match(text)
        if match:
            sign = -1 if match.group(1) == "-" else 1
            minutes = sign * (int(match.group(2)) * 60 + int(match.group(3)))
        elif _OFFSET_MINUTES_RE.match(text):
            minutes = int(text)
        else:
            raise FormatError(f"Invalid UTC offset: {value!r}", value=value)
    else:
        raise FormatError(f"Invalid UTC offset: {value!r}", value=value)

    if abs(minutes) > MAX_OFFSET_MINUTES:
        raise FormatError(f"UTC offset out of range: {value!r}", value=value)
    return minutes


def format_offset(offset: int) -> str:
    """Format an offset in minutes as ``+HH:MM``."""
    sign = "-" if offset < 0 else "+"
    hours, minutes = divmod(abs(offset), 60)
    return f"{sign}{hours:02d}:{minutes:02d}"


def offset_tzinfo(offset: int) -> timezone:
    """Return a fixed tzinfo for the offset (never DST-aware)."""
    return timezone(timedelta(minutes=offset))


def to_local(instant: str | datetime, offset: int) -> datetime:
    """Shift a UTC instant by ``offset`` minutes.

    The result carries the fixed offset as its tzinfo, so its wall-clock
    fields are the local time and it still compares equal to the instant.
    """
    return parse_instant(instant).astimezone(offset_tzinfo(offset))


def local_calendar_date(local_ts: str | datetime) -> date:
    """Extract the calendar date of a local timestamp.

    String input keeps its own offset (no conversion to UTC), so
    "2024-01-16T02:00:00+08:00" yields 2024-01-16.
    """
    if isinstance(local_ts, datetime):
        return local_ts.date()
    if not isinstance(local_ts, str) or not _ISO_RE.match(local_ts):
        raise FormatError(f"Invalid local timestamp format: {local_ts!r}", value=local_ts)
    try:
        return datetime.fromisoformat(local_ts.replace("Z", "+00:00")).date()
    except ValueError as e:
        raise FormatError(
            f"Invalid local timestamp format: {local_ts!r}", value=local_ts
        ) from e


def format_local(instant: str | datetime, offset: int) -> str:
    """Format an instant as local wall-clock time with its offset."""
    return to_local(instant, offset).strftime("%Y-%m-%dT%H:%M:%S") + format_offset(offset)


def utc_now() -> datetime:
    """Default clock. Core functions take ``now`` as a parameter instead."""
    return datetime.now(UTC)
