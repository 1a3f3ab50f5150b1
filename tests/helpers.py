"""
Helper utilities for creating test data.

Intervals are built from instant strings and raw records are built the
way ``timew export`` prints them, so tests read like the data they model.
"""

from typing import Any

from timew_import.intervals import Interval
from timew_import.timebasis import parse_instant


def interval(start: str, end: str | None = None, label: str | None = None, **kwargs: Any) -> Interval:
    """Build an Interval from instant strings."""
    return Interval(
        start=parse_instant(start),
        end=parse_instant(end) if end else None,
        label=label,
        **kwargs,
    )


def timew_entry(
    start: str, end: str | None = None, tags: list[str] | None = None, **extra: Any
) -> dict[str, Any]:
    """Build a raw export record."""
    entry: dict[str, Any] = {"start": start}
    if end is not None:
        entry["end"] = end
    if tags is not None:
        entry["tags"] = tags
    entry.update(extra)
    return entry


class FakeSource:
    """Stands in for TimewSource, returning canned records."""

    def __init__(self, records: list[dict[str, Any]] | None = None) -> None:
        self.records = records or []
        self.calls: list[tuple] = []

    def export(self, first_day=None, last_day=None, offset=0) -> list[dict[str, Any]]:
        self.calls.append((first_day, last_day, offset))
        return list(self.records)
