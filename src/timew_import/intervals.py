"""Intervals and the overlap rules between them.

All comparisons happen on UTC instants. An interval with ``end=None`` is
still running ("open") and is treated as extending indefinitely forward.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from itertools import combinations
from typing import Any


@dataclass(frozen=True)
class Interval:
    """A tracked time interval.

    Attributes:
        start: UTC start instant
        end: UTC end instant, or None while the interval is still running
        label: Session name (first Timewarrior tag)
        tags: All Timewarrior tags
        annotation: Free-text annotation
        id: Source or store identifier

    Only start and end take part in overlap logic; the rest is carried along.
    """

    start: datetime
    end: datetime | None = None
    label: str | None = None
    tags: tuple[str, ...] = ()
    annotation: str | None = None
    id: Any = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.end is not None and self.end < self.start:
            raise ValueError(f"Interval end {self.end} is before start {self.start}")

    @property
    def is_open(self) -> bool:
        return self.end is None

    def duration(self) -> timedelta | None:
        """Duration of a closed interval, None while it is running."""
        if self.end is None:
            return None
        return self.end - self.start

    def __repr__(self) -> str:
        end_str = self.end.isoformat() if self.end else "ongoing"
        return f"Interval({self.start.isoformat()} - {end_str}, label={self.label!r})"


class OverlapKind(Enum):
    """How a candidate interval conflicts with a stored one."""

    TIME_OVERLAP = "time_overlap"  # Both intervals are closed
    ONGOING_CONFLICT = "ongoing_conflict"  # At least one interval is still running


@dataclass(frozen=True)
class OverlapRecord:
    """A candidate interval paired with the stored interval it conflicts with."""

    candidate: Interval
    existing: Interval
    kind: OverlapKind


def overlaps(a: Interval, b: Interval) -> bool:
    """
    Check whether two intervals share a wall-clock moment.

    - Both closed: overlap iff a.start < b.end and b.start < a.end.
      Intervals that only touch at an endpoint do not overlap.
    - One open: the open interval runs forever, so the closed one conflicts
      iff it starts at or after the open one's start, whatever its end.
    - Both open: always a conflict. Only one interval can be running at a
      time, so two running intervals can never both be right.
    """
    if a.end is not None and b.end is not None:
        return a.start < b.end and b.start < a.end

    if a.end is None and b.end is None:
        return True

    running, closed = (a, b) if a.end is None else (b, a)
    return closed.start >= running.start


def classify(a: Interval, b: Interval) -> OverlapKind:
    """Classify a conflicting pair by whether either side is still running."""
    if a.is_open or b.is_open:
        return OverlapKind.ONGOING_CONFLICT
    return OverlapKind.TIME_OVERLAP


def batch_overlaps(candidates: list[Interval]) -> list[tuple[Interval, Interval]]:
    """Return pairs of intervals within one batch that overlap each other."""
    return [(a, b) for a, b in combinations(candidates, 2) if overlaps(a, b)]
