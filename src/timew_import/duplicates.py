"""Duplicate detection between an incoming batch and stored intervals.

Business rule: a batch is only written when none of its intervals
overlaps an interval already stored with a start inside the checked range.
The guard only decides; the caller performs the insert afterwards, inside
the same store transaction.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from .errors import OverlapBlockedError
from .intervals import Interval, OverlapRecord, classify, overlaps
from .store import IntervalStore
from .timebasis import format_instant, parse_instant, to_local

logger = logging.getLogger(__name__)

UNLABELLED = "(untagged)"
REMEDIATION = (
    "Please resolve conflicts before proceeding. Consider using a different date range "
    "or removing conflicting existing entries."
)


@dataclass
class OverlapReport:
    """Result of checking a batch against stored intervals.

    Attributes:
        overlaps: One record per conflicting (candidate, stored) pair
        candidate_count: Number of intervals in the checked batch
        existing_count: Number of stored intervals in the range (only
            filled by overlap_details)
    """

    overlaps: list[OverlapRecord] = field(default_factory=list)
    candidate_count: int = 0
    existing_count: int | None = None

    @property
    def has_overlap(self) -> bool:
        return len(self.overlaps) > 0


def validate_range(start: str | datetime, end: str | datetime) -> tuple[datetime, datetime]:
    """Parse a UTC range, requiring start <= end."""
    start = parse_instant(start)
    end = parse_instant(end)
    if start > end:
        raise ValueError(
            f"Start {format_instant(start)} must be before or equal to end {format_instant(end)}"
        )
    return start, end


def exists_in_range(store: IntervalStore, start: str | datetime, end: str | datetime) -> bool:
    """Check whether the store holds any interval starting in [start, end]."""
    start, end = validate_range(start, end)
    return store.count(start, end) > 0


def _same_span(a: Interval, b: Interval) -> bool:
    return a.start == b.start and a.end == b.end


def detect_overlaps(
    store: IntervalStore,
    start: str | datetime,
    end: str | datetime,
    candidates: list[Interval],
) -> OverlapReport:
    """
    Compare every candidate with every stored interval starting in the range.

    Candidates are not compared with each other. Records come out in
    candidate order, then stored-interval start order.
    """
    start, end = validate_range(start, end)
    report = OverlapReport(candidate_count=len(candidates))
    if not candidates:
        return report

    existing_intervals = store.query(start, end)
    for candidate in candidates:
        for existing in existing_intervals:
            # Identical zero-length intervals never overlap by the strict rule
            if overlaps(candidate, existing) or _same_span(candidate, existing):
                report.overlaps.append(
                    OverlapRecord(
                        candidate=candidate,
                        existing=existing,
                        kind=classify(candidate, existing),
                    )
                )

    logger.debug(
        f"Checked {len(candidates)} candidates against {len(existing_intervals)} stored intervals: "
        f"{len(report.overlaps)} overlaps",
        extra={"date_range": f"{format_instant(start)} - {format_instant(end)}"},
    )
    return report


def overlap_details(
    store: IntervalStore,
    start: str | datetime,
    end: str | datetime,
    candidates: list[Interval],
) -> OverlapReport:
    """Like detect_overlaps, plus the number of stored intervals in the range."""
    report = detect_overlaps(store, start, end, candidates)
    start, end = validate_range(start, end)
    report.existing_count = store.count(start, end)
    return report


def _window(interval: Interval, offset: int) -> str:
    start_str = to_local(interval.start, offset).strftime("%H:%M")
    end_str = to_local(interval.end, offset).strftime("%H:%M") if interval.end else "ongoing"
    return f"{start_str}-{end_str}"


def format_overlap_error(overlaps: list[OverlapRecord], candidate_count: int, offset: int) -> str:
    """Build the user-facing message for a blocked insertion.

    Times are shown as local wall-clock HH:MM under ``offset``.
    """
    overlap_count = len(overlaps)
    plural = "s" if overlap_count > 1 else ""
    entries_word = "entries" if candidate_count > 1 else "entry"

    lines = [
        f"Insertion blocked: {overlap_count} overlap{plural} detected between "
        f"{candidate_count} new {entries_word} and existing entries.",
        "",
        "Conflicts:",
    ]
    for i, record in enumerate(overlaps, start=1):
        lines.append(
            f'{i}. New entry "{record.candidate.label or UNLABELLED}" ({_window(record.candidate, offset)}) '
            f'conflicts with existing "{record.existing.label or UNLABELLED}" ({_window(record.existing, offset)})'
        )
    lines.append("")
    lines.append(REMEDIATION)
    return "\n".join(lines)


def admit(
    store: IntervalStore,
    start: str | datetime,
    end: str | datetime,
    candidates: list[Interval],
    offset: int = 0,
) -> None:
    """
    Allow or block a batch as a whole.

    An empty range is admitted without loading anything. Otherwise any
    overlap blocks the entire batch.

    Raises:
        OverlapBlockedError: If any candidate overlaps a stored interval
        ValueError: If start > end
    """
    if not exists_in_range(store, start, end):
        logger.debug("No stored intervals in range, batch admitted")
        return

    report = detect_overlaps(store, start, end, candidates)
    if report.has_overlap:
        message = format_overlap_error(report.overlaps, len(candidates), offset)
        logger.warning(f"Insertion blocked: {len(report.overlaps)} overlaps detected")
        raise OverlapBlockedError(message, overlaps=report.overlaps, candidate_count=len(candidates))
