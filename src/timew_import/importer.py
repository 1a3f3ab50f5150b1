"""Import workflow: Timewarrior export to interval store.

Steps for one range of local days:

1. export raw records from timew
2. filter_batch (today-exclusion and shape validation)
3. ask for one group type per local day
4. inside one store transaction: admit the batch, then insert it

Group types are collected before the transaction starts, so no lock is
held while waiting for a human.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from .admission import (
    DEFAULT_EARLIEST_DATE,
    DEFAULT_MAX_FUTURE,
    Rejection,
    filter_batch,
)
from .boundaries import calendar_date_of, range_boundaries
from .duplicates import admit
from .intervals import Interval, batch_overlaps
from .store import IntervalStore
from .timebasis import format_instant, format_offset
from .timew_source import TimewSource
from .utils import local_yesterday, parse_date_arg

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    """What an import run did.

    Attributes:
        first_day: First local day of the range
        last_day: Last local day of the range
        exported: Number of raw records returned by timew
        accepted: Number of intervals that passed admission and lie in the range
        rejected: Rejected raw records, in input order
        outside_range: Valid intervals starting outside the range (skipped)
        inserted: Number of intervals written to the store
        group_types: Group type given for each local day
        dry_run: If True, nothing was written
    """

    first_day: date
    last_day: date
    exported: int = 0
    accepted: int = 0
    rejected: list[Rejection] = field(default_factory=list)
    outside_range: int = 0
    inserted: int = 0
    group_types: dict[date, str] = field(default_factory=dict)
    dry_run: bool = False


def resolve_fetch_range(
    dates: list[str],
    earliest: date,
    offset: int,
    now: datetime,
) -> tuple[date, date]:
    """
    Turn fetch arguments into a range of local days.

    - ["all"]: from ``earliest`` to yesterday
    - [DATE]: that single day
    - [DATE, DATE]: that inclusive range

    Raises:
        ValueError: On a wrong number of arguments, a reversed range, or
            when "all" leaves nothing to fetch
        FormatError: If a date cannot be parsed
    """
    if not dates:
        raise ValueError("Missing required arguments for fetch command")
    if len(dates) > 2:
        raise ValueError("Too many arguments for fetch command")

    if len(dates) == 1 and dates[0] == "all":
        first_day, last_day = earliest, local_yesterday(offset, now)
        if first_day > last_day:
            raise ValueError(f"Nothing to fetch: earliest date {earliest} is not before today")
        return first_day, last_day

    first_day = parse_date_arg(dates[0], offset, now)
    last_day = parse_date_arg(dates[1], offset, now) if len(dates) == 2 else first_day
    if first_day > last_day:
        raise ValueError("Start date must be before or equal to end date")
    return first_day, last_day


def collect_group_types(
    candidates: list[Interval], offset: int, ask_group_type: Callable[[date], str]
) -> dict[date, str]:
    """Ask for a group type for every local day that has intervals.

    Raises:
        ValueError: If an answer is empty (the import is cancelled)
    """
    days = sorted({calendar_date_of(candidate.start, offset) for candidate in candidates})
    group_types = {}
    for day in days:
        answer = (ask_group_type(day) or "").strip()
        if not answer:
            raise ValueError(f"Group type is required for {day}. Operation cancelled.")
        group_types[day] = answer
    return group_types


def import_range(
    store: IntervalStore,
    source: TimewSource,
    offset: int,
    now: datetime,
    first_day: date,
    last_day: date,
    ask_group_type: Callable[[date], str],
    earliest: date = DEFAULT_EARLIEST_DATE,
    max_future: timedelta = DEFAULT_MAX_FUTURE,
    dry_run: bool = False,
) -> ImportSummary:
    """
    Import Timewarrior intervals for a range of local days into the store.

    Raises:
        OverlapBlockedError: If the batch overlaps stored intervals (nothing is written)
        SourceError: If timew cannot be run or its output parsed
        ValueError: If a group type answer is empty
    """
    summary = ImportSummary(first_day=first_day, last_day=last_day, dry_run=dry_run)
    range_start, range_end = range_boundaries(first_day, last_day, offset)
    date_range = f"{format_instant(range_start)} - {format_instant(range_end)}"
    logger.info(
        f"Importing {first_day} to {last_day}",
        extra={"date_range": date_range, "offset": format_offset(offset)},
    )

    raws = source.export(first_day, last_day, offset)
    summary.exported = len(raws)

    admission = filter_batch(raws, offset, now, earliest=earliest, max_future=max_future)
    summary.rejected = admission.rejected

    # timew also returns intervals that merely reach into the range
    candidates = [c for c in admission.accepted if range_start <= c.start <= range_end]
    summary.outside_range = len(admission.accepted) - len(candidates)
    if summary.outside_range:
        logger.info(f"Skipping {summary.outside_range} intervals starting outside the range")
    summary.accepted = len(candidates)

    for a, b in batch_overlaps(candidates):
        logger.warning(f"Exported intervals overlap each other: {a!r} and {b!r}")

    if not candidates:
        logger.info("No intervals to import")
        return summary

    summary.group_types = collect_group_types(candidates, offset, ask_group_type)

    with store.transaction() as tx:
        admit(tx, range_start, range_end, candidates, offset)
        if dry_run:
            logger.info(f"Dry run: would insert {len(candidates)} intervals")
        else:
            rows = [
                (candidate, summary.group_types[calendar_date_of(candidate.start, offset)])
                for candidate in candidates
            ]
            summary.inserted = len(tx.insert_many(rows))
            logger.info(f"Inserted {summary.inserted} intervals", extra={"date_range": date_range})

    return summary
