"""Validation and filtering of raw Timewarrior export records.

Raw records are the dicts found in ``timew export`` output::

    {"id": 3, "start": "20260114T020000Z", "end": "20260114T030000Z",
     "tags": ["deep-work", "projectx"], "annotation": "..."}

Only validate_shape turns a raw record into an Interval; everything
downstream works on Interval objects. filter_batch never aborts: every
problem with a single record becomes a Rejection, in input order.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any

from .boundaries import boundaries_for, calendar_date_of
from .errors import FormatError, ValidationError
from .intervals import Interval
from .timebasis import parse_instant

logger = logging.getLogger(__name__)

# Oldest local day accepted unless configured otherwise
DEFAULT_EARLIEST_DATE = date(2024, 1, 1)

# Timestamps further in the future than this are rejected as bogus
DEFAULT_MAX_FUTURE = timedelta(days=365)


class RejectionReason(Enum):
    """Why a raw record was not admitted."""

    FILTERED_TODAY = "filtered_today"  # Today's data may still change
    INVALID_SHAPE = "invalid_shape"  # Not an object, missing start, unparsable timestamp
    OUT_OF_RANGE = "out_of_range"  # Outside the accepted historical window
    BAD_ORDER = "bad_order"  # End before start


@dataclass(frozen=True)
class Rejection:
    """A raw record that was not admitted.

    Attributes:
        index: 1-based position in the input batch
        raw: The record as received
        reason: Why it was rejected
        message: Human-readable explanation naming the record and field
    """

    index: int
    raw: Any
    reason: RejectionReason
    message: str


@dataclass
class AdmissionResult:
    """Partition of a batch into admitted intervals and rejections."""

    accepted: list[Interval] = field(default_factory=list)
    rejected: list[Rejection] = field(default_factory=list)

    @property
    def filtered_count(self) -> int:
        return sum(1 for r in self.rejected if r.reason == RejectionReason.FILTERED_TODAY)

    @property
    def invalid_count(self) -> int:
        return len(self.rejected) - self.filtered_count


def is_today_local(instant: str | datetime, offset: int, now: datetime) -> bool:
    """Check whether an instant falls on the same local day as ``now``."""
    return calendar_date_of(instant, offset) == calendar_date_of(now, offset)


def _parse_field(raw: Mapping, name: str, index: int | None) -> datetime:
    try:
        return parse_instant(raw[name])
    except FormatError as e:
        located = e.located(field=name, index=index)
        raise ValidationError(str(located), RejectionReason.INVALID_SHAPE, field=name) from e


def validate_shape(
    raw: Any,
    now: datetime,
    earliest: date = DEFAULT_EARLIEST_DATE,
    max_future: timedelta = DEFAULT_MAX_FUTURE,
    offset: int = 0,
    index: int | None = None,
) -> Interval:
    """
    Turn a raw export record into an Interval.

    Args:
        raw: Record from ``timew export``
        now: Current instant, the reference for the future limit
        earliest: Oldest local day accepted (interpreted under ``offset``)
        max_future: How far past ``now`` a timestamp may lie
        offset: Local offset in minutes
        index: 1-based record index, used in messages

    Raises:
        ValidationError: If the record has no valid start, an unparsable end,
            a timestamp outside the accepted window, or end before start
    """
    prefix = f"Entry {index}: " if index is not None else ""

    if not isinstance(raw, Mapping):
        raise ValidationError(f"{prefix}Entry is not a valid object", RejectionReason.INVALID_SHAPE)
    if not raw.get("start"):
        raise ValidationError(
            f"{prefix}Missing required field: start", RejectionReason.INVALID_SHAPE, field="start"
        )

    start = _parse_field(raw, "start", index)
    end = _parse_field(raw, "end", index) if raw.get("end") else None

    tags = raw.get("tags") or []
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        raise ValidationError(
            f"{prefix}Field 'tags' must be a list of strings",
            RejectionReason.INVALID_SHAPE,
            field="tags",
        )

    lower = boundaries_for(earliest, offset).start
    upper = parse_instant(now) + max_future
    for name, value in (("start", start), ("end", end)):
        if value is not None and not lower <= value <= upper:
            raise ValidationError(
                f"{prefix}Timestamp out of range in field '{name}': {raw[name]!r}",
                RejectionReason.OUT_OF_RANGE,
                field=name,
            )

    if end is not None and end < start:
        raise ValidationError(
            f"{prefix}End time must be after start time", RejectionReason.BAD_ORDER, field="end"
        )

    return Interval(
        start=start,
        end=end,
        label=tags[0] if tags else None,
        tags=tuple(tags),
        annotation=raw.get("annotation"),
        id=raw.get("id"),
    )


def filter_batch(
    raws: list[Any],
    offset: int,
    now: datetime,
    earliest: date = DEFAULT_EARLIEST_DATE,
    max_future: timedelta = DEFAULT_MAX_FUTURE,
) -> AdmissionResult:
    """
    Apply the today-exclusion and shape validation to every record.

    Records starting on the local day of ``now`` are rejected first, as
    that day may still receive edits. Nothing here raises for a single bad
    record; rejections keep input order.
    """
    result = AdmissionResult()

    for index, raw in enumerate(raws, start=1):
        if isinstance(raw, Mapping) and raw.get("start"):
            try:
                if is_today_local(raw["start"], offset, now):
                    result.rejected.append(
                        Rejection(
                            index=index,
                            raw=raw,
                            reason=RejectionReason.FILTERED_TODAY,
                            message=f"Entry {index}: Filtered out (incomplete data from today)",
                        )
                    )
                    continue
            except FormatError:
                # Unparsable start, reported by validate_shape below
                pass

        try:
            result.accepted.append(
                validate_shape(
                    raw, now, earliest=earliest, max_future=max_future, offset=offset, index=index
                )
            )
        except ValidationError as e:
            result.rejected.append(Rejection(index=index, raw=raw, reason=e.reason, message=str(e)))

    for rejection in result.rejected:
        logger.info(
            rejection.message,
            extra={"record_index": rejection.index, "reason": rejection.reason.value},
        )
    logger.debug(
        f"Admitted {len(result.accepted)} of {len(raws)} records "
        f"({result.filtered_count} from today, {result.invalid_count} invalid)"
    )
    return result
