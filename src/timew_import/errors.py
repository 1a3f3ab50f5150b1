"""Exception types for timew-import.

Two channels are kept apart:

- Per-record problems (FormatError, ValidationError) are raised by the
  pure helpers and downgraded to rejection entries by the batch filter.
- Range-level problems (OverlapBlockedError) abort a whole admission.

Store errors (sqlalchemy.exc.*) are never wrapped by this package.
"""

from typing import Any


class TimewImportError(Exception):
    """Base class for errors raised by timew-import itself."""

    pass


class FormatError(TimewImportError, ValueError):
    """Raised when an instant, date or offset cannot be parsed.

    Attributes:
        value: The offending input
        field: Name of the record field the value came from, if known
        index: 1-based record index within a batch, if known
    """

    def __init__(
        self,
        message: str,
        value: Any = None,
        field: str | None = None,
        index: int | None = None,
    ) -> None:
        super().__init__(message)
        self.value = value
        self.field = field
        self.index = index

    def located(self, field: str | None = None, index: int | None = None) -> "FormatError":
        """Return a copy of this error that names the field and record index."""
        field = field or self.field
        index = index if index is not None else self.index
        prefix = f"Entry {index}: " if index is not None else ""
        where = f" in field '{field}'" if field else ""
        return FormatError(
            f"{prefix}Invalid timestamp format{where}: {self.value!r}",
            value=self.value,
            field=field,
            index=index,
        )


class ValidationError(TimewImportError, ValueError):
    """Raised when a single raw record violates shape, range or ordering rules.

    Attributes:
        reason: A RejectionReason value
        field: Offending field name, if any
    """

    def __init__(self, message: str, reason: Any, field: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason
        self.field = field


class OverlapBlockedError(TimewImportError):
    """Raised when a batch overlaps intervals already in the store.

    This is a business-rule rejection. It is never retried automatically;
    the message is meant to be shown to the user verbatim.

    Attributes:
        overlaps: List of OverlapRecord
        candidate_count: Number of intervals in the rejected batch
    """

    def __init__(self, message: str, overlaps: list, candidate_count: int) -> None:
        super().__init__(message)
        self.overlaps = overlaps
        self.candidate_count = candidate_count


class SourceError(TimewImportError, RuntimeError):
    """Raised when the Timewarrior export cannot be run or parsed."""

    pass
