"""Abstract interface for interval stores.

The duplicate guard only reads from a store; the import workflow writes
to it afterwards. Stores are passed explicitly to every operation, never
held in module-level state, so tests can substitute MemoryStore.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from .intervals import Interval


class IntervalStore(ABC):
    """Abstract base class for persisted interval storage."""

    @abstractmethod
    def query(self, start: datetime, end: datetime) -> list[Interval]:
        """Get stored intervals whose start lies in [start, end].

        Args:
            start: Range start (UTC, inclusive)
            end: Range end (UTC, inclusive)

        Returns:
            Intervals ordered by start, with id and label attached
        """
        pass

    @abstractmethod
    def count(self, start: datetime, end: datetime) -> int:
        """Count stored intervals whose start lies in [start, end]."""
        pass

    @abstractmethod
    def insert_many(self, rows: list[tuple[Interval, str]]) -> list[Interval]:
        """Insert intervals with their group type, all or nothing.

        Args:
            rows: (interval, group_type) pairs

        Returns:
            The stored intervals with their new ids
        """
        pass

    @abstractmethod
    @contextmanager
    def transaction(self) -> Iterator["IntervalStore"]:
        """Hold the store exclusively for a check-then-insert sequence.

        Callers run exists/overlap checks and the insert inside one
        transaction; otherwise two importers racing on the same empty
        range could both pass the checks and both insert.
        """
        pass


class MemoryStore(IntervalStore):
    """In-memory store for tests and dry runs."""

    def __init__(self, intervals: list[Interval] | None = None, group_type: str = "default") -> None:
        self._rows: list[tuple[Interval, str]] = []
        self._next_id = 1
        self._lock = threading.RLock()
        if intervals:
            self.insert_many([(interval, group_type) for interval in intervals])

    def query(self, start: datetime, end: datetime) -> list[Interval]:
        found = [interval for interval, _ in self._rows if start <= interval.start <= end]
        return sorted(found, key=lambda interval: interval.start)

    def count(self, start: datetime, end: datetime) -> int:
        return sum(1 for interval, _ in self._rows if start <= interval.start <= end)

    def insert_many(self, rows: list[tuple[Interval, str]]) -> list[Interval]:
        # Validate everything first so a bad row leaves the store untouched
        for interval, group_type in rows:
            if not group_type:
                raise ValueError(f"group_type is required for {interval!r}")

        stored = []
        with self._lock:
            for interval, group_type in rows:
                saved = replace(interval, id=self._next_id)
                self._next_id += 1
                self._rows.append((saved, group_type))
                stored.append(saved)
        return stored

    @contextmanager
    def transaction(self) -> Iterator["MemoryStore"]:
        with self._lock:
            snapshot = list(self._rows), self._next_id
            try:
                yield self
            except BaseException:
                self._rows, self._next_id = snapshot
                raise

    def group_type_of(self, interval_id: int) -> str | None:
        """Return the group type stored with an interval id."""
        for interval, group_type in self._rows:
            if interval.id == interval_id:
                return group_type
        return None

    def __len__(self) -> int:
        return len(self._rows)
