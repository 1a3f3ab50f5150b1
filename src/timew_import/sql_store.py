"""SQL-backed interval store.

SQLAlchemy Core (not ORM) is used: timew-import is a short-lived CLI
process and only needs a handful of range queries and inserts.

Instants are stored as canonical text (``YYYY-MM-DDTHH:MM:SS.mmmZ``).
The format is fixed width, so range filters on the text columns compare
chronologically, and values read back are identical to those written.

Transactions are the critical section for check-then-insert:
SQLite takes ``BEGIN IMMEDIATE`` (the write lock is held from the first
read), every other backend runs at SERIALIZABLE isolation.
"""

import json
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

from sqlalchemy import (
    Column,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    create_engine,
    event,
    func,
    insert,
    select,
)
from sqlalchemy.engine import Connection, Engine, make_url

from .intervals import Interval
from .store import IntervalStore
from .timebasis import format_instant, parse_instant, utc_now

logger = logging.getLogger(__name__)

metadata = MetaData()

entries = Table(
    "entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("start_time", Text, nullable=False),
    Column("end_time", Text),  # NULL while the interval is still running
    Column("session_name", Text),
    Column("tags", Text),  # JSON array
    Column("annotation", Text),
    Column("group_type", Text, nullable=False),
    Column("created_at", Text, nullable=False),
    Index("ix_entries_start_time", "start_time"),
)


def create_db_engine(url: str) -> Engine:
    """Create an engine whose transactions serialize concurrent importers."""
    parsed = make_url(url)

    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, echo=False, isolation_level="SERIALIZABLE")

    if parsed.database and parsed.database != ":memory:":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, echo=False)

    # pysqlite's own transaction handling never emits BEGIN IMMEDIATE,
    # so take it over and emit BEGIN ourselves.
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_conn: Any, _: Any) -> None:
        dbapi_conn.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def _row_to_interval(row: Any) -> Interval:
    return Interval(
        start=parse_instant(row.start_time),
        end=parse_instant(row.end_time) if row.end_time else None,
        label=row.session_name,
        tags=tuple(json.loads(row.tags)) if row.tags else (),
        annotation=row.annotation,
        id=row.id,
    )


class SqlStore(IntervalStore):
    """Interval store on any SQLAlchemy-supported database.

    A SqlStore instance tracks its open transaction, so use one instance
    per thread.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._conn: Connection | None = None

    @classmethod
    def from_url(cls, url: str) -> "SqlStore":
        """Connect to ``url`` and create the schema if needed (idempotent)."""
        engine = create_db_engine(url)
        metadata.create_all(engine)
        logger.debug(f"Opened interval store at {engine.url!r}")
        return cls(engine)

    @contextmanager
    def _connection(self) -> Iterator[Connection]:
        if self._conn is not None:
            yield self._conn
        else:
            with self.engine.begin() as conn:
                yield conn

    @staticmethod
    def _in_range(start: datetime, end: datetime) -> list:
        return [
            entries.c.start_time >= format_instant(start),
            entries.c.start_time <= format_instant(end),
        ]

    def query(self, start: datetime, end: datetime) -> list[Interval]:
        stmt = (
            select(entries)
            .where(*self._in_range(start, end))
            .order_by(entries.c.start_time, entries.c.id)
        )
        with self._connection() as conn:
            return [_row_to_interval(row) for row in conn.execute(stmt)]

    def count(self, start: datetime, end: datetime) -> int:
        stmt = select(func.count()).select_from(entries).where(*self._in_range(start, end))
        with self._connection() as conn:
            return conn.execute(stmt).scalar_one()

    def insert_many(self, rows: list[tuple[Interval, str]]) -> list[Interval]:
        for interval, group_type in rows:
            if not group_type:
                raise ValueError(f"group_type is required for {interval!r}")
        if not rows:
            return []

        created_at = format_instant(utc_now())
        stored = []
        with self._connection() as conn:
            for interval, group_type in rows:
                result = conn.execute(
                    insert(entries).values(
                        start_time=format_instant(interval.start),
                        end_time=format_instant(interval.end) if interval.end else None,
                        session_name=interval.label,
                        tags=json.dumps(list(interval.tags)),
                        annotation=interval.annotation,
                        group_type=group_type,
                        created_at=created_at,
                    )
                )
                new_id = result.inserted_primary_key[0]
                stored.append(
                    Interval(
                        start=interval.start,
                        end=interval.end,
                        label=interval.label,
                        tags=interval.tags,
                        annotation=interval.annotation,
                        id=new_id,
                    )
                )
        return stored

    @contextmanager
    def transaction(self) -> Iterator["SqlStore"]:
        if self._conn is not None:
            # Already inside a transaction on this store
            yield self
            return

        with self.engine.begin() as conn:
            self._conn = conn
            try:
                yield self
            finally:
                self._conn = None

    def group_type_of(self, interval_id: int) -> str | None:
        """Return the group type stored with an interval id."""
        stmt = select(entries.c.group_type).where(entries.c.id == interval_id)
        with self._connection() as conn:
            return conn.execute(stmt).scalar_one_or_none()

    def close(self) -> None:
        self.engine.dispose()
