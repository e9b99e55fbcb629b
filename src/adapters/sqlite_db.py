"""
SQLite Database Adapter.

Implements EventSourcePort and ListingRepoPort over the tables created by
migrations/001_initial.sql.

Timestamps are stored as fixed-width UTC ISO strings so range filters can
compare them lexically.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import UTC, datetime
from typing import Any

from src.core.entities import (
    ConversionEvent,
    ConversionKind,
    ListingProfile,
    RawTrafficEvent,
    SearchEvent,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def format_ts(value: datetime | str | None) -> str | None:
    """Fixed-width UTC ISO string, or None when the value is not a timestamp."""
    ts = parse_timestamp(value)
    if ts is None:
        return None
    return ts.astimezone(UTC).isoformat(timespec="microseconds")


def parse_dt(s: str | None) -> datetime | None:
    """Parse a stored timestamp."""
    return parse_timestamp(s) if s else None


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(self, db_path: str, connection: sqlite3.Connection | None = None):
        self.db_path = db_path
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = dict_factory
        return conn

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None

    def _fetch_all(self, sql: str, params: tuple[Any, ...] = ()) -> list[dict[str, Any]]:
        conn = self._get_conn()
        try:
            return conn.execute(sql, params).fetchall()
        finally:
            if self._should_close():
                conn.close()

    def _execute(self, sql: str, params: tuple[Any, ...]) -> int:
        conn = self._get_conn()
        try:
            cursor = conn.execute(sql, params)
            if self._should_close():
                conn.commit()
            return cursor.rowcount
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Event log
# -----------------------------------------------------------------------------


class SQLiteEventStore(SQLiteRepoBase):
    """SQLite implementation of EventSourcePort, plus append helpers."""

    def list_traffic(self, start: datetime, end: datetime) -> list[RawTrafficEvent]:
        rows = self._fetch_all(
            """
            SELECT * FROM traffic_events
            WHERE timestamp >= ? AND timestamp <= ?
            ORDER BY timestamp ASC
            """,
            (format_ts(start), format_ts(end)),
        )
        return [self._map_traffic(row) for row in rows]

    def list_conversions(
        self,
        start: datetime,
        end: datetime,
        kind: ConversionKind | None = None,
        listing_id: str | None = None,
    ) -> list[ConversionEvent]:
        sql = "SELECT * FROM conversion_events WHERE timestamp >= ? AND timestamp <= ?"
        params: list[Any] = [format_ts(start), format_ts(end)]
        if kind is not None:
            sql += " AND kind = ?"
            params.append(ConversionKind(kind).value)
        if listing_id is not None:
            sql += " AND listing_id = ?"
            params.append(listing_id)
        sql += " ORDER BY timestamp ASC"

        return [self._map_conversion(row) for row in self._fetch_all(sql, tuple(params))]

    def list_searches(self, start: datetime, end: datetime) -> list[SearchEvent]:
        rows = self._fetch_all(
            """
            SELECT * FROM search_events
            WHERE timestamp >= ? AND timestamp <= ?
            ORDER BY timestamp ASC
            """,
            (format_ts(start), format_ts(end)),
        )
        return [
            SearchEvent(
                timestamp=parse_dt(row["timestamp"]),
                query=row["query"],
                results_count=row["results_count"],
            )
            for row in rows
        ]

    # --- Writers (used by the collector and tests) ---

    def append_traffic(self, event: RawTrafficEvent) -> None:
        self._execute(
            """
            INSERT INTO traffic_events (
                timestamp, ip, fingerprint, user_agent, referrer, country, path, listing_id
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                format_ts(event.timestamp),
                event.ip,
                event.fingerprint,
                event.user_agent,
                event.referrer,
                event.country,
                event.path,
                event.listing_id,
            ),
        )

    def append_conversion(self, event: ConversionEvent) -> None:
        self._execute(
            """
            INSERT INTO conversion_events (timestamp, kind, listing_id, visitor_id)
            VALUES (?, ?, ?, ?)
            """,
            (
                format_ts(event.timestamp),
                ConversionKind(event.kind).value,
                event.listing_id,
                event.visitor_id,
            ),
        )

    def append_search(self, event: SearchEvent) -> None:
        self._execute(
            "INSERT INTO search_events (timestamp, query, results_count) VALUES (?, ?, ?)",
            (format_ts(event.timestamp), event.query, event.results_count),
        )

    def _map_traffic(self, row: dict[str, Any]) -> RawTrafficEvent:
        return RawTrafficEvent(
            timestamp=parse_dt(row["timestamp"]),
            ip=row["ip"],
            fingerprint=row["fingerprint"],
            user_agent=row["user_agent"],
            referrer=row["referrer"],
            country=row["country"],
            path=row["path"],
            listing_id=row["listing_id"],
        )

    def _map_conversion(self, row: dict[str, Any]) -> ConversionEvent:
        return ConversionEvent(
            timestamp=parse_dt(row["timestamp"]),
            kind=ConversionKind(row["kind"]),
            listing_id=row["listing_id"],
            visitor_id=row["visitor_id"],
        )


# -----------------------------------------------------------------------------
# Listing catalog
# -----------------------------------------------------------------------------

_LISTING_COLUMNS = (
    "id",
    "name",
    "slug",
    "category",
    "country",
    "logo_url",
    "description",
    "cookie_duration",
    "payout_method",
    "avg_order_value",
    "x_handle",
    "target_audience",
    "affiliates_count_range",
    "min_payout_value",
    "founding_date",
    "approval_time_range",
    "email",
    "payouts_total_range",
    "manual_score_boost",
    "is_featured",
    "trending_score",
    "quality_score",
    "created_at",
)


class SQLiteListingRepo(SQLiteRepoBase):
    """SQLite implementation of ListingRepoPort."""

    def list_all(self) -> list[ListingProfile]:
        rows = self._fetch_all("SELECT * FROM listings ORDER BY created_at ASC")
        return [self._map_row(row) for row in rows]

    def get_by_id(self, listing_id: str) -> ListingProfile | None:
        rows = self._fetch_all("SELECT * FROM listings WHERE id = ?", (listing_id,))
        return self._map_row(rows[0]) if rows else None

    def count_created_before(self, ts: datetime) -> int:
        rows = self._fetch_all(
            "SELECT COUNT(*) AS n FROM listings WHERE created_at < ?", (format_ts(ts),)
        )
        return rows[0]["n"]

    def list_created_since(self, ts: datetime) -> list[ListingProfile]:
        rows = self._fetch_all(
            "SELECT * FROM listings WHERE created_at >= ? ORDER BY created_at ASC",
            (format_ts(ts),),
        )
        return [self._map_row(row) for row in rows]

    def update_scores(self, listing_id: str, trending_score: int, quality_score: int) -> None:
        updated = self._execute(
            "UPDATE listings SET trending_score = ?, quality_score = ? WHERE id = ?",
            (trending_score, quality_score, listing_id),
        )
        if updated == 0:
            raise KeyError(f"Listing not found: {listing_id}")

    def save(self, listing: ListingProfile) -> ListingProfile:
        values = []
        for column in _LISTING_COLUMNS:
            value = getattr(listing, column)
            if column == "created_at":
                value = format_ts(value)
            elif column == "is_featured":
                value = 1 if value else 0
            elif value is not None and column not in ("manual_score_boost", "trending_score", "quality_score"):
                value = str(value)
            values.append(value)

        placeholders = ", ".join("?" for _ in _LISTING_COLUMNS)
        self._execute(
            f"INSERT OR REPLACE INTO listings ({', '.join(_LISTING_COLUMNS)}) VALUES ({placeholders})",
            tuple(values),
        )
        return listing

    def _map_row(self, row: dict[str, Any]) -> ListingProfile:
        data = {column: row[column] for column in _LISTING_COLUMNS}
        data["created_at"] = parse_dt(row["created_at"])
        data["is_featured"] = bool(row["is_featured"])
        return ListingProfile(**data)


# -----------------------------------------------------------------------------
# Unit of Work
# -----------------------------------------------------------------------------


class SQLiteUnitOfWork:
    """
    SQLite Unit of Work implementation.

    Provides transaction management and access to both repositories over
    one shared connection.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

        # Lazy-initialized repositories
        self._events: SQLiteEventStore | None = None
        self._listings: SQLiteListingRepo | None = None

    def __enter__(self) -> SQLiteUnitOfWork:
        self._conn = sqlite3.connect(self.db_path)
        self._conn.row_factory = dict_factory
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        if exc_type is not None:
            self.rollback()
        if self._conn:
            self._conn.close()
            self._conn = None

    def commit(self) -> None:
        if self._conn:
            self._conn.commit()

    def rollback(self) -> None:
        if self._conn:
            self._conn.rollback()

    @property
    def events(self) -> SQLiteEventStore:
        if self._events is None:
            self._events = SQLiteEventStore(self.db_path, self._conn)
        return self._events

    @property
    def listings(self) -> SQLiteListingRepo:
        if self._listings is None:
            self._listings = SQLiteListingRepo(self.db_path, self._conn)
        return self._listings
