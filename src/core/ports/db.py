"""
Database Adapter Interfaces.

Protocol-based interfaces for the event log and listing catalog.
Implementations: SQLite (src.adapters.sqlite_db), in-memory (src.adapters.memory_store).
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from src.core.entities import (
    ConversionEvent,
    ConversionKind,
    ListingProfile,
    RawTrafficEvent,
    SearchEvent,
)

# -----------------------------------------------------------------------------
# Event log (append-only, written by the external collector)
# -----------------------------------------------------------------------------


class EventSourcePort(Protocol):
    """
    Read access to the raw event streams.

    Invariants:
    - I1: Rows are immutable once written
    - I2: Range filters are inclusive on both ends
    """

    def list_traffic(self, start: datetime, end: datetime) -> list[RawTrafficEvent]:
        """Traffic hits with start <= timestamp <= end."""
        ...

    def list_conversions(
        self,
        start: datetime,
        end: datetime,
        kind: ConversionKind | None = None,
        listing_id: str | None = None,
    ) -> list[ConversionEvent]:
        """Conversion events in range, optionally filtered by kind and listing."""
        ...

    def list_searches(self, start: datetime, end: datetime) -> list[SearchEvent]:
        """Search log rows in range."""
        ...


# -----------------------------------------------------------------------------
# Listing catalog
# -----------------------------------------------------------------------------


class ListingRepoPort(Protocol):
    """
    Repository for directory listings.

    Only the score fields are ever written by this engine.
    """

    def list_all(self) -> list[ListingProfile]:
        """All listings."""
        ...

    def get_by_id(self, listing_id: str) -> ListingProfile | None:
        """Get a listing by ID."""
        ...

    def count_created_before(self, ts: datetime) -> int:
        """Number of listings created strictly before ts."""
        ...

    def list_created_since(self, ts: datetime) -> list[ListingProfile]:
        """Listings created at or after ts, oldest first."""
        ...

    def update_scores(self, listing_id: str, trending_score: int, quality_score: int) -> None:
        """Overwrite the stored score fields of one listing."""
        ...
