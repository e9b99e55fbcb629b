"""
In-memory event log and listing catalog.

Used by tests and local development; thread-safe for the dashboard's
concurrent sections.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime

from src.core.entities import (
    ConversionEvent,
    ConversionKind,
    ListingProfile,
    RawTrafficEvent,
    SearchEvent,
    parse_timestamp,
)


def _in_range(value: datetime | str | None, start: datetime, end: datetime) -> bool:
    ts = parse_timestamp(value)
    return ts is not None and start <= ts <= end


class InMemoryEventStore:
    """In-memory EventSourcePort implementation."""

    def __init__(
        self,
        traffic: list[RawTrafficEvent] | None = None,
        conversions: list[ConversionEvent] | None = None,
        searches: list[SearchEvent] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._traffic = list(traffic or [])
        self._conversions = list(conversions or [])
        self._searches = list(searches or [])

    def append_traffic(self, event: RawTrafficEvent) -> None:
        with self._lock:
            self._traffic.append(event)

    def append_conversion(self, event: ConversionEvent) -> None:
        with self._lock:
            self._conversions.append(event)

    def append_search(self, event: SearchEvent) -> None:
        with self._lock:
            self._searches.append(event)

    def list_traffic(self, start: datetime, end: datetime) -> list[RawTrafficEvent]:
        with self._lock:
            return [e for e in self._traffic if _in_range(e.timestamp, start, end)]

    def list_conversions(
        self,
        start: datetime,
        end: datetime,
        kind: ConversionKind | None = None,
        listing_id: str | None = None,
    ) -> list[ConversionEvent]:
        with self._lock:
            return [
                e
                for e in self._conversions
                if _in_range(e.timestamp, start, end)
                and (kind is None or e.kind == kind)
                and (listing_id is None or e.listing_id == listing_id)
            ]

    def list_searches(self, start: datetime, end: datetime) -> list[SearchEvent]:
        with self._lock:
            return [e for e in self._searches if _in_range(e.timestamp, start, end)]


class InMemoryListingRepo:
    """In-memory ListingRepoPort implementation."""

    def __init__(self, listings: list[ListingProfile] | None = None) -> None:
        self._lock = threading.Lock()
        self._listings: dict[str, ListingProfile] = {item.id: item for item in listings or []}

    def save(self, listing: ListingProfile) -> ListingProfile:
        with self._lock:
            self._listings[listing.id] = listing
        return listing

    def list_all(self) -> list[ListingProfile]:
        with self._lock:
            return list(self._listings.values())

    def get_by_id(self, listing_id: str) -> ListingProfile | None:
        with self._lock:
            return self._listings.get(listing_id)

    def count_created_before(self, ts: datetime) -> int:
        with self._lock:
            return sum(
                1
                for item in self._listings.values()
                if (created := parse_timestamp(item.created_at)) is not None and created < ts
            )

    def list_created_since(self, ts: datetime) -> list[ListingProfile]:
        with self._lock:
            items = [
                item
                for item in self._listings.values()
                if (created := parse_timestamp(item.created_at)) is not None and created >= ts
            ]
        return sorted(items, key=lambda item: parse_timestamp(item.created_at))

    def update_scores(self, listing_id: str, trending_score: int, quality_score: int) -> None:
        with self._lock:
            listing = self._listings.get(listing_id)
            if listing is None:
                raise KeyError(f"Listing not found: {listing_id}")
            self._listings[listing_id] = replace(
                listing, trending_score=trending_score, quality_score=quality_score
            )
