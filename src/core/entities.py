"""
Domain entities for the trendboard analytics engine.

- RawTrafficEvent: page/traffic hit written by the external collector
- ConversionEvent: listing VIEW/CLICK conversion
- SearchEvent: directory search log row
- ListingProfile: the scored directory listing

All events are append-only. Timestamps are stored in UTC.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

__all__ = [
    "ConversionEvent",
    "ConversionKind",
    "ListingProfile",
    "RawTrafficEvent",
    "SearchEvent",
    "parse_timestamp",
]


class ConversionKind(str, Enum):
    """Conversion event kinds."""

    VIEW = "VIEW"
    CLICK = "CLICK"


def parse_timestamp(value: Any) -> datetime | None:
    """
    Normalize a stored timestamp to an aware UTC datetime.

    Accepts datetimes (naive treated as UTC) and ISO strings (trailing Z allowed).
    Returns None for anything that cannot be parsed.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    if isinstance(value, str) and value:
        raw = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
        return parse_timestamp(parsed)

    return None


@dataclass(frozen=True)
class RawTrafficEvent:
    """A single traffic hit. Timestamp may be malformed in legacy rows."""

    timestamp: datetime | str | None
    ip: str | None = None
    fingerprint: str | None = None
    user_agent: str | None = None
    referrer: str | None = None
    country: str | None = None
    path: str | None = None
    listing_id: str | None = None


@dataclass(frozen=True)
class ConversionEvent:
    """A listing conversion (content view or outbound click)."""

    timestamp: datetime | str | None
    kind: ConversionKind
    listing_id: str
    visitor_id: str


@dataclass(frozen=True)
class SearchEvent:
    """A directory search."""

    timestamp: datetime | str | None
    query: str
    results_count: int = 0


@dataclass(frozen=True)
class ListingProfile:
    """Directory listing with the fields used for ranking."""

    id: str
    name: str
    created_at: datetime
    slug: str | None = None
    category: str | None = None
    country: str | None = None
    logo_url: str | None = None

    # Optional profile fields (quality score)
    description: str | None = None
    cookie_duration: int | str | None = None
    payout_method: str | None = None
    avg_order_value: float | str | None = None
    x_handle: str | None = None
    target_audience: str | None = None
    affiliates_count_range: str | None = None
    min_payout_value: float | str | None = None
    founding_date: str | None = None
    approval_time_range: str | None = None
    email: str | None = None
    payouts_total_range: str | None = None

    # Operator / ranking state
    manual_score_boost: int = 0
    is_featured: bool = False
    trending_score: int = 0
    quality_score: int = 0
