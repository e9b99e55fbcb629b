"""
Analytics component input/output models.

Snapshot models are frozen and use tuples so a cached snapshot can be
shared between requests without copying.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from src.core.entities import ConversionEvent, RawTrafficEvent

# --- Enums ---


class DashboardRange(str, Enum):
    """Dashboard lookback window."""

    DAY = "24h"
    WEEK = "7d"
    MONTH = "30d"


class BucketType(str, Enum):
    """Time bucket granularity."""

    HOUR = "hour"
    DAY = "day"


# --- Errors ---


class AnalyticsError(Exception):
    """Base class for analytics failures."""


class InvalidRangeError(AnalyticsError, ValueError):
    """Unknown dashboard range selector."""


class VisitorPoolError(AnalyticsError):
    """The visitor pool could not be built; fatal to the snapshot."""


class AnalyticsUnavailableError(AnalyticsError):
    """No snapshot (fresh or stale) can be served."""


@dataclass(frozen=True)
class SectionWarning:
    """A dashboard section that failed and was replaced by its default."""

    section: str
    message: str


# --- Visitor Pool ---


@dataclass(frozen=True)
class PoolRow:
    """A bot-filtered traffic row with its resolved visitor identity."""

    identity: str
    timestamp: datetime | None
    event: RawTrafficEvent


@dataclass(frozen=True)
class MasterVisitorPool:
    """
    Range-scoped, bot-filtered visitor set shared by every section.

    unique_visitors is the single denominator for all per-range visitor counts.
    """

    start: datetime
    now: datetime
    rows: tuple[PoolRow, ...]
    clicks: tuple[ConversionEvent, ...]
    unique_visitors: int
    bots_filtered: int = 0

    @property
    def identities(self) -> frozenset[str]:
        return frozenset(row.identity for row in self.rows)


# --- Snapshot Sections ---


@dataclass(frozen=True)
class TrafficPoint:
    date: str
    visitors: int
    clicks: int


@dataclass(frozen=True)
class NewListingsPoint:
    date: str
    added: int
    total: int


@dataclass(frozen=True)
class NewListingsCount:
    day: int = 0
    week: int = 0
    month: int = 0


@dataclass(frozen=True)
class PeakHour:
    hour: int
    visitors: int


@dataclass(frozen=True)
class EngagementStats:
    """Session and engagement metrics."""

    bounce_rate: int = 0
    avg_session_duration: int = 0
    return_visitor_rate: int = 0
    peak_hours: tuple[PeakHour, ...] = ()


@dataclass(frozen=True)
class FunnelStep:
    """One funnel stage. None marks a stage that does not apply."""

    name: str
    value: int | None
    conversion: int | None


@dataclass(frozen=True)
class Funnel:
    steps: tuple[FunnelStep, ...] = ()
    listing_id: str | None = None


@dataclass(frozen=True)
class ListingStats:
    """Per-listing views, clicks and traffic chart for one range."""

    listing_id: str
    views: int = 0
    clicks: int = 0
    ctr: float = 0.0
    traffic_chart: tuple[TrafficPoint, ...] = ()


@dataclass(frozen=True)
class ReferrerStat:
    source: str
    domain: str | None
    visitors: int
    clicks: int
    ctr: float


@dataclass(frozen=True)
class GeoStat:
    code: str
    country: str
    users: int
    percentage: int
    top_source: str


@dataclass(frozen=True)
class BreakdownStat:
    """Device class or OS share of unique visitors."""

    name: str
    count: int
    percentage: int


@dataclass(frozen=True)
class Breakdowns:
    geo: tuple[GeoStat, ...] = ()
    devices: tuple[BreakdownStat, ...] = ()
    os: tuple[BreakdownStat, ...] = ()


@dataclass(frozen=True)
class Totals:
    """Headline counters."""

    live_users: int = 0
    total_views: int = 0
    unique_visitors: int = 0
    total_clicks: int = 0
    advertise_views: int = 0


@dataclass(frozen=True)
class TopListing:
    id: str
    name: str
    slug: str | None
    views: int
    clicks: int
    ctr: float


@dataclass(frozen=True)
class ClickBreakdownItem:
    listing_id: str
    listing_name: str
    slug: str | None
    clicks: int


@dataclass(frozen=True)
class SearchQueryStat:
    query: str
    count: int
    results_count: int


@dataclass(frozen=True)
class SearchStats:
    top: tuple[SearchQueryStat, ...] = ()
    zero_results: tuple[SearchQueryStat, ...] = ()


@dataclass(frozen=True)
class CategoryTrend:
    category: str
    views: int
    percentage: int


@dataclass(frozen=True)
class FeaturedListing:
    id: str
    name: str
    slug: str | None


@dataclass(frozen=True)
class ListingOrigin:
    """Number of listings from one country."""

    country: str
    count: int


@dataclass(frozen=True)
class HealthStats:
    pool_rows: int = 0
    row_warning: bool = False


# --- Dashboard Snapshot ---


@dataclass(frozen=True)
class DashboardSnapshot:
    """Read-only aggregate for one range."""

    range: DashboardRange
    generated_at: datetime
    totals: Totals
    engagement: EngagementStats
    traffic_chart: tuple[TrafficPoint, ...]
    breakdowns: Breakdowns
    funnel: Funnel
    referrer_ctr: tuple[ReferrerStat, ...]
    top_listings: tuple[TopListing, ...] = ()
    click_breakdown: tuple[ClickBreakdownItem, ...] = ()
    searches: SearchStats = field(default_factory=SearchStats)
    category_trends: tuple[CategoryTrend, ...] = ()
    new_listings_chart: tuple[NewListingsPoint, ...] = ()
    new_listings_count: NewListingsCount = field(default_factory=NewListingsCount)
    featured_listings: tuple[FeaturedListing, ...] = ()
    listing_origins: tuple[ListingOrigin, ...] = ()
    health: HealthStats = field(default_factory=HealthStats)
    warnings: tuple[SectionWarning, ...] = ()
    is_stale: bool = False

    @property
    def has_warnings(self) -> bool:
        return len(self.warnings) > 0


# --- Input Models ---


@dataclass(frozen=True)
class DashboardInput:
    """Input for requesting a dashboard snapshot."""

    range: DashboardRange = DashboardRange.WEEK
    use_cache: bool = True


@dataclass(frozen=True)
class ListingFunnelInput:
    """Input for a per-listing funnel."""

    listing_id: str
    range: DashboardRange = DashboardRange.WEEK


@dataclass(frozen=True)
class ListingStatsInput:
    """Input for per-listing stats."""

    listing_id: str
    range: DashboardRange = DashboardRange.WEEK


def parse_range(value: Any) -> DashboardRange:
    """Parse a range selector, raising InvalidRangeError on unknown values."""
    if isinstance(value, DashboardRange):
        return value
    try:
        return DashboardRange(str(value).strip().lower())
    except ValueError:
        raise InvalidRangeError(
            f"Invalid range: {value}. Must be one of: 24h, 7d, 30d"
        ) from None
