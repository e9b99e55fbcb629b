"""
Analytics component - Dashboard snapshot assembly.

Builds one consistent DashboardSnapshot per range from the raw event logs.

Invariants:
- I1: The visitor pool is built exactly once per snapshot and shared by all sections
- I2: Every per-range visitor count uses pool.unique_visitors as its base
- I3: A failing section is logged, replaced by its default and reported as a warning
- I4: Only a pool failure fails the snapshot (stale cache is served when available)
- I5: Concurrent requests for the same range share one computation
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

from src.core.entities import ConversionEvent, ConversionKind, ListingProfile

from ._aggregate import build_new_listings_chart, build_traffic_chart
from ._breakdowns import build_breakdowns
from ._cache import SnapshotCache
from ._common import DEFAULT_CONFIG, AnalyticsConfig, bucket_type_for, range_start
from ._funnel import build_global_funnel, build_listing_funnel, build_listing_stats
from ._pool import build_visitor_pool
from ._referrers import build_referrer_ctr
from ._rollups import (
    build_category_trends,
    build_click_breakdown,
    build_featured_listings,
    build_health,
    build_listing_origins,
    build_new_listings_count,
    build_search_stats,
    build_top_listings,
    build_totals,
)
from ._sessions import build_engagement_stats
from .models import (
    AnalyticsUnavailableError,
    Breakdowns,
    DashboardInput,
    DashboardRange,
    DashboardSnapshot,
    EngagementStats,
    Funnel,
    HealthStats,
    ListingFunnelInput,
    ListingStats,
    ListingStatsInput,
    MasterVisitorPool,
    NewListingsCount,
    SearchStats,
    SectionWarning,
    Totals,
    VisitorPoolError,
)
from .ports import AnalyticsRulesPort, EventSourcePort, ListingRepoPort, TimePort

logger = logging.getLogger(__name__)

T = TypeVar("T")


class _SystemTime:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)


# --- Section Isolation ---


@dataclass(frozen=True)
class SectionResult(Generic[T]):
    """Outcome of one dashboard section: its value, or its default plus an error."""

    name: str
    value: T
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_section(name: str, fn: Callable[[], T], default: T) -> SectionResult[T]:
    """Run one section, folding any exception into its default value."""
    try:
        return SectionResult(name=name, value=fn())
    except Exception as e:
        logger.exception("Dashboard section %s failed", name)
        return SectionResult(name=name, value=default, error=str(e) or type(e).__name__)


class _Shared(Generic[T]):
    """
    Loads a value at most once per snapshot for every section that needs it.

    A load failure is re-raised to each caller, so it still surfaces inside
    every dependent section.
    """

    def __init__(self, load: Callable[[], T]) -> None:
        self._load = load
        self._lock = threading.Lock()
        self._loaded = False
        self._value: T | None = None
        self._error: Exception | None = None

    def __call__(self) -> T:
        with self._lock:
            if not self._loaded:
                try:
                    self._value = self._load()
                except Exception as e:
                    self._error = e
                self._loaded = True
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]


def _build_config(rules: AnalyticsRulesPort | None) -> AnalyticsConfig:
    """Build analytics config from rules port."""
    if rules is None:
        return AnalyticsConfig()

    limits = rules.get_limits()
    return AnalyticsConfig(
        cache_ttl_seconds=rules.get_cache_ttl_seconds(),
        live_window_minutes=rules.get_live_window_minutes(),
        session_cap_seconds=rules.get_session_cap_seconds(),
        max_workers=rules.get_max_workers(),
        peak_hours_limit=limits.get("peak_hours", DEFAULT_CONFIG.peak_hours_limit),
        referrer_limit=limits.get("referrers", DEFAULT_CONFIG.referrer_limit),
        geo_limit=limits.get("geo", DEFAULT_CONFIG.geo_limit),
        top_listings_limit=limits.get("top_listings", DEFAULT_CONFIG.top_listings_limit),
        click_breakdown_limit=limits.get("click_breakdown", DEFAULT_CONFIG.click_breakdown_limit),
        search_limit=limits.get("searches", DEFAULT_CONFIG.search_limit),
        category_limit=limits.get("categories", DEFAULT_CONFIG.category_limit),
        origins_limit=limits.get("origins", DEFAULT_CONFIG.origins_limit),
        health_row_warning=rules.get_health_row_warning(),
    )


# --- Dashboard Service ---


class DashboardService:
    """
    Dashboard snapshot service.

    Owns the snapshot cache; all other state lives in the injected ports.
    """

    def __init__(
        self,
        source: EventSourcePort,
        listings: ListingRepoPort,
        time_port: TimePort | None = None,
        config: AnalyticsConfig | None = None,
    ) -> None:
        self._source = source
        self._listings = listings
        self._time = time_port or _SystemTime()
        self._config = config or DEFAULT_CONFIG
        self._cache: SnapshotCache[DashboardSnapshot] = SnapshotCache(
            self._time, ttl_seconds=self._config.cache_ttl_seconds
        )

    @property
    def cache(self) -> SnapshotCache[DashboardSnapshot]:
        return self._cache

    def get_snapshot(self, range_: DashboardRange, use_cache: bool = True) -> DashboardSnapshot:
        """
        Cached snapshot for a range.

        Raises:
            AnalyticsUnavailableError: pool failed and no earlier snapshot exists.
        """
        key = range_.value
        try:
            if use_cache:
                return self._cache.get_or_compute(key, lambda: self.compute_snapshot(range_))
            return self.compute_snapshot(range_)
        except VisitorPoolError as e:
            stale = self._cache.get_stale(key)
            if stale is not None:
                logger.warning("Serving stale %s snapshot: %s", key, e)
                return replace(stale, is_stale=True)
            raise AnalyticsUnavailableError("Analytics unavailable") from e

    def compute_snapshot(self, range_: DashboardRange) -> DashboardSnapshot:
        """Compute a snapshot without the cache. Raises VisitorPoolError."""
        now = self._time.now_utc()
        start = range_start(range_, now)

        pool = build_visitor_pool(self._source, start, now)
        sections = self._sections(pool, range_)

        with ThreadPoolExecutor(
            max_workers=self._config.max_workers,
            thread_name_prefix="dashboard",
        ) as executor:
            futures = {
                name: executor.submit(run_section, name, fn, default)
                for name, (fn, default) in sections.items()
            }
            results = {name: future.result() for name, future in futures.items()}

        warnings = tuple(
            SectionWarning(section=r.name, message=r.error or "")
            for r in results.values()
            if not r.ok
        )
        values = {name: r.value for name, r in results.items()}

        return DashboardSnapshot(
            range=range_,
            generated_at=now,
            totals=values["totals"],
            engagement=values["engagement"],
            traffic_chart=values["traffic_chart"],
            breakdowns=values["breakdowns"],
            funnel=values["funnel"],
            referrer_ctr=values["referrer_ctr"],
            top_listings=values["top_listings"],
            click_breakdown=values["click_breakdown"],
            searches=values["searches"],
            category_trends=values["category_trends"],
            new_listings_chart=values["new_listings_chart"],
            new_listings_count=values["new_listings_count"],
            featured_listings=values["featured_listings"],
            listing_origins=values["listing_origins"],
            health=values["health"],
            warnings=warnings,
        )

    def get_listing_funnel(self, listing_id: str, range_: DashboardRange) -> Funnel:
        """Per-listing funnel; stage 1 is marked not applicable."""
        now = self._time.now_utc()
        start = range_start(range_, now)
        events = self._source.list_conversions(start, now, listing_id=listing_id)
        return build_listing_funnel(listing_id, events)

    def get_listing_stats(self, listing_id: str, range_: DashboardRange) -> ListingStats:
        """Per-listing views, clicks, CTR and traffic chart."""
        now = self._time.now_utc()
        start = range_start(range_, now)
        events = self._source.list_conversions(start, now, listing_id=listing_id)
        return build_listing_stats(listing_id, events, start, now, bucket_type_for(range_))

    # --- Sections ---

    def _sections(
        self,
        pool: MasterVisitorPool,
        range_: DashboardRange,
    ) -> dict[str, tuple[Callable[[], Any], Any]]:
        """
        name -> (compute, default).

        The listing catalog and the range's VIEW conversions are each read
        once and shared by the sections that need them.
        """
        cfg = self._config
        bucket_type = bucket_type_for(range_)

        all_listings: _Shared[list[ListingProfile]] = _Shared(self._listings.list_all)
        views: _Shared[list[ConversionEvent]] = _Shared(
            lambda: self._source.list_conversions(pool.start, pool.now, kind=ConversionKind.VIEW)
        )

        def listing_index() -> dict[str, ListingProfile]:
            return {listing.id: listing for listing in all_listings()}

        return {
            "totals": (lambda: build_totals(pool, cfg), Totals()),
            "engagement": (lambda: build_engagement_stats(pool, cfg), EngagementStats()),
            "traffic_chart": (lambda: build_traffic_chart(pool, bucket_type), ()),
            "breakdowns": (lambda: build_breakdowns(pool, cfg), Breakdowns()),
            "funnel": (lambda: build_global_funnel(pool, views()), Funnel()),
            "referrer_ctr": (lambda: build_referrer_ctr(pool, cfg.referrer_limit), ()),
            "top_listings": (
                lambda: build_top_listings(views(), pool.clicks, listing_index(), cfg.top_listings_limit),
                (),
            ),
            "click_breakdown": (
                lambda: build_click_breakdown(pool.clicks, listing_index(), cfg.click_breakdown_limit),
                (),
            ),
            "searches": (
                lambda: build_search_stats(
                    self._source.list_searches(pool.start, pool.now), cfg.search_limit
                ),
                SearchStats(),
            ),
            "category_trends": (
                lambda: build_category_trends(views(), listing_index(), cfg.category_limit),
                (),
            ),
            "new_listings_chart": (
                lambda: build_new_listings_chart(
                    self._listings.count_created_before(pool.start),
                    self._listings.list_created_since(pool.start),
                    pool.start,
                    pool.now,
                    bucket_type,
                ),
                (),
            ),
            "new_listings_count": (
                lambda: build_new_listings_count(
                    self._listings.list_created_since(range_start(DashboardRange.MONTH, pool.now)),
                    pool.now,
                ),
                NewListingsCount(),
            ),
            "featured_listings": (lambda: build_featured_listings(all_listings()), ()),
            "listing_origins": (lambda: build_listing_origins(all_listings(), cfg.origins_limit), ()),
            "health": (lambda: build_health(pool, cfg), HealthStats()),
        }


# --- Component Entry Points ---


def run_dashboard(inp: DashboardInput, *, service: DashboardService) -> DashboardSnapshot:
    """
    Get the dashboard snapshot for a range.

    Args:
        inp: Input with range and cache preference.
        service: Dashboard service (holds the cache).

    Returns:
        DashboardSnapshot, possibly stale and possibly with section warnings.

    Raises:
        AnalyticsUnavailableError: when no snapshot can be produced.
    """
    return service.get_snapshot(inp.range, use_cache=inp.use_cache)


def run_listing_funnel(inp: ListingFunnelInput, *, service: DashboardService) -> Funnel:
    """Get the funnel for one listing."""
    return service.get_listing_funnel(inp.listing_id, inp.range)


def run_listing_stats(inp: ListingStatsInput, *, service: DashboardService) -> ListingStats:
    """Get views, clicks, CTR and the traffic chart for one listing."""
    return service.get_listing_stats(inp.listing_id, inp.range)


# --- Factory ---


def create_dashboard_service(
    source: EventSourcePort,
    listings: ListingRepoPort,
    time_port: TimePort | None = None,
    rules: AnalyticsRulesPort | None = None,
) -> DashboardService:
    """Create a DashboardService."""
    return DashboardService(
        source=source,
        listings=listings,
        time_port=time_port,
        config=_build_config(rules),
    )
