"""
Dashboard rollups - headline totals and listing/search/category tables.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timedelta

from src.core.entities import (
    ConversionEvent,
    ConversionKind,
    ListingProfile,
    SearchEvent,
    parse_timestamp,
)

from ._common import DEFAULT_CONFIG, AnalyticsConfig, ctr, percent
from .models import (
    CategoryTrend,
    ClickBreakdownItem,
    FeaturedListing,
    HealthStats,
    ListingOrigin,
    MasterVisitorPool,
    NewListingsCount,
    SearchQueryStat,
    SearchStats,
    TopListing,
    Totals,
)

ADVERTISE_PATH = "/advertise"
UNKNOWN_COUNTRY = "Unknown"


def build_totals(
    pool: MasterVisitorPool,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> Totals:
    """Headline counters. total_views counts raw page loads in the pool."""
    live_since = pool.now - timedelta(minutes=config.live_window_minutes)
    live = {
        row.identity
        for row in pool.rows
        if row.timestamp is not None and row.timestamp >= live_since
    }
    advertise = sum(1 for row in pool.rows if (row.event.path or "").startswith(ADVERTISE_PATH))

    return Totals(
        live_users=len(live),
        total_views=len(pool.rows),
        unique_visitors=pool.unique_visitors,
        total_clicks=len(pool.clicks),
        advertise_views=advertise,
    )


def build_top_listings(
    views: Iterable[ConversionEvent],
    clicks: Iterable[ConversionEvent],
    listings: dict[str, ListingProfile],
    limit: int = 10,
) -> tuple[TopListing, ...]:
    """Listings with the most content views in range."""
    view_counts = Counter(e.listing_id for e in views if e.kind == ConversionKind.VIEW)
    click_counts = Counter(e.listing_id for e in clicks if e.kind == ConversionKind.CLICK)

    ranked = sorted(view_counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
    items = []
    for listing_id, count in ranked:
        listing = listings.get(listing_id)
        n_clicks = click_counts.get(listing_id, 0)
        items.append(
            TopListing(
                id=listing_id,
                name=listing.name if listing else "Unknown",
                slug=listing.slug if listing else None,
                views=count,
                clicks=n_clicks,
                ctr=ctr(n_clicks, count),
            )
        )
    return tuple(items)


def build_click_breakdown(
    clicks: Iterable[ConversionEvent],
    listings: dict[str, ListingProfile],
    limit: int = 20,
) -> tuple[ClickBreakdownItem, ...]:
    """Outbound clicks per listing, most clicked first."""
    counts = Counter(e.listing_id for e in clicks if e.listing_id)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
    return tuple(
        ClickBreakdownItem(
            listing_id=listing_id,
            listing_name=listings[listing_id].name if listing_id in listings else "Unknown",
            slug=listings[listing_id].slug if listing_id in listings else None,
            clicks=count,
        )
        for listing_id, count in ranked
    )


def build_search_stats(searches: Iterable[SearchEvent], limit: int = 5) -> SearchStats:
    """Most frequent queries and most frequent zero-result queries."""
    counts: Counter[str] = Counter()
    results: dict[str, int] = {}
    for search in searches:
        query = (search.query or "").strip().lower()
        if not query:
            continue
        counts[query] += 1
        results.setdefault(query, search.results_count)

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    stats = [SearchQueryStat(query=q, count=c, results_count=results[q]) for q, c in ranked]
    return SearchStats(
        top=tuple(stats[:limit]),
        zero_results=tuple(s for s in stats if s.results_count == 0)[:limit],
    )


def build_category_trends(
    views: Iterable[ConversionEvent],
    listings: dict[str, ListingProfile],
    limit: int = 10,
) -> tuple[CategoryTrend, ...]:
    """Content views per listing category with share of all categorized views."""
    by_category: Counter[str] = Counter()
    for event in views:
        if event.kind != ConversionKind.VIEW:
            continue
        listing = listings.get(event.listing_id)
        if listing and listing.category:
            by_category[listing.category] += 1

    total = sum(by_category.values())
    ranked = sorted(by_category.items(), key=lambda item: (-item[1], item[0]))[:limit]
    return tuple(
        CategoryTrend(category=category, views=count, percentage=percent(count, total))
        for category, count in ranked
    )


def build_new_listings_count(listings: Iterable[ListingProfile], now: datetime) -> NewListingsCount:
    """Listings created within the last day, week and month."""
    day = week = month = 0
    for listing in listings:
        created = parse_timestamp(listing.created_at)
        if created is None:
            continue
        age = now - created
        if age <= timedelta(days=30):
            month += 1
            if age <= timedelta(days=7):
                week += 1
                if age <= timedelta(days=1):
                    day += 1
    return NewListingsCount(day=day, week=week, month=month)


def build_featured_listings(listings: Iterable[ListingProfile]) -> tuple[FeaturedListing, ...]:
    featured = sorted((item for item in listings if item.is_featured), key=lambda item: item.name.lower())
    return tuple(FeaturedListing(id=item.id, name=item.name, slug=item.slug) for item in featured)


def build_listing_origins(
    listings: Iterable[ListingProfile],
    limit: int = 10,
) -> tuple[ListingOrigin, ...]:
    """Listing counts per country, largest first. Missing countries group as Unknown."""
    counts = Counter((item.country or "").strip() or UNKNOWN_COUNTRY for item in listings)
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]
    return tuple(ListingOrigin(country=country, count=count) for country, count in ranked)


def build_health(pool: MasterVisitorPool, config: AnalyticsConfig = DEFAULT_CONFIG) -> HealthStats:
    size = len(pool.rows) + len(pool.clicks)
    return HealthStats(pool_rows=size, row_warning=size > config.health_row_warning)
