"""
Conversion funnel - visit -> content view -> outbound click.

Stage 1 is always the pool's unique_visitors. Stages 2 and 3 count distinct
(visitor, listing) pairs from the conversion log. The two logs are written by
different instrumentation paths, so stage 2 may exceed stage 1; the values
are reported as-is.

Also builds the per-listing stats panel (views, clicks, CTR, chart).
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime

from src.core.entities import ConversionEvent, ConversionKind, parse_timestamp

from ._common import bucket_key, ctr, iter_bucket_keys, percent
from .models import BucketType, Funnel, FunnelStep, ListingStats, MasterVisitorPool, TrafficPoint

STAGE_VISITORS = "Visitors"
STAGE_VIEWS = "Content Views"
STAGE_CLICKS = "Outbound Clicks"


def count_distinct_pairs(
    events: Iterable[ConversionEvent],
    kind: ConversionKind,
    listing_id: str | None = None,
) -> int:
    """Number of distinct (visitor, listing) pairs of the given kind."""
    pairs = {
        (e.visitor_id, e.listing_id)
        for e in events
        if e.kind == kind and (listing_id is None or e.listing_id == listing_id)
    }
    return len(pairs)


def build_funnel_steps(visitors: int, views: int, clicks: int) -> tuple[FunnelStep, ...]:
    """Three-stage funnel with conversion relative to the previous stage."""
    return (
        FunnelStep(name=STAGE_VISITORS, value=visitors, conversion=100),
        FunnelStep(name=STAGE_VIEWS, value=views, conversion=percent(views, visitors)),
        FunnelStep(name=STAGE_CLICKS, value=clicks, conversion=percent(clicks, views)),
    )


def build_global_funnel(pool: MasterVisitorPool, views: Iterable[ConversionEvent]) -> Funnel:
    """Site-wide funnel for the pool's range; views are the range's VIEW conversions."""
    return Funnel(
        steps=build_funnel_steps(
            visitors=pool.unique_visitors,
            views=count_distinct_pairs(views, ConversionKind.VIEW),
            clicks=count_distinct_pairs(pool.clicks, ConversionKind.CLICK),
        )
    )


def build_listing_funnel(
    listing_id: str,
    events: Iterable[ConversionEvent],
) -> Funnel:
    """
    Funnel for one listing.

    Stage 1 is not applicable: the pool carries no per-listing visitor count.
    """
    events = list(events)
    views = count_distinct_pairs(events, ConversionKind.VIEW, listing_id)
    clicks = count_distinct_pairs(events, ConversionKind.CLICK, listing_id)
    return Funnel(
        steps=(
            FunnelStep(name=STAGE_VISITORS, value=None, conversion=None),
            FunnelStep(name=STAGE_VIEWS, value=views, conversion=None),
            FunnelStep(name=STAGE_CLICKS, value=clicks, conversion=percent(clicks, views)),
        ),
        listing_id=listing_id,
    )


def build_listing_stats(
    listing_id: str,
    events: Iterable[ConversionEvent],
    start: datetime,
    now: datetime,
    bucket_type: BucketType,
) -> ListingStats:
    """
    Views, clicks, CTR and a gap-filled chart for one listing.

    views and clicks are raw event counts; chart visitors are distinct
    viewers per bucket.
    """
    views = clicks = 0
    viewers: dict[str, set[str]] = defaultdict(set)
    clicks_by_bucket: dict[str, int] = defaultdict(int)

    for event in events:
        if event.listing_id != listing_id:
            continue
        ts = parse_timestamp(event.timestamp)
        key = bucket_key(ts, bucket_type) if ts is not None else None
        if event.kind == ConversionKind.VIEW:
            views += 1
            if key is not None:
                viewers[key].add(event.visitor_id)
        elif event.kind == ConversionKind.CLICK:
            clicks += 1
            if key is not None:
                clicks_by_bucket[key] += 1

    chart = tuple(
        TrafficPoint(date=key, visitors=len(viewers.get(key, ())), clicks=clicks_by_bucket.get(key, 0))
        for key in iter_bucket_keys(start, now, bucket_type)
    )
    return ListingStats(
        listing_id=listing_id,
        views=views,
        clicks=clicks,
        ctr=ctr(clicks, views),
        traffic_chart=chart,
    )
