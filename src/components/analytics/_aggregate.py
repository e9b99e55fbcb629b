"""
Time-bucketed aggregation - traffic and new-listings charts.

Key behaviors:
- Hourly buckets for 24h, daily buckets for 7d/30d (UTC)
- One pass over the pool for visitors, one pass over clicks for click counts
- Gap-filled: every step from range start to now appears, zero-valued if empty
- Rows with unparseable timestamps are skipped individually
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from src.core.entities import ConversionEvent, ListingProfile, parse_timestamp

from ._common import bucket_key, iter_bucket_keys
from .models import BucketType, MasterVisitorPool, NewListingsPoint, TrafficPoint


@dataclass
class _Bucket:
    visitors: set[str] = field(default_factory=set)
    clicks: int = 0


def count_clicks_by_bucket(
    clicks: Iterable[ConversionEvent],
    bucket_type: BucketType,
) -> dict[str, int]:
    """Click counts per bucket key; unparseable timestamps are skipped."""
    counts: dict[str, int] = {}
    for click in clicks:
        ts = parse_timestamp(click.timestamp)
        if ts is None:
            continue
        key = bucket_key(ts, bucket_type)
        counts[key] = counts.get(key, 0) + 1
    return counts


def build_traffic_chart(
    pool: MasterVisitorPool,
    bucket_type: BucketType,
) -> tuple[TrafficPoint, ...]:
    """
    Gap-free visitors/clicks series for the pool's range.

    Visitors per bucket are distinct pool identities seen in that bucket.
    """
    buckets: dict[str, _Bucket] = {}

    for row in pool.rows:
        if row.timestamp is None:
            continue
        key = bucket_key(row.timestamp, bucket_type)
        buckets.setdefault(key, _Bucket()).visitors.add(row.identity)

    for key, count in count_clicks_by_bucket(pool.clicks, bucket_type).items():
        buckets.setdefault(key, _Bucket()).clicks += count

    points = []
    for key in iter_bucket_keys(pool.start, pool.now, bucket_type):
        bucket = buckets.get(key)
        if bucket is None:
            points.append(TrafficPoint(date=key, visitors=0, clicks=0))
        else:
            points.append(TrafficPoint(date=key, visitors=len(bucket.visitors), clicks=bucket.clicks))

    return tuple(points)


def build_new_listings_chart(
    created_before: int,
    new_listings: Iterable[ListingProfile],
    start: datetime,
    now: datetime,
    bucket_type: BucketType,
) -> tuple[NewListingsPoint, ...]:
    """
    Cumulative listing count per bucket, seeded with listings created before start.
    """
    added: dict[str, int] = {}
    for listing in new_listings:
        ts = parse_timestamp(listing.created_at)
        if ts is None:
            continue
        key = bucket_key(ts, bucket_type)
        added[key] = added.get(key, 0) + 1

    running = created_before
    points = []
    for key in iter_bucket_keys(start, now, bucket_type):
        count = added.get(key, 0)
        running += count
        points.append(NewListingsPoint(date=key, added=count, total=running))

    return tuple(points)
