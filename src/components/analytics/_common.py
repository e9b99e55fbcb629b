"""
Shared analytics helpers - configuration, rounding, range windows.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from .models import BucketType, DashboardRange

# --- Configuration ---


@dataclass(frozen=True)
class AnalyticsConfig:
    """Analytics configuration."""

    cache_ttl_seconds: int = 30
    live_window_minutes: int = 10
    session_cap_seconds: int = 1800
    max_workers: int = 8

    # Table sizes
    peak_hours_limit: int = 5
    referrer_limit: int = 10
    geo_limit: int = 10
    top_listings_limit: int = 10
    click_breakdown_limit: int = 20
    search_limit: int = 5
    category_limit: int = 10
    origins_limit: int = 10

    # Health panel
    health_row_warning: int = 100_000


DEFAULT_CONFIG = AnalyticsConfig()


# --- Rounding ---


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 away from zero for positives."""
    return int(math.floor(value + 0.5))


def percent(part: int, whole: int) -> int:
    """Integer percentage with half-up rounding; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def ctr(clicks: int, visitors: int) -> float:
    """Click-through rate as a percentage with one decimal place."""
    if visitors <= 0:
        return 0.0
    return round_half_up(clicks / visitors * 1000) / 10


# --- Range Windows ---

RANGE_WINDOWS: dict[DashboardRange, timedelta] = {
    DashboardRange.DAY: timedelta(hours=24),
    DashboardRange.WEEK: timedelta(days=7),
    DashboardRange.MONTH: timedelta(days=30),
}


def range_start(range_: DashboardRange, now: datetime) -> datetime:
    """Start of the lookback window for a range."""
    return now - RANGE_WINDOWS[range_]


def bucket_type_for(range_: DashboardRange) -> BucketType:
    """24h charts are hourly, longer ranges daily."""
    return BucketType.HOUR if range_ == DashboardRange.DAY else BucketType.DAY


def bucket_key(ts: datetime, bucket_type: BucketType) -> str:
    """Bucket label: YYYY-MM-DDTHH:00 for hours, YYYY-MM-DD for days (UTC)."""
    ts = ts.astimezone(UTC)
    if bucket_type == BucketType.HOUR:
        return f"{ts.date().isoformat()}T{ts.hour:02d}:00"
    return ts.date().isoformat()


def bucket_step(bucket_type: BucketType) -> timedelta:
    return timedelta(hours=1) if bucket_type == BucketType.HOUR else timedelta(days=1)


def iter_bucket_keys(start: datetime, now: datetime, bucket_type: BucketType) -> list[str]:
    """
    Every bucket key from start to now inclusive, one unit apart.

    Stepping from start (not from a truncated start) mirrors the dashboard's
    "start, start+1, ..., <= now" walk; 24h at hourly steps gives 25 keys.
    """
    keys: list[str] = []
    step = bucket_step(bucket_type)
    current = start
    while current <= now:
        keys.append(bucket_key(current, bucket_type))
        current += step
    return keys
