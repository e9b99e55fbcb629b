"""
Session and engagement aggregation.

Key behaviors:
- Bounce: pool visitor with no CLICK conversion in range
- Session duration: first-to-last hit per identity, capped (default 30 min)
- Return visitor: identity with more than one pool row
- Peak hours: unique identities per UTC hour-of-day, top N
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC

from ._common import DEFAULT_CONFIG, AnalyticsConfig, percent, round_half_up
from .models import EngagementStats, MasterVisitorPool, PeakHour


def calculate_bounce_rate(pool: MasterVisitorPool) -> int:
    """Percent of pool visitors without a click; denominator is pool.unique_visitors."""
    clickers = {click.visitor_id for click in pool.clicks}
    bounced = len(pool.identities - clickers)
    return percent(bounced, pool.unique_visitors)


def session_durations(
    pool: MasterVisitorPool,
    cap_seconds: int = DEFAULT_CONFIG.session_cap_seconds,
) -> dict[str, float]:
    """
    Per-identity session duration in seconds.

    Identities whose rows all lack a parseable timestamp still count (as 0).
    """
    spans: dict[str, list[float]] = defaultdict(list)
    for row in pool.rows:
        stamps = spans[row.identity]
        if row.timestamp is not None:
            stamps.append(row.timestamp.timestamp())

    durations: dict[str, float] = {}
    for identity, stamps in spans.items():
        if len(stamps) < 2:
            durations[identity] = 0.0
        else:
            durations[identity] = min(max(stamps) - min(stamps), float(cap_seconds))
    return durations


def calculate_avg_session_duration(
    pool: MasterVisitorPool,
    cap_seconds: int = DEFAULT_CONFIG.session_cap_seconds,
) -> int:
    """Mean session duration over all pool identities, whole seconds."""
    durations = session_durations(pool, cap_seconds)
    if not durations:
        return 0
    return round_half_up(sum(durations.values()) / len(durations))


def calculate_return_visitor_rate(pool: MasterVisitorPool) -> int:
    """Percent of identities with more than one pool row."""
    rows_per_identity: dict[str, int] = defaultdict(int)
    for row in pool.rows:
        rows_per_identity[row.identity] += 1
    returning = sum(1 for count in rows_per_identity.values() if count > 1)
    return percent(returning, pool.unique_visitors)


def calculate_peak_hours(pool: MasterVisitorPool, limit: int = 5) -> tuple[PeakHour, ...]:
    """Top hours of day by unique visitors (count desc, then hour asc)."""
    by_hour: dict[int, set[str]] = defaultdict(set)
    for row in pool.rows:
        if row.timestamp is None:
            continue
        by_hour[row.timestamp.astimezone(UTC).hour].add(row.identity)

    ranked = sorted(by_hour.items(), key=lambda item: (-len(item[1]), item[0]))
    return tuple(PeakHour(hour=hour, visitors=len(ids)) for hour, ids in ranked[:limit])


def build_engagement_stats(
    pool: MasterVisitorPool,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> EngagementStats:
    """All session/engagement metrics for the snapshot."""
    return EngagementStats(
        bounce_rate=calculate_bounce_rate(pool),
        avg_session_duration=calculate_avg_session_duration(pool, config.session_cap_seconds),
        return_visitor_rate=calculate_return_visitor_rate(pool),
        peak_hours=calculate_peak_hours(pool, config.peak_hours_limit),
    )
