"""
Tests for time-bucketed aggregation.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

from src.components.analytics._aggregate import (
    build_new_listings_chart,
    build_traffic_chart,
    count_clicks_by_bucket,
)
from src.components.analytics._common import (
    bucket_key,
    bucket_type_for,
    iter_bucket_keys,
    range_start,
)
from src.components.analytics.models import BucketType, DashboardRange
from src.core.entities import ConversionEvent, ConversionKind
from tests.fakes import NOW, click, listing, make_pool, traffic


class TestBucketKeys:
    """Test bucket key formatting and range walking."""

    def test_hour_key_format(self) -> None:
        ts = datetime(2026, 3, 15, 7, 42, tzinfo=UTC)
        assert bucket_key(ts, BucketType.HOUR) == "2026-03-15T07:00"

    def test_day_key_format(self) -> None:
        ts = datetime(2026, 3, 15, 23, 59, tzinfo=UTC)
        assert bucket_key(ts, BucketType.DAY) == "2026-03-15"

    def test_keys_use_utc(self) -> None:
        from datetime import timezone

        ts = datetime(2026, 3, 15, 1, 0, tzinfo=timezone(timedelta(hours=5)))
        assert bucket_key(ts, BucketType.HOUR) == "2026-03-14T20:00"

    def test_granularity_per_range(self) -> None:
        assert bucket_type_for(DashboardRange.DAY) == BucketType.HOUR
        assert bucket_type_for(DashboardRange.WEEK) == BucketType.DAY
        assert bucket_type_for(DashboardRange.MONTH) == BucketType.DAY

    def test_24h_walk_has_25_hourly_keys(self) -> None:
        start = range_start(DashboardRange.DAY, NOW)
        keys = iter_bucket_keys(start, NOW, BucketType.HOUR)
        assert len(keys) == 25

    def test_7d_walk_has_8_daily_keys(self) -> None:
        start = range_start(DashboardRange.WEEK, NOW)
        assert len(iter_bucket_keys(start, NOW, BucketType.DAY)) == 8


class TestTrafficChart:
    """Test the gap-filled traffic series."""

    def test_24h_series_is_gap_free(self) -> None:
        pool = make_pool([traffic(30)], hours=24)
        chart = build_traffic_chart(pool, BucketType.HOUR)

        assert len(chart) == 25
        stamps = [datetime.fromisoformat(p.date).replace(tzinfo=UTC) for p in chart]
        for earlier, later in zip(stamps, stamps[1:]):
            assert later - earlier == timedelta(hours=1)

    def test_empty_buckets_are_zero(self) -> None:
        pool = make_pool([], hours=24)
        chart = build_traffic_chart(pool, BucketType.HOUR)
        assert all(p.visitors == 0 and p.clicks == 0 for p in chart)

    def test_visitors_are_distinct_per_bucket(self) -> None:
        pool = make_pool(
            [
                traffic(1, ip="1.1.1.1"),
                traffic(2, ip="1.1.1.1"),
                traffic(3, ip="2.2.2.2"),
            ],
            hours=24,
        )
        chart = build_traffic_chart(pool, BucketType.HOUR)
        by_date = {p.date: p.visitors for p in chart}
        assert by_date["2026-03-15T11:00"] == 2
        assert sum(p.visitors for p in chart) == 2

    def test_clicks_counted_per_bucket(self) -> None:
        pool = make_pool([traffic(5)], [click("l1", "v1", 5), click("l2", "v2", 6)], hours=24)
        chart = build_traffic_chart(pool, BucketType.HOUR)
        assert sum(p.clicks for p in chart) == 2

    def test_daily_buckets(self) -> None:
        pool = make_pool([traffic(60 * 24 * 2), traffic(10, ip="9.9.9.9")], hours=24 * 7)
        chart = build_traffic_chart(pool, BucketType.DAY)
        by_date = {p.date: p.visitors for p in chart}
        assert by_date["2026-03-13"] == 1
        assert by_date["2026-03-15"] == 1
        assert len(chart) == 8

    def test_unparseable_click_skipped(self) -> None:
        bad = ConversionEvent(timestamp="not-a-date", kind=ConversionKind.CLICK, listing_id="l1", visitor_id="v")
        counts = count_clicks_by_bucket([bad, click("l1", "v", 0)], BucketType.HOUR)
        assert sum(counts.values()) == 1


class TestNewListingsChart:
    """Test the cumulative new-listings series."""

    def test_cumulative_from_prior_total(self) -> None:
        start = NOW - timedelta(days=7)
        new = [listing("a", days_old=2), listing("b", days_old=2), listing("c", days_old=0)]
        chart = build_new_listings_chart(5, new, start, NOW, BucketType.DAY)

        assert chart[0].total == 5
        assert chart[-1].total == 8
        by_date = {p.date: p.added for p in chart}
        assert by_date["2026-03-13"] == 2
        assert by_date["2026-03-15"] == 1

    def test_totals_never_decrease(self) -> None:
        start = NOW - timedelta(days=30)
        new = [listing(str(i), days_old=i) for i in range(10)]
        chart = build_new_listings_chart(0, new, start, NOW, BucketType.DAY)
        totals = [p.total for p in chart]
        assert totals == sorted(totals)
        assert totals[-1] == 10
