"""
Tests for DashboardService snapshot assembly.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from src.adapters.memory_store import InMemoryEventStore, InMemoryListingRepo
from src.components.analytics import (
    AnalyticsUnavailableError,
    DashboardInput,
    DashboardRange,
    DashboardService,
    ListingFunnelInput,
    ListingStatsInput,
    create_dashboard_service,
    run_dashboard,
    run_listing_funnel,
    run_listing_stats,
    run_section,
)
from src.components.analytics.component import _build_config
from src.core.entities import ConversionKind
from src.rules.adapters import AnalyticsRulesAdapter
from src.rules.models import AnalyticsLimits, AnalyticsRules
from tests.fakes import (
    IPHONE,
    NOW,
    FakeTimePort,
    click,
    listing,
    search,
    traffic,
    view,
)


class FlakyEventStore(InMemoryEventStore):
    """Event store whose traffic reads can be switched off."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.down = False

    def list_traffic(self, start: datetime, end: datetime):
        if self.down:
            raise ConnectionError("event log unreachable")
        return super().list_traffic(start, end)


class CountingEventStore(FlakyEventStore):
    """Event store that records how often each conversion kind is read."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.conversion_reads: list[ConversionKind | None] = []

    def list_conversions(self, start, end, kind=None, listing_id=None):
        self.conversion_reads.append(kind)
        return super().list_conversions(start, end, kind=kind, listing_id=listing_id)


class CountingListingRepo(InMemoryListingRepo):
    """Listing repo that counts full catalog reads."""

    def __init__(self, listings=None) -> None:
        super().__init__(listings)
        self.list_all_calls = 0

    def list_all(self):
        self.list_all_calls += 1
        return super().list_all()


class BrokenListingRepo(InMemoryListingRepo):
    """Listing repo whose catalog read always fails."""

    def list_all(self):
        raise RuntimeError("catalog offline")


def _seed_store(**kwargs) -> FlakyEventStore:
    return FlakyEventStore(
        traffic=[
            traffic(5, ip="1.1.1.1", referrer="https://www.google.com/search"),
            traffic(60, ip="1.1.1.1"),
            traffic(120, ip="2.2.2.2", ua=IPHONE, country="GB"),
            traffic(3000, ip="3.3.3.3", path="/advertise"),
        ],
        conversions=[
            view("l1", "v1"),
            view("l1", "v2"),
            view("l2", "v1"),
            click("l1", "v1"),
        ],
        searches=[search("crypto"), search("nothing here", results_count=0)],
        **kwargs,
    )


def _catalog() -> InMemoryListingRepo:
    return InMemoryListingRepo(
        [
            listing("l1", "Alpha", category="SaaS", country="Germany", is_featured=True, days_old=2),
            listing("l2", "Beta", category="Crypto", days_old=40),
        ]
    )


@pytest.fixture
def service(time_port: FakeTimePort) -> DashboardService:
    return DashboardService(_seed_store(), _catalog(), time_port=time_port)


class TestRunSection:
    """Test section isolation helper."""

    def test_success(self) -> None:
        result = run_section("totals", lambda: 3, 0)
        assert result.ok and result.value == 3

    def test_failure_uses_default(self) -> None:
        def boom() -> int:
            raise ValueError("bad data")

        result = run_section("totals", boom, 0)
        assert not result.ok
        assert result.value == 0
        assert result.error == "bad data"


class TestSnapshot:
    """Test full snapshot computation."""

    def test_week_snapshot(self, service: DashboardService) -> None:
        snapshot = run_dashboard(DashboardInput(range=DashboardRange.WEEK), service=service)

        assert snapshot.range == DashboardRange.WEEK
        assert snapshot.generated_at == NOW
        assert snapshot.warnings == ()
        assert snapshot.has_warnings is False
        assert snapshot.is_stale is False

        assert snapshot.totals.unique_visitors == 3
        assert snapshot.totals.total_views == 4
        assert snapshot.totals.advertise_views == 1
        assert snapshot.totals.live_users == 1

        assert [t.id for t in snapshot.top_listings] == ["l1", "l2"]
        assert [f.id for f in snapshot.featured_listings] == ["l1"]
        assert [(o.country, o.count) for o in snapshot.listing_origins] == [
            ("Germany", 1),
            ("Unknown", 1),
        ]
        assert snapshot.searches.zero_results[0].query == "nothing here"
        assert snapshot.new_listings_count.week == 1
        # 7 days stepped daily from start inclusive of now
        assert len(snapshot.traffic_chart) == 8

    def test_unique_visitors_shared_across_sections(self, service: DashboardService) -> None:
        snapshot = service.compute_snapshot(DashboardRange.WEEK)
        base = snapshot.totals.unique_visitors
        assert snapshot.funnel.steps[0].value == base
        assert sum(d.count for d in snapshot.breakdowns.devices) == base

    def test_day_range_is_hourly(self, service: DashboardService) -> None:
        snapshot = service.compute_snapshot(DashboardRange.DAY)
        assert len(snapshot.traffic_chart) == 25
        assert snapshot.traffic_chart[-1].date == "2026-03-15T12:00"
        # The /advertise visit was 50 hours ago
        assert snapshot.totals.unique_visitors == 2

    def test_section_failure_becomes_warning(self, time_port: FakeTimePort) -> None:
        service = DashboardService(_seed_store(), BrokenListingRepo(), time_port=time_port)

        snapshot = service.compute_snapshot(DashboardRange.WEEK)

        failed = {w.section for w in snapshot.warnings}
        assert {
            "top_listings",
            "click_breakdown",
            "category_trends",
            "featured_listings",
            "listing_origins",
        } <= failed
        assert snapshot.has_warnings
        assert snapshot.top_listings == ()
        assert snapshot.featured_listings == ()
        assert snapshot.listing_origins == ()
        assert snapshot.totals.unique_visitors == 3
        assert all(w.message == "catalog offline" for w in snapshot.warnings)

    def test_shared_reads_happen_once(self, time_port: FakeTimePort) -> None:
        store = CountingEventStore(conversions=[view("l1", "v1"), click("l1", "v1")])
        repo = CountingListingRepo([listing("l1", country="Germany")])
        service = DashboardService(store, repo, time_port=time_port)

        snapshot = service.compute_snapshot(DashboardRange.WEEK)

        assert snapshot.warnings == ()
        assert repo.list_all_calls == 1
        assert store.conversion_reads.count(ConversionKind.VIEW) == 1


class TestCachingAndFallback:
    """Test cache use and stale fallback."""

    def test_cache_hit(self, service: DashboardService, time_port: FakeTimePort) -> None:
        first = service.get_snapshot(DashboardRange.WEEK)
        time_port.advance(10)
        assert service.get_snapshot(DashboardRange.WEEK) is first

    def test_bypass_cache(self, service: DashboardService) -> None:
        first = service.get_snapshot(DashboardRange.WEEK)
        again = run_dashboard(DashboardInput(use_cache=False), service=service)
        assert again is not first

    def test_pool_failure_without_cache(self, time_port: FakeTimePort) -> None:
        store = _seed_store()
        store.down = True
        service = DashboardService(store, _catalog(), time_port=time_port)

        with pytest.raises(AnalyticsUnavailableError):
            service.get_snapshot(DashboardRange.WEEK)

    def test_pool_failure_serves_stale(self, time_port: FakeTimePort) -> None:
        store = _seed_store()
        service = DashboardService(store, _catalog(), time_port=time_port)
        fresh = service.get_snapshot(DashboardRange.WEEK)

        store.down = True
        time_port.advance(3600)
        stale = service.get_snapshot(DashboardRange.WEEK)

        assert stale.is_stale is True
        assert stale.generated_at == fresh.generated_at
        assert stale.totals == fresh.totals

    def test_stale_is_per_range(self, time_port: FakeTimePort) -> None:
        store = _seed_store()
        service = DashboardService(store, _catalog(), time_port=time_port)
        service.get_snapshot(DashboardRange.WEEK)
        store.down = True

        with pytest.raises(AnalyticsUnavailableError):
            service.get_snapshot(DashboardRange.MONTH)


class TestListingFunnel:
    """Test the per-listing funnel entry point."""

    def test_listing_funnel(self, service: DashboardService) -> None:
        funnel = run_listing_funnel(ListingFunnelInput(listing_id="l1"), service=service)

        assert funnel.listing_id == "l1"
        assert funnel.steps[0].value is None
        assert funnel.steps[1].value == 2
        assert funnel.steps[2].value == 1
        assert funnel.steps[2].conversion == 50


class TestListingStats:
    """Test the per-listing stats entry point."""

    def test_listing_stats(self, service: DashboardService) -> None:
        stats = run_listing_stats(ListingStatsInput(listing_id="l1"), service=service)

        assert stats.listing_id == "l1"
        assert stats.views == 2
        assert stats.clicks == 1
        assert stats.ctr == 50.0
        assert len(stats.traffic_chart) == 8
        assert stats.traffic_chart[-1].visitors == 2

    def test_day_range_is_hourly(self, service: DashboardService) -> None:
        stats = run_listing_stats(
            ListingStatsInput(listing_id="l2", range=DashboardRange.DAY), service=service
        )
        assert stats.views == 1
        assert len(stats.traffic_chart) == 25


class TestConfigFromRules:
    """Test building service config from the rules adapter."""

    def test_defaults_without_rules(self) -> None:
        config = _build_config(None)
        assert config.cache_ttl_seconds == 30
        assert config.geo_limit == 10

    def test_rules_flow_into_config(self) -> None:
        rules = AnalyticsRules(
            cache_ttl_seconds=5,
            max_workers=2,
            limits=AnalyticsLimits(geo=3, searches=8, origins=4),
        )
        config = _build_config(AnalyticsRulesAdapter(rules))

        assert config.cache_ttl_seconds == 5
        assert config.max_workers == 2
        assert config.geo_limit == 3
        assert config.search_limit == 8
        assert config.peak_hours_limit == 5
        assert config.origins_limit == 4

    def test_factory(self, time_port: FakeTimePort) -> None:
        rules = AnalyticsRulesAdapter(AnalyticsRules(limits=AnalyticsLimits(top_listings=1)))
        service = create_dashboard_service(_seed_store(), _catalog(), time_port, rules)
        assert len(service.compute_snapshot(DashboardRange.WEEK).top_listings) == 1
