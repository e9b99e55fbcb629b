"""
Tests for geo / device / OS breakdowns.
"""

from __future__ import annotations

import pytest

from src.components.analytics._breakdowns import build_breakdowns, country_name, parse_user_agent
from src.components.analytics._common import AnalyticsConfig
from tests.fakes import (
    ANDROID_PHONE,
    ANDROID_TABLET,
    CHROME_MAC,
    CHROME_WINDOWS,
    IPAD,
    IPHONE,
    make_pool,
    traffic,
)


class TestParseUserAgent:
    """Test coarse (os, device) parsing."""

    @pytest.mark.parametrize(
        ("ua", "expected"),
        [
            (CHROME_WINDOWS, ("Windows", "Desktop")),
            (CHROME_MAC, ("macOS", "Desktop")),
            (IPHONE, ("iOS", "Mobile")),
            (IPAD, ("iOS", "Tablet")),
            (ANDROID_PHONE, ("Android", "Mobile")),
            (ANDROID_TABLET, ("Android", "Tablet")),
            ("Mozilla/5.0 (X11; Linux x86_64) Firefox/121.0", ("Linux", "Desktop")),
        ],
    )
    def test_known_agents(self, ua: str, expected: tuple[str, str]) -> None:
        assert parse_user_agent(ua) == expected

    def test_missing_ua(self) -> None:
        assert parse_user_agent(None) == ("Other", "Desktop")

    def test_ipad_is_tablet_despite_mobile_token(self) -> None:
        assert "Mobile" in IPAD
        assert parse_user_agent(IPAD)[1] == "Tablet"


class TestBuildBreakdowns:
    """Test breakdown aggregation."""

    def test_percentages_use_unique_visitors(self) -> None:
        pool = make_pool(
            [
                traffic(1, ip="1.1.1.1", ua=IPHONE, country="US"),
                traffic(2, ip="1.1.1.1", ua=IPHONE, country="US"),
                traffic(3, ip="2.2.2.2", ua=CHROME_WINDOWS, country="DE"),
                traffic(4, ip="3.3.3.3", ua=CHROME_WINDOWS, country="DE"),
                traffic(5, ip="4.4.4.4", ua=CHROME_MAC, country=None),
            ]
        )
        result = build_breakdowns(pool)

        assert pool.unique_visitors == 4
        geo = {g.code: g for g in result.geo}
        assert geo["DE"].users == 2 and geo["DE"].percentage == 50
        assert geo["US"].users == 1 and geo["US"].percentage == 25
        assert geo["Other"].users == 1

        devices = {d.name: d for d in result.devices}
        assert devices["Desktop"].count == 3 and devices["Desktop"].percentage == 75
        assert devices["Mobile"].percentage == 25

        os_stats = {o.name: o.percentage for o in result.os}
        assert os_stats == {"Windows": 50, "iOS": 25, "macOS": 25}

    def test_sorted_by_count(self) -> None:
        pool = make_pool(
            [
                traffic(1, ip="1.1.1.1", country="FR"),
                traffic(1, ip="2.2.2.2", country="GB"),
                traffic(1, ip="3.3.3.3", country="GB"),
            ]
        )
        result = build_breakdowns(pool)
        assert [g.code for g in result.geo] == ["GB", "FR"]
        assert result.geo[0].country == "United Kingdom"

    def test_top_source_per_country(self) -> None:
        pool = make_pool(
            [
                traffic(1, ip="1.1.1.1", country="US", referrer="https://t.co/x"),
                traffic(2, ip="2.2.2.2", country="US", referrer="https://t.co/y"),
                traffic(3, ip="3.3.3.3", country="US", referrer=None),
            ]
        )
        assert build_breakdowns(pool).geo[0].top_source == "Twitter"

    def test_geo_limit(self) -> None:
        codes = ["US", "GB", "DE", "FR", "IN"]
        pool = make_pool([traffic(1, ip=f"10.0.0.{i}", country=c) for i, c in enumerate(codes)])
        assert len(build_breakdowns(pool, AnalyticsConfig(geo_limit=3)).geo) == 3

    def test_lowercase_country_normalized(self) -> None:
        pool = make_pool([traffic(1, country="us")])
        assert build_breakdowns(pool).geo[0].code == "US"

    def test_stored_other_merges_with_missing_country(self) -> None:
        pool = make_pool(
            [
                traffic(1, ip="1.1.1.1", country="Other"),
                traffic(2, ip="2.2.2.2", country=None),
                traffic(3, ip="3.3.3.3", country="other"),
            ]
        )
        geo = build_breakdowns(pool).geo

        assert [g.code for g in geo] == ["Other"]
        assert geo[0].users == 3
        assert geo[0].country == "Other"

    def test_unknown_country_code_kept(self) -> None:
        assert country_name("ZZ") == "ZZ"
