"""
Geo / device / OS breakdowns of unique visitors.

Percentages use the pool's unique_visitors as denominator.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Callable
from dataclasses import dataclass

from src.core.services.analytics_attrib import classify_referrer

from ._common import DEFAULT_CONFIG, AnalyticsConfig, percent
from .models import BreakdownStat, Breakdowns, GeoStat, MasterVisitorPool

OTHER = "Other"

COUNTRY_NAMES: dict[str, str] = {
    "US": "United States",
    "GB": "United Kingdom",
    "DE": "Germany",
    "FR": "France",
    "IN": "India",
    "BR": "Brazil",
    "CA": "Canada",
    "AU": "Australia",
    "JP": "Japan",
    "KR": "South Korea",
    "CN": "China",
    "RU": "Russia",
    "ES": "Spain",
    "IT": "Italy",
    "NL": "Netherlands",
    "TR": "Turkey",
    "UA": "Ukraine",
    "PL": "Poland",
    "SE": "Sweden",
    "CH": "Switzerland",
    "ID": "Indonesia",
    "MX": "Mexico",
    "NG": "Nigeria",
    "PT": "Portugal",
    "IE": "Ireland",
    "SG": "Singapore",
}


def country_name(code: str) -> str:
    return COUNTRY_NAMES.get(code, code)


# --- User Agent Parsing ---


@dataclass(frozen=True)
class UARule:
    """Ordered user agent rule: first match wins."""

    matches: Callable[[str], bool]
    label: str


def _has(*tokens: str) -> Callable[[str], bool]:
    return lambda ua: any(t in ua for t in tokens)


OS_RULES: tuple[UARule, ...] = (
    UARule(_has("windows"), "Windows"),
    UARule(_has("iphone", "ipad", "ipod"), "iOS"),
    UARule(_has("mac os x", "macintosh"), "macOS"),
    UARule(_has("android"), "Android"),
    UARule(_has("linux", "x11"), "Linux"),
)

DEVICE_RULES: tuple[UARule, ...] = (
    UARule(_has("ipad", "tablet"), "Tablet"),
    UARule(lambda ua: "android" in ua and "mobile" not in ua, "Tablet"),
    UARule(_has("mobile", "iphone"), "Mobile"),
)


def _first_label(rules: tuple[UARule, ...], ua: str, default: str) -> str:
    for rule in rules:
        if rule.matches(ua):
            return rule.label
    return default


def parse_user_agent(user_agent: str | None) -> tuple[str, str]:
    """Coarse (os, device) pair. Missing UA is ("Other", "Desktop")."""
    if not user_agent:
        return OTHER, "Desktop"
    ua = user_agent.lower()
    return _first_label(OS_RULES, ua, OTHER), _first_label(DEVICE_RULES, ua, "Desktop")


# --- Breakdowns ---


def _ranked(groups: dict[str, set[str]], unique_visitors: int) -> tuple[BreakdownStat, ...]:
    stats = [
        BreakdownStat(name=name, count=len(ids), percentage=percent(len(ids), unique_visitors))
        for name, ids in groups.items()
    ]
    stats.sort(key=lambda s: (-s.count, s.name))
    return tuple(stats)


def build_breakdowns(
    pool: MasterVisitorPool,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> Breakdowns:
    """Single pass over the pool grouping identities by country, device and OS."""
    by_country: dict[str, set[str]] = defaultdict(set)
    country_sources: dict[str, Counter[str]] = defaultdict(Counter)
    by_device: dict[str, set[str]] = defaultdict(set)
    by_os: dict[str, set[str]] = defaultdict(set)

    for row in pool.rows:
        event = row.event
        raw = (event.country or "").strip()
        code = OTHER if not raw or raw.upper() == OTHER.upper() else raw.upper()
        by_country[code].add(row.identity)
        country_sources[code][classify_referrer(event.referrer).name] += 1

        os_name, device = parse_user_agent(event.user_agent)
        by_os[os_name].add(row.identity)
        by_device[device].add(row.identity)

    geo = [
        GeoStat(
            code=code,
            country=country_name(code),
            users=len(ids),
            percentage=percent(len(ids), pool.unique_visitors),
            top_source=country_sources[code].most_common(1)[0][0],
        )
        for code, ids in by_country.items()
    ]
    geo.sort(key=lambda g: (-g.users, g.code))

    return Breakdowns(
        geo=tuple(geo[: config.geo_limit]),
        devices=_ranked(by_device, pool.unique_visitors),
        os=_ranked(by_os, pool.unique_visitors),
    )
