"""
Rules port adapters.

Expose the validated Rules model through the component rules ports.
"""

from __future__ import annotations

from src.rules.models import AnalyticsRules, RankingRules


class AnalyticsRulesAdapter:
    """AnalyticsRulesPort backed by the analytics section of rules.yaml."""

    def __init__(self, rules: AnalyticsRules) -> None:
        self._rules = rules

    def get_cache_ttl_seconds(self) -> int:
        return self._rules.cache_ttl_seconds

    def get_live_window_minutes(self) -> int:
        return self._rules.live_window_minutes

    def get_session_cap_seconds(self) -> int:
        return self._rules.session_cap_seconds

    def get_max_workers(self) -> int:
        return self._rules.max_workers

    def get_limits(self) -> dict[str, int]:
        return self._rules.limits.model_dump()

    def get_health_row_warning(self) -> int:
        return self._rules.health_row_warning


class RankingRulesAdapter:
    """RankingRulesPort backed by the ranking section of rules.yaml."""

    def __init__(self, rules: RankingRules) -> None:
        self._rules = rules

    def get_window_days(self) -> int:
        return self._rules.window_days

    def get_view_weight(self) -> int:
        return self._rules.view_weight

    def get_click_weight(self) -> int:
        return self._rules.click_weight

    def get_trust_cap(self) -> int:
        return self._rules.trust_cap
