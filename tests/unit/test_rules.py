"""
Rules loading and validation tests.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from src.app_shell.config import ConfigError, validate_ops_rules
from src.rules.adapters import AnalyticsRulesAdapter, RankingRulesAdapter
from src.rules.loader import DEFAULT_RULES_PATH, load_rules, parse_rules
from src.rules.models import Rules


class TestParseRules:
    """Test YAML parsing and schema validation."""

    def test_empty_document_uses_defaults(self) -> None:
        rules = parse_rules("")
        assert rules == Rules()
        assert rules.analytics.cache_ttl_seconds == 30
        assert rules.ranking.window_days == 7

    def test_partial_override(self) -> None:
        rules = parse_rules("analytics:\n  limits:\n    geo: 3\n")
        assert rules.analytics.limits.geo == 3
        assert rules.analytics.limits.searches == 5

    def test_fenced_block(self) -> None:
        content = "# Notes\n\n```yaml\nranking:\n  click_weight: 20\n```\n\nTrailing prose."
        assert parse_rules(content).ranking.click_weight == 20

    def test_bad_yaml(self) -> None:
        with pytest.raises(ValueError, match="Invalid YAML"):
            parse_rules("analytics: [unclosed")

    def test_unknown_section_rejected(self) -> None:
        with pytest.raises(ValueError, match="validation failed"):
            parse_rules("billing:\n  enabled: true\n")

    @pytest.mark.parametrize("days", [3, 30])
    def test_window_days_bounds(self, days: int) -> None:
        with pytest.raises(ValueError):
            parse_rules(f"ranking:\n  window_days: {days}\n")


class TestLoadRules:
    """Test loading from disk."""

    def test_shipped_rules_file(self) -> None:
        rules = load_rules(DEFAULT_RULES_PATH)
        assert rules.project.slug == "trendboard"
        assert rules.analytics.max_workers == 8

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_rules(tmp_path / "nope.yaml")

    def test_custom_file(self, tmp_path: Path) -> None:
        path = tmp_path / "rules.yaml"
        path.write_text("analytics:\n  cache_ttl_seconds: 5\n")
        assert load_rules(path).analytics.cache_ttl_seconds == 5


class TestRulesAdapters:
    """Test port adapters over the rules models."""

    def test_analytics_adapter(self) -> None:
        adapter = AnalyticsRulesAdapter(parse_rules("analytics:\n  live_window_minutes: 15\n").analytics)
        assert adapter.get_live_window_minutes() == 15
        assert adapter.get_limits()["click_breakdown"] == 20
        assert adapter.get_limits()["origins"] == 10

    def test_ranking_adapter(self) -> None:
        adapter = RankingRulesAdapter(Rules().ranking)
        assert (adapter.get_view_weight(), adapter.get_click_weight()) == (1, 10)
        assert adapter.get_trust_cap() == 10


class TestOpsValidation:
    """Test startup checks."""

    def test_creates_data_dir(self, tmp_path: Path) -> None:
        data_dir = tmp_path / "data"
        validate_ops_rules(Rules(), data_dir)
        assert data_dir.is_dir()

    def test_required_data_dir_missing(self, tmp_path: Path) -> None:
        rules = parse_rules("ops:\n  data_dir_required: true\n")
        with pytest.raises(ConfigError):
            validate_ops_rules(rules, tmp_path / "missing")
