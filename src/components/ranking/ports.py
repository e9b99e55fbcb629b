"""
Ranking component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from src.core.ports import EventSourcePort, ListingRepoPort, TimePort

__all__ = [
    "EventSourcePort",
    "ListingRepoPort",
    "RankingRulesPort",
    "TimePort",
]


class RankingRulesPort(Protocol):
    """Rules interface for ranking configuration."""

    def get_window_days(self) -> int:
        """Engagement lookback window in days."""
        ...

    def get_view_weight(self) -> int:
        ...

    def get_click_weight(self) -> int:
        ...

    def get_trust_cap(self) -> int:
        ...
