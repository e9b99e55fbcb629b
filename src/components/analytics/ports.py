"""
Analytics component port definitions.
"""

from __future__ import annotations

from typing import Protocol

from src.core.ports.db import EventSourcePort, ListingRepoPort
from src.core.ports.time import TimePort

__all__ = [
    "AnalyticsRulesPort",
    "EventSourcePort",
    "ListingRepoPort",
    "TimePort",
]


class AnalyticsRulesPort(Protocol):
    """Port for analytics rules configuration."""

    def get_cache_ttl_seconds(self) -> int:
        """Snapshot cache TTL."""
        ...

    def get_live_window_minutes(self) -> int:
        """Window for the live-visitor counter."""
        ...

    def get_session_cap_seconds(self) -> int:
        """Upper bound on a single visitor's session duration."""
        ...

    def get_max_workers(self) -> int:
        """Thread pool size for concurrent sections."""
        ...

    def get_limits(self) -> dict[str, int]:
        """Row limits per table (peak_hours, referrers, geo, top_listings, ...)."""
        ...

    def get_health_row_warning(self) -> int:
        """Pool size above which the health panel warns."""
        ...
