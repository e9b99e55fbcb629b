"""
Ranking component input/output models.

Tier tables and placeholder strings mirror the values listing owners pick
from in the submission form.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

# --- Scoring Tables ---

OPTIONAL_QUALITY_FIELDS: tuple[str, ...] = (
    "description",
    "cookie_duration",
    "payout_method",
    "avg_order_value",
    "x_handle",
    "target_audience",
    "affiliates_count_range",
    "min_payout_value",
    "founding_date",
    "approval_time_range",
    "email",
    "payouts_total_range",
)

PLACEHOLDER_VALUES: frozenset[str] = frozenset(
    {
        "No description provided.",
        "No tagline provided.",
        "Not specified",
    }
)

AFFILIATES_TRUST_TIERS: Mapping[str, int] = MappingProxyType(
    {
        "0-50": 1,
        "51-100": 2,
        "101-500": 4,
        "501-1000": 6,
        "1001-5000": 8,
        "5001+": 10,
    }
)

PAYOUTS_TRUST_TIERS: Mapping[str, int] = MappingProxyType(
    {
        "$0-$10k": 1,
        "$10k-$50k": 2,
        "$50k-$100k": 4,
        "$100k-$500k": 6,
        "$500k-$1M": 8,
        "$1M+": 10,
    }
)


# --- Configuration ---


@dataclass(frozen=True)
class ScoringConfig:
    """Trending score configuration."""

    logo_points: int = 10
    field_points: int = 5
    trust_cap: int = 10

    # Recency: (max age in days, boost), checked in order
    recency_tiers: tuple[tuple[float, int], ...] = ((3, 100), (7, 50))

    view_weight: int = 1
    click_weight: int = 10
    window_days: int = 7

    optional_fields: tuple[str, ...] = OPTIONAL_QUALITY_FIELDS
    placeholders: frozenset[str] = PLACEHOLDER_VALUES
    affiliates_tiers: Mapping[str, int] = field(default_factory=lambda: AFFILIATES_TRUST_TIERS)
    payouts_tiers: Mapping[str, int] = field(default_factory=lambda: PAYOUTS_TRUST_TIERS)


DEFAULT_SCORING_CONFIG = ScoringConfig()


# --- Models ---


@dataclass(frozen=True)
class EngagementCounts:
    """Windowed engagement for one listing."""

    unique_views: int = 0
    outbound_clicks: int = 0


@dataclass(frozen=True)
class ScoreBreakdown:
    """Trending score with its components."""

    engagement: int
    quality: int
    trust: int
    recency: int
    manual_boost: int
    total: int


@dataclass(frozen=True)
class RescoreFailure:
    listing_id: str
    message: str


@dataclass(frozen=True)
class RescoreResult:
    """Summary of one rescoring pass."""

    updated_count: int
    failed: tuple[RescoreFailure, ...] = ()

    @property
    def success(self) -> bool:
        return len(self.failed) == 0


# --- Input Models ---


@dataclass(frozen=True)
class RescoreInput:
    """Input for a rescoring pass. listing_ids=None rescans every listing."""

    listing_ids: tuple[str, ...] | None = None
