"""
Ranking component - Trending score calculation.

Pure, additive scoring over four parts plus the operator's manual boost:

- Engagement: unique views * 1 + outbound clicks * 10 over a rolling window
- Quality: 10 for a logo, +5 per filled optional profile field
- Trust: affiliate tier + payout tier, capped at 10
- Recency: 100 under 3 days old, 50 under 7 days, else 0

Invariants:
- Identical inputs always give an identical score
- Only the recency term depends on `now`
- Scoring never raises; bad or unknown values contribute 0
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from src.core.entities import ListingProfile, parse_timestamp

from .models import (
    DEFAULT_SCORING_CONFIG,
    EngagementCounts,
    RescoreInput,
    RescoreResult,
    ScoreBreakdown,
    ScoringConfig,
)
from .ports import EventSourcePort, ListingRepoPort, RankingRulesPort, TimePort

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


def _build_config(rules: RankingRulesPort | None) -> ScoringConfig:
    """Build scoring config from rules port."""
    if rules is None:
        return ScoringConfig()

    return ScoringConfig(
        window_days=rules.get_window_days(),
        view_weight=rules.get_view_weight(),
        click_weight=rules.get_click_weight(),
        trust_cap=rules.get_trust_cap(),
    )


# --- Pure Functions (Functional Core) ---


def _is_filled(value: Any, placeholders: frozenset[str]) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != "" and value not in placeholders
    return True


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def calculate_quality_score(
    listing: ListingProfile,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> int:
    """
    Profile completeness score.

    Placeholder strings ("No description provided." etc.) count as empty.
    """
    score = 0
    logo = listing.logo_url
    if isinstance(logo, str) and logo.strip():
        score += config.logo_points

    for name in config.optional_fields:
        if _is_filled(getattr(listing, name, None), config.placeholders):
            score += config.field_points

    return score


def calculate_trust_score(
    listing: ListingProfile,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> int:
    """Tier lookups for audience size and payout volume, capped."""
    affiliates = config.affiliates_tiers.get(listing.affiliates_count_range or "", 0)
    payouts = config.payouts_tiers.get(listing.payouts_total_range or "", 0)
    return min(affiliates + payouts, config.trust_cap)


def calculate_recency_boost(
    created_at: datetime | str | None,
    now: datetime,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> int:
    """Boost for newly added listings. Unknown creation time gets none."""
    created = parse_timestamp(created_at)
    current = parse_timestamp(now)
    if created is None or current is None:
        return 0

    age_days = (current - created).total_seconds() / SECONDS_PER_DAY
    for max_age, boost in config.recency_tiers:
        if age_days < max_age:
            return boost
    return 0


def calculate_engagement_score(
    engagement: EngagementCounts,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> int:
    views = max(0, _as_int(engagement.unique_views))
    clicks = max(0, _as_int(engagement.outbound_clicks))
    return views * config.view_weight + clicks * config.click_weight


def calculate_trending_score(
    listing: ListingProfile,
    engagement: EngagementCounts,
    now: datetime,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> ScoreBreakdown:
    """
    Composite trending score for one listing.

    Args:
        listing: Listing profile (quality, trust and creation fields)
        engagement: Windowed unique views and outbound clicks
        now: Evaluation time for the recency term
        config: Scoring configuration

    Returns:
        ScoreBreakdown with each part and the total
    """
    engagement_score = calculate_engagement_score(engagement, config)
    quality = calculate_quality_score(listing, config)
    trust = calculate_trust_score(listing, config)
    recency = calculate_recency_boost(listing.created_at, now, config)
    manual_boost = _as_int(listing.manual_score_boost)

    return ScoreBreakdown(
        engagement=engagement_score,
        quality=quality,
        trust=trust,
        recency=recency,
        manual_boost=manual_boost,
        total=engagement_score + quality + trust + recency + manual_boost,
    )


# --- Component Entry Point ---


def run_rescore(
    inp: RescoreInput,
    *,
    source: EventSourcePort,
    listings: ListingRepoPort,
    time_port: TimePort,
    rules: RankingRulesPort | None = None,
) -> RescoreResult:
    """
    Recompute and store trending and quality scores.

    Idempotent full pass; a listing whose score cannot be written is
    logged and skipped.
    """
    from ._batch import rescore_listings

    return rescore_listings(
        source=source,
        listings=listings,
        now=time_port.now_utc(),
        config=_build_config(rules),
        listing_ids=inp.listing_ids,
    )
