"""
Ranking component - Trending score and periodic rescoring.
"""

from ._batch import collect_engagement, rescore_listings
from .component import (
    calculate_engagement_score,
    calculate_quality_score,
    calculate_recency_boost,
    calculate_trending_score,
    calculate_trust_score,
    run_rescore,
)
from .models import (
    AFFILIATES_TRUST_TIERS,
    OPTIONAL_QUALITY_FIELDS,
    PAYOUTS_TRUST_TIERS,
    PLACEHOLDER_VALUES,
    EngagementCounts,
    RescoreFailure,
    RescoreInput,
    RescoreResult,
    ScoreBreakdown,
    ScoringConfig,
)
from .ports import RankingRulesPort

__all__ = [
    # Entry points
    "run_rescore",
    "rescore_listings",
    # Pure functions
    "calculate_engagement_score",
    "calculate_quality_score",
    "calculate_recency_boost",
    "calculate_trending_score",
    "calculate_trust_score",
    "collect_engagement",
    # Models
    "EngagementCounts",
    "RescoreFailure",
    "RescoreInput",
    "RescoreResult",
    "ScoreBreakdown",
    "ScoringConfig",
    # Tables
    "AFFILIATES_TRUST_TIERS",
    "OPTIONAL_QUALITY_FIELDS",
    "PAYOUTS_TRUST_TIERS",
    "PLACEHOLDER_VALUES",
    # Ports
    "RankingRulesPort",
]
