"""
Analytics component - Dashboard aggregation over raw traffic events.

Every visitor count in a snapshot derives from one MasterVisitorPool.
"""

from .component import (
    DashboardService,
    SectionResult,
    create_dashboard_service,
    run_dashboard,
    run_listing_funnel,
    run_listing_stats,
    run_section,
)
from .models import (
    AnalyticsError,
    AnalyticsUnavailableError,
    BucketType,
    DashboardInput,
    DashboardRange,
    DashboardSnapshot,
    Funnel,
    FunnelStep,
    InvalidRangeError,
    ListingFunnelInput,
    ListingOrigin,
    ListingStats,
    ListingStatsInput,
    MasterVisitorPool,
    SectionWarning,
    VisitorPoolError,
    parse_range,
)
from .ports import AnalyticsRulesPort, EventSourcePort, ListingRepoPort, TimePort

__all__ = [
    # Entry points
    "run_dashboard",
    "run_listing_funnel",
    "run_listing_stats",
    "create_dashboard_service",
    "DashboardService",
    "SectionResult",
    "run_section",
    # Models
    "BucketType",
    "DashboardInput",
    "DashboardRange",
    "DashboardSnapshot",
    "Funnel",
    "FunnelStep",
    "ListingFunnelInput",
    "ListingOrigin",
    "ListingStats",
    "ListingStatsInput",
    "MasterVisitorPool",
    "SectionWarning",
    "parse_range",
    # Errors
    "AnalyticsError",
    "AnalyticsUnavailableError",
    "InvalidRangeError",
    "VisitorPoolError",
    # Ports
    "AnalyticsRulesPort",
    "EventSourcePort",
    "ListingRepoPort",
    "TimePort",
]
