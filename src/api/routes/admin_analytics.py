"""
Admin Analytics API.

Serves the dashboard snapshot, per-listing funnels and per-listing stats.

Key behaviors:
- Invalid range -> 400
- Pool failure with no cached snapshot -> 503
- A stale snapshot is returned with is_stale=true
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from src.api.deps import get_dashboard_service
from src.components.analytics import (
    AnalyticsUnavailableError,
    DashboardInput,
    DashboardService,
    DashboardSnapshot,
    Funnel,
    InvalidRangeError,
    ListingFunnelInput,
    ListingStats,
    ListingStatsInput,
    parse_range,
    run_dashboard,
    run_listing_funnel,
    run_listing_stats,
)
from src.components.analytics.models import DashboardRange

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Response Models ---


class TrafficPointResponse(BaseModel):
    date: str
    visitors: int
    clicks: int


class PeakHourResponse(BaseModel):
    hour: int
    visitors: int


class GeoStatResponse(BaseModel):
    code: str
    country: str
    users: int
    percentage: int
    top_source: str


class BreakdownStatResponse(BaseModel):
    name: str
    count: int
    percentage: int


class FunnelStepResponse(BaseModel):
    """Funnel stage; value and conversion are null when not applicable."""

    name: str
    value: int | None
    conversion: int | None


class FunnelResponse(BaseModel):
    listing_id: str | None = None
    steps: list[FunnelStepResponse]


class ReferrerStatResponse(BaseModel):
    source: str
    domain: str | None
    visitors: int
    clicks: int
    ctr: float


class TopListingResponse(BaseModel):
    id: str
    name: str
    slug: str | None
    views: int
    clicks: int
    ctr: float


class ClickBreakdownResponse(BaseModel):
    listing_id: str
    listing_name: str
    slug: str | None
    clicks: int


class SearchQueryResponse(BaseModel):
    query: str
    count: int
    results_count: int


class CategoryTrendResponse(BaseModel):
    category: str
    views: int
    percentage: int


class NewListingsPointResponse(BaseModel):
    date: str
    added: int
    total: int


class NewListingsCountResponse(BaseModel):
    day: int
    week: int
    month: int


class FeaturedListingResponse(BaseModel):
    id: str
    name: str
    slug: str | None


class ListingOriginResponse(BaseModel):
    country: str
    count: int


class HealthResponse(BaseModel):
    pool_rows: int
    row_warning: bool


class WarningResponse(BaseModel):
    section: str
    message: str


class ListingStatsResponse(BaseModel):
    """Views, clicks and CTR for one listing over a range."""

    listing_id: str
    views: int
    clicks: int
    ctr: float
    traffic_chart: list[TrafficPointResponse]


class DashboardResponse(BaseModel):
    """Dashboard snapshot for one range."""

    range: str
    generated_at: str
    is_stale: bool

    # Totals
    live_users: int
    total_views: int
    unique_visitors: int
    total_clicks: int
    advertise_views: int

    # Engagement
    bounce_rate: int
    avg_session_duration: int
    return_visitor_rate: int
    peak_hours: list[PeakHourResponse]

    traffic_chart: list[TrafficPointResponse]
    geo_stats: list[GeoStatResponse]
    device_stats: list[BreakdownStatResponse]
    os_stats: list[BreakdownStatResponse]
    funnel: list[FunnelStepResponse]
    referrer_ctr: list[ReferrerStatResponse]

    top_listings: list[TopListingResponse]
    click_breakdown: list[ClickBreakdownResponse]
    top_searches: list[SearchQueryResponse]
    zero_result_searches: list[SearchQueryResponse]
    category_trends: list[CategoryTrendResponse]
    new_listings_chart: list[NewListingsPointResponse]
    new_listings_count: NewListingsCountResponse
    featured_listings: list[FeaturedListingResponse]
    listing_origins: list[ListingOriginResponse]
    health: HealthResponse
    warnings: list[WarningResponse]


# --- Helper Functions ---


def parse_range_param(value: str) -> DashboardRange:
    try:
        return parse_range(value)
    except InvalidRangeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None


def _steps(funnel: Funnel) -> list[FunnelStepResponse]:
    return [
        FunnelStepResponse(name=s.name, value=s.value, conversion=s.conversion)
        for s in funnel.steps
    ]


def snapshot_to_response(snapshot: DashboardSnapshot) -> DashboardResponse:
    """Flatten a snapshot into the dashboard JSON shape."""
    totals = snapshot.totals
    engagement = snapshot.engagement
    breakdowns = snapshot.breakdowns

    return DashboardResponse(
        range=snapshot.range.value,
        generated_at=snapshot.generated_at.isoformat(),
        is_stale=snapshot.is_stale,
        live_users=totals.live_users,
        total_views=totals.total_views,
        unique_visitors=totals.unique_visitors,
        total_clicks=totals.total_clicks,
        advertise_views=totals.advertise_views,
        bounce_rate=engagement.bounce_rate,
        avg_session_duration=engagement.avg_session_duration,
        return_visitor_rate=engagement.return_visitor_rate,
        peak_hours=[PeakHourResponse(hour=p.hour, visitors=p.visitors) for p in engagement.peak_hours],
        traffic_chart=[
            TrafficPointResponse(date=p.date, visitors=p.visitors, clicks=p.clicks)
            for p in snapshot.traffic_chart
        ],
        geo_stats=[
            GeoStatResponse(
                code=g.code,
                country=g.country,
                users=g.users,
                percentage=g.percentage,
                top_source=g.top_source,
            )
            for g in breakdowns.geo
        ],
        device_stats=[
            BreakdownStatResponse(name=d.name, count=d.count, percentage=d.percentage)
            for d in breakdowns.devices
        ],
        os_stats=[
            BreakdownStatResponse(name=o.name, count=o.count, percentage=o.percentage)
            for o in breakdowns.os
        ],
        funnel=_steps(snapshot.funnel),
        referrer_ctr=[
            ReferrerStatResponse(
                source=r.source,
                domain=r.domain,
                visitors=r.visitors,
                clicks=r.clicks,
                ctr=r.ctr,
            )
            for r in snapshot.referrer_ctr
        ],
        top_listings=[
            TopListingResponse(
                id=t.id, name=t.name, slug=t.slug, views=t.views, clicks=t.clicks, ctr=t.ctr
            )
            for t in snapshot.top_listings
        ],
        click_breakdown=[
            ClickBreakdownResponse(
                listing_id=c.listing_id,
                listing_name=c.listing_name,
                slug=c.slug,
                clicks=c.clicks,
            )
            for c in snapshot.click_breakdown
        ],
        top_searches=[
            SearchQueryResponse(query=s.query, count=s.count, results_count=s.results_count)
            for s in snapshot.searches.top
        ],
        zero_result_searches=[
            SearchQueryResponse(query=s.query, count=s.count, results_count=s.results_count)
            for s in snapshot.searches.zero_results
        ],
        category_trends=[
            CategoryTrendResponse(category=c.category, views=c.views, percentage=c.percentage)
            for c in snapshot.category_trends
        ],
        new_listings_chart=[
            NewListingsPointResponse(date=p.date, added=p.added, total=p.total)
            for p in snapshot.new_listings_chart
        ],
        new_listings_count=NewListingsCountResponse(
            day=snapshot.new_listings_count.day,
            week=snapshot.new_listings_count.week,
            month=snapshot.new_listings_count.month,
        ),
        featured_listings=[
            FeaturedListingResponse(id=f.id, name=f.name, slug=f.slug)
            for f in snapshot.featured_listings
        ],
        listing_origins=[
            ListingOriginResponse(country=o.country, count=o.count)
            for o in snapshot.listing_origins
        ],
        health=HealthResponse(
            pool_rows=snapshot.health.pool_rows,
            row_warning=snapshot.health.row_warning,
        ),
        warnings=[WarningResponse(section=w.section, message=w.message) for w in snapshot.warnings],
    )


# --- Routes ---


@router.get("", response_model=DashboardResponse)
def get_dashboard(
    range: str = Query("7d", description="Range: 24h, 7d, 30d"),
    service: DashboardService = Depends(get_dashboard_service),
) -> DashboardResponse:
    """
    Get the dashboard snapshot for a range.

    Sections that failed are listed in `warnings` with empty defaults.
    """
    range_ = parse_range_param(range)

    try:
        snapshot = run_dashboard(DashboardInput(range=range_), service=service)
    except AnalyticsUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Analytics unavailable",
        ) from None

    if snapshot.has_warnings:
        logger.warning(
            "Dashboard %s served with failed sections: %s",
            range_.value,
            ", ".join(w.section for w in snapshot.warnings),
        )

    return snapshot_to_response(snapshot)


@router.get("/funnel", response_model=FunnelResponse)
def get_listing_funnel(
    listing_id: str = Query(..., min_length=1, description="Listing ID"),
    range: str = Query("7d", description="Range: 24h, 7d, 30d"),
    service: DashboardService = Depends(get_dashboard_service),
) -> FunnelResponse:
    """
    Get the conversion funnel for one listing.

    The Visitors stage has null value and conversion.
    """
    range_ = parse_range_param(range)
    funnel = run_listing_funnel(
        ListingFunnelInput(listing_id=listing_id, range=range_),
        service=service,
    )
    return FunnelResponse(listing_id=funnel.listing_id, steps=_steps(funnel))


@router.get("/listing-stats", response_model=ListingStatsResponse)
def get_listing_stats(
    listing_id: str = Query(..., min_length=1, description="Listing ID"),
    range: str = Query("7d", description="Range: 24h, 7d, 30d"),
    service: DashboardService = Depends(get_dashboard_service),
) -> ListingStatsResponse:
    """Get views, clicks, CTR and the traffic chart for one listing."""
    range_ = parse_range_param(range)
    stats: ListingStats = run_listing_stats(
        ListingStatsInput(listing_id=listing_id, range=range_),
        service=service,
    )
    return ListingStatsResponse(
        listing_id=stats.listing_id,
        views=stats.views,
        clicks=stats.clicks,
        ctr=stats.ctr,
        traffic_chart=[
            TrafficPointResponse(date=p.date, visitors=p.visitors, clicks=p.clicks)
            for p in stats.traffic_chart
        ],
    )
