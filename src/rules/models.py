from pydantic import BaseModel, ConfigDict, Field


class ProjectRules(BaseModel):
    slug: str = "trendboard"
    rules_version: str = "1"


class AnalyticsLimits(BaseModel):
    peak_hours: int = Field(default=5, ge=1, le=24)
    referrers: int = Field(default=10, ge=1)
    geo: int = Field(default=10, ge=1)
    top_listings: int = Field(default=10, ge=1)
    click_breakdown: int = Field(default=20, ge=1)
    searches: int = Field(default=5, ge=1)
    categories: int = Field(default=10, ge=1)
    origins: int = Field(default=10, ge=1)


class AnalyticsRules(BaseModel):
    cache_ttl_seconds: int = Field(default=30, ge=0)
    live_window_minutes: int = Field(default=10, ge=1)
    session_cap_seconds: int = Field(default=1800, ge=1)
    max_workers: int = Field(default=8, ge=1, le=64)
    health_row_warning: int = Field(default=100_000, ge=1)
    limits: AnalyticsLimits = Field(default_factory=AnalyticsLimits)


class RankingRules(BaseModel):
    window_days: int = Field(default=7, ge=7, le=14)
    view_weight: int = Field(default=1, ge=0)
    click_weight: int = Field(default=10, ge=0)
    trust_cap: int = Field(default=10, ge=0)
    rescore_interval_minutes: int = Field(default=60, ge=1)


class OpsRules(BaseModel):
    data_dir_required: bool = False
    run_rescore_scheduler: bool = False


class Rules(BaseModel):
    model_config = ConfigDict(extra="forbid")

    project: ProjectRules = Field(default_factory=ProjectRules)
    analytics: AnalyticsRules = Field(default_factory=AnalyticsRules)
    ranking: RankingRules = Field(default_factory=RankingRules)
    ops: OpsRules = Field(default_factory=OpsRules)
