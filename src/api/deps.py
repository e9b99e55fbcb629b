import os
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from src.adapters.clock import SystemClock
from src.adapters.dev_jobs import RescoreJob
from src.adapters.sqlite_db import SQLiteEventStore, SQLiteListingRepo
from src.components.analytics import DashboardService, create_dashboard_service
from src.rules.adapters import AnalyticsRulesAdapter, RankingRulesAdapter
from src.rules.loader import DEFAULT_RULES_PATH, load_rules
from src.rules.models import Rules

DB_FILENAME = "trendboard.db"


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("TRENDBOARD_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / DB_FILENAME)
        self.rules_path = Path(os.environ.get("TRENDBOARD_RULES_PATH", str(DEFAULT_RULES_PATH)))
        self.cron_secret = os.environ.get("TRENDBOARD_CRON_SECRET") or None


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


# --- Repos ---
def get_event_source(settings: Settings = Depends(get_settings)) -> SQLiteEventStore:
    return SQLiteEventStore(settings.db_path)


def get_listing_repo(settings: Settings = Depends(get_settings)) -> SQLiteListingRepo:
    return SQLiteListingRepo(settings.db_path)


def get_clock() -> SystemClock:
    return SystemClock()


# --- Component Services ---
@lru_cache
def get_dashboard_service() -> DashboardService:
    """Process-wide dashboard service; it owns the snapshot cache."""
    settings = get_settings()
    rules = get_rules(settings)
    return create_dashboard_service(
        source=SQLiteEventStore(settings.db_path),
        listings=SQLiteListingRepo(settings.db_path),
        time_port=SystemClock(),
        rules=AnalyticsRulesAdapter(rules.analytics),
    )


def get_rescore_job(
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> RescoreJob:
    return RescoreJob(
        source=SQLiteEventStore(settings.db_path),
        listings=SQLiteListingRepo(settings.db_path),
        time_port=SystemClock(),
        rules=RankingRulesAdapter(rules.ranking),
    )


def get_cron_secret(settings: Settings = Depends(get_settings)) -> str | None:
    return settings.cron_secret
