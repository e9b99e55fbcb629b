import logging
import sqlite3
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.adapters.dev_jobs import RescoreJobScheduler
from src.api.deps import get_rescore_job, get_rules, get_settings
from src.app_shell.config import validate_ops_rules
from src.shell.http.health import DatabaseCheck, ProcessCheck, create_health_router

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    # Load rules and validate on startup (fail-fast)
    try:
        rules = get_rules(settings)
        validate_ops_rules(rules, settings.data_dir)
        logger.info("Rules loaded from %s", settings.rules_path)
    except Exception:
        logger.critical("Rules load failed", exc_info=True)
        raise

    scheduler: RescoreJobScheduler | None = None
    if rules.ops.run_rescore_scheduler:
        scheduler = RescoreJobScheduler(
            get_rescore_job(settings, rules),
            interval_seconds=rules.ranking.rescore_interval_minutes * 60,
        )
        scheduler.start()

    yield

    if scheduler is not None:
        scheduler.stop()


app = FastAPI(
    title="Trendboard API",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- Routers ---
from src.api.routes import admin_analytics, cron  # noqa: E402

app.include_router(admin_analytics.router, prefix="/api/admin/analytics", tags=["Admin Analytics"])
app.include_router(cron.router, prefix="/api/cron", tags=["Cron"])
app.include_router(
    create_health_router(
        [ProcessCheck(), DatabaseCheck(lambda: sqlite3.connect(get_settings().db_path))],
        version=VERSION,
    )
)


# CORS (Allow Frontend)
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)
