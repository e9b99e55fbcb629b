"""
Health endpoints.

Key behaviors:
- /health: overall status from every registered check (503 if any fails)
- /health/ready: readiness check, same checks, boolean body
- Checks are plain objects with a name and a check() method
"""

from __future__ import annotations

import logging
import sqlite3
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# --- Types ---


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@dataclass
class CheckResult:
    """Result of a single health check."""

    name: str
    status: HealthStatus
    message: str = ""
    latency_ms: float = 0.0


class HealthCheck(Protocol):
    """Protocol for health checks."""

    name: str

    def check(self) -> CheckResult:
        """Run the health check and return result."""
        ...


# --- Built-in Checks ---


class ProcessCheck:
    """Basic process liveness check."""

    name = "process"

    def check(self) -> CheckResult:
        return CheckResult(name=self.name, status=HealthStatus.HEALTHY, message="Process is running")


class DatabaseCheck:
    """Event store connectivity: runs a trivial query against the SQLite file."""

    name = "database"

    def __init__(self, connect: Callable[[], sqlite3.Connection]) -> None:
        self._connect = connect

    def check(self) -> CheckResult:
        start = time.monotonic()
        try:
            conn = self._connect()
            try:
                conn.execute("SELECT 1").fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning("Database health check failed: %s", e)
            return CheckResult(
                name=self.name,
                status=HealthStatus.UNHEALTHY,
                message=f"Database error: {e!s}",
                latency_ms=(time.monotonic() - start) * 1000,
            )

        return CheckResult(
            name=self.name,
            status=HealthStatus.HEALTHY,
            message="Database connected",
            latency_ms=(time.monotonic() - start) * 1000,
        )


# --- FastAPI Router ---


def create_health_router(checks: list[HealthCheck], version: str = "0.0.0") -> APIRouter:
    """
    Create FastAPI router for health endpoints.

    Args:
        checks: Checks run on every request
        version: Application version string
    """
    router = APIRouter(tags=["health"])
    started = time.monotonic()

    def run_all() -> list[CheckResult]:
        return [check.check() for check in checks]

    @router.get(
        "/health",
        response_model=None,
        responses={
            200: {"description": "Service is healthy"},
            503: {"description": "Service is unhealthy"},
        },
    )
    def health_check() -> JSONResponse:
        results = run_all()
        healthy = all(r.status == HealthStatus.HEALTHY for r in results)
        overall = HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY

        return JSONResponse(
            content={
                "status": overall.value,
                "version": version,
                "uptime_seconds": time.monotonic() - started,
                "checks": [
                    {
                        "name": r.name,
                        "status": r.status.value,
                        "message": r.message,
                        "latency_ms": r.latency_ms,
                    }
                    for r in results
                ],
            },
            status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @router.get("/health/ready", response_model=None)
    def readiness_check() -> JSONResponse:
        """Readiness: all checks must pass."""
        results = run_all()
        is_ready = all(r.status == HealthStatus.HEALTHY for r in results)
        return JSONResponse(
            content={
                "ready": is_ready,
                "checks": [{"name": r.name, "status": r.status.value} for r in results],
            },
            status_code=status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return router
