"""
Rescore Job Scheduler Adapter.

In-process periodic runner for the trending score batch pass.

Production triggers the pass from an external cron hitting
/api/cron/update-scores; this provides equivalent functionality for local
development and single-process deployments.

Key behaviors:
- Background thread re-runs the pass every interval
- A pass never overlaps another pass in the same process
- Failures are logged and the loop keeps going
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from src.components.ranking import RescoreInput, RescoreResult, run_rescore
from src.components.ranking.ports import (
    EventSourcePort,
    ListingRepoPort,
    RankingRulesPort,
    TimePort,
)

logger = logging.getLogger(__name__)


class RescoreJob:
    """Binds the rescoring entry point to its ports."""

    def __init__(
        self,
        source: EventSourcePort,
        listings: ListingRepoPort,
        time_port: TimePort,
        rules: RankingRulesPort | None = None,
    ) -> None:
        self._source = source
        self._listings = listings
        self._time = time_port
        self._rules = rules

    def __call__(self) -> RescoreResult:
        return run_rescore(
            RescoreInput(),
            source=self._source,
            listings=self._listings,
            time_port=self._time,
            rules=self._rules,
        )


class RescoreJobScheduler:
    """
    Dev rescoring scheduler with background polling.

    Runs a background thread that re-runs the rescoring pass at a
    configurable interval.
    """

    def __init__(
        self,
        job: Callable[[], RescoreResult],
        interval_seconds: float = 3600.0,
    ) -> None:
        """
        Initialize scheduler.

        Args:
            job: Callable running one rescoring pass
            interval_seconds: Interval between passes
        """
        self._job = job
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._run_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._running = False
        self._last_result: RescoreResult | None = None

    def start(self) -> None:
        """Start the background scheduler."""
        if self._running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(target=self._poll_loop, name="rescore", daemon=True)
        self._thread.start()
        self._running = True
        logger.info("Rescore scheduler started (interval: %.1fs)", self._interval)

    def stop(self) -> None:
        """Stop the scheduler gracefully."""
        if not self._running:
            return

        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=5.0)
        self._running = False
        logger.info("Rescore scheduler stopped")

    def trigger_now(self) -> RescoreResult:
        """Run one pass immediately, waiting for any pass already running."""
        with self._run_lock:
            start = time.monotonic()
            result = self._job()
            self._last_result = result
            logger.info(
                "Rescore pass finished: %d updated, %d failed in %dms",
                result.updated_count,
                len(result.failed),
                int((time.monotonic() - start) * 1000),
            )
            return result

    @property
    def is_running(self) -> bool:
        """Check if scheduler is active."""
        return self._running

    @property
    def last_result(self) -> RescoreResult | None:
        return self._last_result

    def _poll_loop(self) -> None:
        """Background loop."""
        while not self._stop_event.wait(timeout=self._interval):
            try:
                self.trigger_now()
            except Exception:
                logger.exception("Error in rescore loop")
