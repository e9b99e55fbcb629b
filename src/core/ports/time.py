"""
Time Adapter Interface.

All internal timestamps are UTC. Injected everywhere "now" matters so
snapshot and scoring computations stay deterministic under test.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time (timezone-aware)."""
        ...
