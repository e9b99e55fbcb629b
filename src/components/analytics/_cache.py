"""
Snapshot cache - TTL + single-flight, keyed by range.

Key behaviors:
- Fresh entries are served until their TTL expires
- Concurrent misses for the same key share one computation
- A failed computation is raised to every waiter and nothing is cached
- The last value is kept after expiry so callers can fall back to it
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generic, TypeVar

from .ports import TimePort

T = TypeVar("T")


@dataclass(frozen=True)
class _Entry(Generic[T]):
    value: T
    expires_at: datetime


class SnapshotCache(Generic[T]):
    """In-process TTL cache with single-flight computation per key."""

    def __init__(self, time_port: TimePort, ttl_seconds: int = 30) -> None:
        self._time = time_port
        self._ttl = timedelta(seconds=ttl_seconds)
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry[T]] = {}
        self._inflight: dict[str, Future[T]] = {}

    def get(self, key: str) -> T | None:
        """Fresh cached value or None."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._time.now_utc() < entry.expires_at:
                return entry.value
        return None

    def get_stale(self, key: str) -> T | None:
        """Last computed value regardless of expiry."""
        with self._lock:
            entry = self._entries.get(key)
            return entry.value if entry is not None else None

    def get_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        """
        Return the fresh value for key, computing it at most once concurrently.

        Followers block on the leader's future and receive its result or error.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._time.now_utc() < entry.expires_at:
                return entry.value

            future = self._inflight.get(key)
            is_leader = future is None
            if future is None:
                future = Future()
                self._inflight[key] = future

        if not is_leader:
            return future.result()

        try:
            value = compute()
        except BaseException as e:
            with self._lock:
                self._inflight.pop(key, None)
            future.set_exception(e)
            raise

        with self._lock:
            self._entries[key] = _Entry(value=value, expires_at=self._time.now_utc() + self._ttl)
            self._inflight.pop(key, None)
        future.set_result(value)
        return value

    def invalidate(self, key: str | None = None) -> None:
        """Drop one key, or everything."""
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)
