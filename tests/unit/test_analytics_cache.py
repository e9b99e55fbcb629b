"""
Tests for the snapshot cache (TTL + single-flight).
"""

from __future__ import annotations

import threading

import pytest

from src.components.analytics._cache import SnapshotCache
from tests.fakes import FakeTimePort


class TestTTL:
    """Test expiry behavior."""

    def test_fresh_value_served(self, time_port: FakeTimePort) -> None:
        cache: SnapshotCache[int] = SnapshotCache(time_port, ttl_seconds=30)
        calls: list[int] = []

        def compute() -> int:
            calls.append(1)
            return len(calls)

        assert cache.get_or_compute("7d", compute) == 1
        time_port.advance(29)
        assert cache.get_or_compute("7d", compute) == 1
        assert len(calls) == 1

    def test_expired_value_recomputed(self, time_port: FakeTimePort) -> None:
        cache: SnapshotCache[str] = SnapshotCache(time_port, ttl_seconds=30)
        cache.get_or_compute("7d", lambda: "first")
        time_port.advance(30)

        assert cache.get("7d") is None
        assert cache.get_or_compute("7d", lambda: "second") == "second"

    def test_keys_are_independent(self, time_port: FakeTimePort) -> None:
        cache: SnapshotCache[str] = SnapshotCache(time_port)
        cache.get_or_compute("24h", lambda: "day")
        assert cache.get_or_compute("30d", lambda: "month") == "month"
        assert cache.get("24h") == "day"


class TestStaleAndInvalidate:
    """Test stale reads and invalidation."""

    def test_stale_survives_expiry(self, time_port: FakeTimePort) -> None:
        cache: SnapshotCache[str] = SnapshotCache(time_port, ttl_seconds=1)
        cache.get_or_compute("7d", lambda: "old")
        time_port.advance(3600)
        assert cache.get_stale("7d") == "old"

    def test_stale_missing(self, time_port: FakeTimePort) -> None:
        assert SnapshotCache(time_port).get_stale("7d") is None

    def test_invalidate_one_key(self, time_port: FakeTimePort) -> None:
        cache: SnapshotCache[str] = SnapshotCache(time_port)
        cache.get_or_compute("7d", lambda: "a")
        cache.get_or_compute("24h", lambda: "b")

        cache.invalidate("7d")

        assert cache.get_stale("7d") is None
        assert cache.get("24h") == "b"

    def test_invalidate_all(self, time_port: FakeTimePort) -> None:
        cache: SnapshotCache[str] = SnapshotCache(time_port)
        cache.get_or_compute("7d", lambda: "a")
        cache.invalidate()
        assert cache.get_stale("7d") is None


class TestSingleFlight:
    """Test that concurrent misses share one computation."""

    def test_concurrent_callers_share_result(self, time_port: FakeTimePort) -> None:
        cache: SnapshotCache[int] = SnapshotCache(time_port)
        started = threading.Event()
        release = threading.Event()
        calls: list[int] = []

        def slow_compute() -> int:
            calls.append(1)
            started.set()
            release.wait(timeout=5)
            return 42

        results: list[int] = []

        def worker() -> None:
            results.append(cache.get_or_compute("7d", slow_compute))

        leader = threading.Thread(target=worker)
        leader.start()
        assert started.wait(timeout=5)

        followers = [threading.Thread(target=worker) for _ in range(4)]
        for t in followers:
            t.start()
        release.set()
        for t in [leader, *followers]:
            t.join(timeout=5)

        assert results == [42] * 5
        assert len(calls) == 1

    def test_error_not_cached(self, time_port: FakeTimePort) -> None:
        cache: SnapshotCache[str] = SnapshotCache(time_port)

        def boom() -> str:
            raise RuntimeError("db down")

        with pytest.raises(RuntimeError, match="db down"):
            cache.get_or_compute("7d", boom)

        assert cache.get_stale("7d") is None
        assert cache.get_or_compute("7d", lambda: "ok") == "ok"
