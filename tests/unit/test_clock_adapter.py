from datetime import UTC, datetime

from src.adapters.clock import FrozenClock, SystemClock


def test_system_clock():
    now = SystemClock().now_utc()
    assert now.tzinfo is not None
    assert abs((datetime.now(UTC) - now).total_seconds()) < 1.0


def test_frozen_clock_advance():
    clock = FrozenClock(datetime(2026, 1, 1, tzinfo=UTC))
    clock.advance(hours=2)
    assert clock.now_utc() == datetime(2026, 1, 1, 2, tzinfo=UTC)
