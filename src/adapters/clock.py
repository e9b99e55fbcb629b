from datetime import UTC, datetime, timedelta


class SystemClock:
    """TimePort backed by the system clock."""

    def now_utc(self) -> datetime:
        return datetime.now(UTC)


class FrozenClock:
    """TimePort pinned to one instant; advance() moves it forward."""

    def __init__(self, now: datetime):
        self._now = now

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        self._now = self._now + timedelta(**kwargs)
