"""Clock implementations behind IClock."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


class SystemClock:
    """Production IClock returning the current UTC time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """Controllable IClock for tests and replays."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = value

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward, e.g. ``clock.advance(hours=80)``."""
        self._now = self._now + timedelta(**kwargs)
        return self._now
