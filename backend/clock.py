"""Injectable time source.

Services never read the wall clock directly; they ask a ``Clock`` so that
calendar-boundary behaviour can be pinned down in tests.
"""

from datetime import datetime, timedelta
from typing import Protocol

from backend.config import utcnow


class Clock(Protocol):
    def now(self) -> datetime:
        """Return the current time as a naive UTC datetime."""
        ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return utcnow()


class FixedClock:
    """A manually driven clock for deterministic tests and replays."""

    def __init__(self, current: datetime) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def set(self, current: datetime) -> None:
        self.current = current

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by ``timedelta(**kwargs)`` and return the new time."""
        self.current = self.current + timedelta(**kwargs)
        return self.current
