"""Time source for every time-window rule (refund cutoff, absence grace, ...).

Services never call ``datetime.now()`` directly; they receive a ``Clock`` so
tests can pin the current instant.

Usage in routers:

    @router.post("/bookings")
    async def book(..., clock: Clock = Depends(get_clock)):
        ...
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta

from libs.common.datetime_utils import studio_tz


class Clock(ABC):
    """Supplies the current instant (timezone-aware)."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall clock read in the studio timezone."""

    def now(self) -> datetime:
        return datetime.now(studio_tz())


class FixedClock(Clock):
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, instant: datetime):
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def set(self, instant: datetime) -> None:
        if instant.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._instant = instant

    def advance(self, delta: timedelta) -> datetime:
        self._instant = self._instant + delta
        return self._instant


_system_clock = SystemClock()


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    return _system_clock
