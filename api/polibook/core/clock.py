"""Wall-clock sources.

All booking rules read time through a Clock so tests can pin "now".
Times are timezone-aware in the venue zone (settings.timezone).
"""

from datetime import datetime, timedelta
from typing import Protocol
from zoneinfo import ZoneInfo

from polibook.core.config import settings

VENUE_TZ = ZoneInfo(settings.timezone)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Real time in the venue zone."""

    def now(self) -> datetime:
        return datetime.now(VENUE_TZ)


class FixedClock:
    """A clock that only moves when told to."""

    def __init__(self, current: datetime):
        self.set(current)

    def now(self) -> datetime:
        return self._current

    def set(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=VENUE_TZ)
        self._current = current

    def advance(self, **kwargs) -> None:
        """Move forward by a timedelta given as keyword arguments (minutes=5, hours=2, ...)."""
        self._current = self._current + timedelta(**kwargs)
