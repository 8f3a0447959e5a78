"""
Clock

Injectable UTC time source. Stores and the engine take a Clock instead of
calling datetime.now() so tests can pin timestamps.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class Clock(ABC):
    """Source of timezone-aware UTC timestamps"""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock time, always UTC"""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """
    Test clock that only moves when told to.

    Each call to now() returns the current pinned time; advance() moves it
    forward. A naive start time is treated as UTC.
    """

    def __init__(self, start: Optional[datetime] = None):
        if start is None:
            start = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        elif start.tzinfo is None:
            start = start.replace(tzinfo=timezone.utc)
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, **kwargs) -> datetime:
        """Move the clock forward by a timedelta built from kwargs"""
        self._current = self._current + timedelta(**kwargs)
        return self._current

    def set(self, value: datetime) -> None:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        self._current = value


def as_utc(value: datetime) -> datetime:
    """Treat a naive datetime as UTC; aware values pass through"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
