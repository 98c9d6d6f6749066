"""
Clock -- injectable source of "now".

Submission, verification, review and feedback timestamps are all stamped
from a Clock handed to the service, never from ``datetime.now()`` inline,
so a test can pin every stamp to a known instant.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall clock, always timezone-aware UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock frozen at ``start`` until moved with ``advance()``.

    Repeated ``now()`` calls return the same instant, so a service that
    stamps two columns in one operation stamps them identically.
    """

    DEFAULT_START = datetime(2026, 1, 5, 9, 0, 0, tzinfo=timezone.utc)

    def __init__(self, start: datetime | None = None):
        self._current = start or self.DEFAULT_START

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        """Move forward ``seconds`` and return the new instant."""
        self._current += timedelta(seconds=seconds)
        return self._current
