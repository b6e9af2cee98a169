"""
Injectable time source.

Services stamp ``posted_at``, ``confirmed_at`` and ``approved_at``, and
default reversal and transaction dates, from a Clock rather than
``datetime.now()``.  Entry numbering by fiscal year and monthly statements
both key off these values, so tests pin them with DeterministicClock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


class Clock(ABC):
    """``now()`` is timezone-aware UTC; ``today()`` is its UTC calendar date."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Clock that only moves when told to.

    Naive datetimes passed in are taken to be UTC.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._now = _as_utc(fixed_time or DEFAULT_TEST_TIME)

    def now(self) -> datetime:
        return self._now

    def set_time(self, time: datetime) -> None:
        self._now = _as_utc(time)

    def advance(self, seconds: int = 1) -> None:
        self._now += timedelta(seconds=seconds)

    def tick(self) -> datetime:
        """Move one second forward and return the new time."""
        self.advance(1)
        return self._now
