"""
Clock -- injectable source of the current time.

Responsibility:
    Services never call ``datetime.now()`` or ``date.today()``.  The
    default reversal date, the ``closed_at`` stamp of a period close,
    expense approval and payment times, report ``generated_at`` and the
    integrity sweep's ``checked_at`` all come from the clock a service was
    constructed with.

Architecture position:
    Kernel > Domain.  ``SystemClock`` is the only place that reads the
    system time.
"""

from abc import ABC, abstractmethod
from datetime import UTC, date, datetime, timedelta


class Clock(ABC):
    """``now()`` is timezone-aware UTC; ``today()`` is its UTC calendar date."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().astimezone(UTC).date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Frozen clock for tests and replays.

    Time only moves through ``advance`` or ``set_date``.  Naive datetimes
    are taken to be UTC.
    """

    def __init__(self, fixed_time: datetime | None = None):
        fixed_time = fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        self._now = fixed_time if fixed_time.tzinfo else fixed_time.replace(tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def advance(self, *, days: int = 0, seconds: int = 0) -> datetime:
        self._now += timedelta(days=days, seconds=seconds)
        return self._now

    def set_date(self, day: date) -> None:
        """Move to noon UTC on ``day`` (e.g. to run a month-end close)."""
        self._now = datetime(day.year, day.month, day.day, 12, 0, 0, tzinfo=UTC)
