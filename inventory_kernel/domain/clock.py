"""
Clock -- injectable time source.

Responsibility:
    Services and selectors never call ``datetime.now()`` directly; they read
    time from a Clock handed to their constructor.  Transaction dates,
    audit timestamps and the dashboard's "today" window all derive from it.

Architecture position:
    Kernel > Domain -- pure, zero I/O (except SystemClock).
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


class Clock(ABC):
    """
    Abstract clock interface.

    Guarantees:
        - ``now()`` returns a timezone-aware UTC ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current UTC time."""
        ...


class SystemClock(Clock):
    """Production clock backed by the system time."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
        - Naive datetimes passed in are taken to be UTC.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = as_utc(
            fixed_time or datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)
        )
        self._offset = timedelta(0)

    def now(self) -> datetime:
        return self._fixed_time + self._offset

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = as_utc(time)
        self._offset = timedelta(0)

    def advance(self, seconds: float = 1, *, days: int = 0) -> datetime:
        """Move the clock forward and return the new time."""
        self._offset += timedelta(days=days, seconds=seconds)
        return self.now()


def as_utc(value: datetime) -> datetime:
    """Normalize to aware UTC; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
