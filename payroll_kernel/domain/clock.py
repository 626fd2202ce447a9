"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock so that payday cadence, hire dates and
    payout records never read ``datetime.now()`` directly.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Audit relevance:
    Every ``last_payout_at`` and every payout record is stamped from an
    injected Clock, so a 30-day cadence can be exercised in tests without
    waiting 30 days.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        All services that need current time receive a Clock instance via
        constructor injection.

    Guarantees:
        - ``now()`` returns a timezone-aware UTC ``datetime``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current UTC time."""
        ...


class SystemClock(Clock):
    """Production clock that returns actual system time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        """
        Args:
            fixed_time: Starting instant.  Defaults to 2024-01-01 12:00 UTC.
        """
        self._current = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._current = time

    def advance(self, seconds: int = 0, days: int = 0) -> datetime:
        """Move the clock forward and return the new time."""
        self._current = self._current + timedelta(days=days, seconds=seconds)
        return self._current
