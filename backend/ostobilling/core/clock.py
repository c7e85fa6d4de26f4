"""Clock abstraction used by the billing services.

All lifecycle and invoice operations read "now" from a clock so that tests and
the sweeper can pin time.
"""

from datetime import datetime, timedelta
from typing import Protocol

from ostobilling.core.datetime_utils import to_naive_utc, utc_now_naive


class Clock(Protocol):
    """Source of the current time as naive UTC."""

    def now(self) -> datetime:
        """Return the current time."""
        ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        """Return the current naive UTC time."""
        return utc_now_naive()


class FixedClock:
    """Clock that returns a pinned instant until moved."""

    def __init__(self, at: datetime):
        """Pin the clock at the given instant."""
        self._now = to_naive_utc(at)

    def now(self) -> datetime:
        """Return the pinned instant."""
        return self._now

    def set(self, at: datetime) -> None:
        """Move the clock to a new instant."""
        self._now = to_naive_utc(at)

    def advance(self, delta: timedelta) -> None:
        """Move the clock forward by delta."""
        self._now = self._now + delta


system_clock = SystemClock()
