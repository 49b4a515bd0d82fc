"""
Clock abstractions for recent-route timestamps.

Notes
-----
The store and service never read wall-clock time directly; they are handed a
Clock. Tests pass a FixedClock so recorded routes compare equal across runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """A source of timezone-aware time."""

    def now(self) -> datetime:
        """Return the current time as an aware datetime."""
        ...


@dataclass(frozen=True, slots=True)
class SystemClock:
    """Clock backed by the system time, in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class FixedClock:
    """Clock pinned to a single instant; naive values are taken as UTC."""

    fixed_time: datetime

    def now(self) -> datetime:
        if self.fixed_time.tzinfo is None:
            return self.fixed_time.replace(tzinfo=timezone.utc)
        return self.fixed_time
