# =============================================================================
# Clock — Injectable "Now" for Time-Dependent Scoring
# =============================================================================
#
# The temporal score and the default timeframe window both depend on the
# current calendar year. Every selection entry point takes a Clock so the
# pipeline stays deterministic under test and across year boundaries.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Protocol


class Clock(Protocol):
    """Anything that can report today's date."""

    def today(self) -> date:
        ...


class SystemClock:
    """Wall-clock implementation used in production."""

    def today(self) -> date:
        return date.today()


@dataclass(frozen=True)
class FixedClock:
    """A clock pinned to a given date (tests, replays)."""

    fixed: date

    @classmethod
    def for_year(cls, year: int) -> FixedClock:
        return cls(date(year, 6, 30))

    def today(self) -> date:
        return self.fixed


SYSTEM_CLOCK = SystemClock()


def current_year(clock: Clock | None) -> int:
    return (clock or SYSTEM_CLOCK).today().year
