"""Inclusive calendar-day arithmetic for vacation periods.

Dates are timezone-naive calendar dates. Weekends and holidays count as
ordinary days.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


@dataclass(frozen=True, slots=True)
class Period:
    """A closed date range ``[start, end]``."""

    start: date
    end: date

    @property
    def day_count(self) -> int:
        return inclusive_day_count(self.start, self.end)


def inclusive_day_count(start: date, end: date) -> int:
    """Number of calendar days in ``[start, end]``, both ends included."""
    return (end - start).days + 1


def overlaps(a: Period, b: Period) -> bool:
    """Closed-interval overlap: a shared boundary day counts."""
    return a.start <= b.end and b.start <= a.end


def overlap_of(a: Period, b: Period) -> Period | None:
    """Return the intersection of two periods, or None when disjoint."""
    if not overlaps(a, b):
        return None
    return Period(max(a.start, b.start), min(a.end, b.end))


def sort_periods(periods: Iterable[Period]) -> list[Period]:
    """Sort periods by start date, then end date."""
    return sorted(periods, key=lambda p: (p.start, p.end))


def total_days(periods: Iterable[Period]) -> int:
    return sum(p.day_count for p in periods)
