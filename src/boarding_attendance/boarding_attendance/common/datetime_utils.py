from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """First and last day of a month."""
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def previous_month(year: int, month: int) -> tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def week_bounds(anchor: date) -> tuple[date, date]:
    """Monday..Sunday of the week containing anchor."""
    start = anchor - timedelta(days=anchor.weekday())
    return start, start + timedelta(days=6)


def iter_days(start: date, end: date) -> Iterator[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)


@dataclass(frozen=True)
class TimeRemaining:
    hours: int
    minutes: int

    @classmethod
    def from_minutes(cls, total_minutes: int) -> "TimeRemaining":
        total_minutes = max(int(total_minutes), 0)
        return cls(hours=total_minutes // 60, minutes=total_minutes % 60)

    @property
    def total_minutes(self) -> int:
        return self.hours * 60 + self.minutes
