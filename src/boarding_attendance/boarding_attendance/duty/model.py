from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import TimeRemaining


@dataclass(frozen=True)
class DutyEntry:
    """Thực thể miền (domain): một người trực trong một ngày trực.

    Nhiều người có thể trực cùng ngày; teacher_name là văn bản tự do.
    """

    duty_id: int
    teacher_name: str
    duty_date: date
    notes: Optional[str] = None
    created_by: Optional[int] = None


@dataclass(frozen=True)
class ActiveShift:
    """Ca trực 24h đang diễn ra (06:00 hôm nay -> 06:00 hôm sau)."""

    shift_date: date
    shift_end: datetime
    remaining: TimeRemaining


@dataclass(frozen=True)
class StaffingStatus:
    count: int
    expected: int

    @property
    def is_adequate(self) -> bool:
        return self.count >= self.expected

    @property
    def shortfall(self) -> int:
        return max(self.expected - self.count, 0)


@dataclass(frozen=True)
class DutyRoster:
    shift: ActiveShift
    entries: tuple[DutyEntry, ...]
    staffing: StaffingStatus
