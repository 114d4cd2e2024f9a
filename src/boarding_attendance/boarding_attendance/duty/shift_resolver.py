from __future__ import annotations

from datetime import datetime, time, timedelta

from ..common.datetime_utils import TimeRemaining
from ..core.constants import DUTY_EXPECTED_STAFF, DUTY_SHIFT_BOUNDARY_HOUR
from .model import ActiveShift, StaffingStatus


def resolve_active_shift(now: datetime) -> ActiveShift:
    """Ca trực chuyển lúc 06:00: trước 6 giờ sáng vẫn thuộc ca của hôm qua."""

    shift_date = now.date()
    if now.hour < DUTY_SHIFT_BOUNDARY_HOUR:
        shift_date -= timedelta(days=1)

    shift_end = datetime.combine(shift_date + timedelta(days=1), time(hour=DUTY_SHIFT_BOUNDARY_HOUR))
    seconds_left = max((shift_end - now.replace(tzinfo=None)).total_seconds(), 0)
    return ActiveShift(
        shift_date=shift_date,
        shift_end=shift_end,
        remaining=TimeRemaining.from_minutes(int(seconds_left // 60)),
    )


def staffing_status(count: int, expected: int = DUTY_EXPECTED_STAFF) -> StaffingStatus:
    return StaffingStatus(count=int(count), expected=int(expected))
