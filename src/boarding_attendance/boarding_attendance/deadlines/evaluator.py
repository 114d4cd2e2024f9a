"""Giờ chốt báo cơm.

Mỗi bữa có một giờ chốt cố định; báo cơm còn mở khi giờ hiện tại nhỏ hơn giờ
chốt (phút không được tính). Bữa sáng được báo từ tối hôm trước nên báo cáo bữa
sáng của ngày D mang ngày D-1.

Lưu ý: kiểm tra bữa sáng chỉ dựa vào giờ hiện tại, không xét ngày của báo cáo.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

from ..common.datetime_utils import TimeRemaining
from ..core.constants import MEAL_CUTOFF_HOURS, NEAR_DEADLINE_MINUTES
from ..core.enums import MealType


@dataclass(frozen=True)
class MealDeadlineStatus:
    meal_type: MealType
    cutoff_hour: int
    is_expired: bool
    minutes_remaining: int
    is_near_deadline: bool

    @property
    def is_open(self) -> bool:
        return not self.is_expired

    @property
    def time_remaining(self) -> TimeRemaining:
        return TimeRemaining.from_minutes(self.minutes_remaining)


def cutoff_hour_for(meal_type: MealType) -> int:
    return MEAL_CUTOFF_HOURS[MealType(meal_type)]


def is_meal_registration_open(meal_type: MealType, now: datetime, is_admin: bool = False) -> bool:
    if is_admin:
        return True
    return now.hour < cutoff_hour_for(meal_type)


def minutes_until_cutoff(meal_type: MealType, now: datetime) -> int:
    """Số phút còn lại tới giờ chốt; âm khi đã quá giờ."""
    return (cutoff_hour_for(meal_type) - now.hour) * 60 - now.minute


def evaluate_meal_deadline(meal_type: MealType, now: datetime) -> MealDeadlineStatus:
    cutoff = cutoff_hour_for(meal_type)
    expired = now.hour >= cutoff
    minutes = minutes_until_cutoff(meal_type, now)
    return MealDeadlineStatus(
        meal_type=MealType(meal_type),
        cutoff_hour=cutoff,
        is_expired=expired,
        minutes_remaining=max(minutes, 0),
        is_near_deadline=(not expired) and 0 < minutes <= NEAR_DEADLINE_MINUTES,
    )


def report_date_for_meal(meal_type: MealType, served_date: date) -> date:
    """Ngày ghi trên báo cáo cho bữa ăn được phục vụ vào served_date."""
    if MealType(meal_type) == MealType.BREAKFAST:
        return served_date - timedelta(days=1)
    return served_date


def served_date_for_meal(meal_type: MealType, report_date: date) -> date:
    if MealType(meal_type) == MealType.BREAKFAST:
        return report_date + timedelta(days=1)
    return report_date
