from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from ..core.enums import MealType, ReportType
from ..permissions.evaluator import EffectivePermissions
from ..reports.model import ReportFilter
from ..reports.repository import ReportRepository
from .evaluator import MealDeadlineStatus, evaluate_meal_deadline, served_date_for_meal


@dataclass(frozen=True)
class MealReminder:
    meal_type: MealType
    report_date: date
    served_date: date
    has_reported: bool
    deadline: MealDeadlineStatus

    @property
    def can_report(self) -> bool:
        return not self.has_reported and self.deadline.is_open

    @property
    def is_urgent(self) -> bool:
        return self.deadline.is_near_deadline and not self.has_reported

    def as_dict(self) -> dict:
        remaining = self.deadline.time_remaining
        return {
            "meal_type": self.meal_type.value,
            "report_date": self.report_date.isoformat(),
            "served_date": self.served_date.isoformat(),
            "has_reported": self.has_reported,
            "is_expired": self.deadline.is_expired,
            "is_near_deadline": self.deadline.is_near_deadline,
            "cutoff_hour": self.deadline.cutoff_hour,
            "time_remaining": {"hours": remaining.hours, "minutes": remaining.minutes},
            "can_report": self.can_report,
        }


@dataclass(frozen=True)
class ReminderSummary:
    reminders: tuple[MealReminder, ...] = ()

    @property
    def pending_count(self) -> int:
        return sum(1 for r in self.reminders if r.can_report)

    @property
    def urgent_count(self) -> int:
        return sum(1 for r in self.reminders if r.is_urgent)


class MealReminderService:
    """Nhắc GVCN báo cơm trước giờ chốt."""

    def __init__(self, reports: ReportRepository):
        self._reports = reports

    def reminders_for(self, actor: EffectivePermissions, *, now: datetime) -> ReminderSummary:
        if not actor.is_class_teacher():
            return ReminderSummary()

        # Cả ba bữa đều báo trong ngày hôm nay (bữa sáng là cho ngày mai).
        today = now.date()
        reports = self._reports.list(ReportFilter(start=today, end=today, report_type=ReportType.MEAL))

        reminders = []
        for meal in MealType:
            has_reported = any(
                r.meal_type == meal and actor.class_id in r.referenced_class_ids() for r in reports
            )
            reminders.append(
                MealReminder(
                    meal_type=meal,
                    report_date=today,
                    served_date=served_date_for_meal(meal, today),
                    has_reported=has_reported,
                    deadline=evaluate_meal_deadline(meal, now),
                )
            )
        return ReminderSummary(reminders=tuple(reminders))
