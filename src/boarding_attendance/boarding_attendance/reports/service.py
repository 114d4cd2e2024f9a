from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..common.datetime_utils import month_bounds, week_bounds
from ..common.results import BulkResult
from ..common.validators import validate_month
from ..core.enums import MealType, ReportType, StatsDimension
from ..core.exceptions import DomainError, ValidationError
from ..deadlines.evaluator import cutoff_hour_for, is_meal_registration_open
from ..permissions.evaluator import EffectivePermissions
from ..students.model import Student
from ..students.repository import ClassRepository, StudentRepository
from .aggregation import (
    DailyMealStats,
    DateRange,
    MealSummary,
    SliceStats,
    StudentMealCount,
    aggregate,
    daily_meal_stats,
    meal_summary,
    report_date_for,
    student_meal_counts,
)
from .builder import build_report
from .model import AttendanceReport, ReportFilter, ReportForm, ReportSlice
from .repository import ReportRepository

logger = logging.getLogger(__name__)

MEAL_LABELS = {
    MealType.BREAKFAST: "bữa sáng",
    MealType.LUNCH: "bữa trưa",
    MealType.DINNER: "bữa tối",
}


def _uses_resident_roster(report_type: ReportType) -> bool:
    return ReportType(report_type) in (ReportType.BOARDING, ReportType.MEAL)


class ReportService:
    """Use case: nộp báo cáo điểm danh / báo cơm, xem lịch sử và thống kê."""

    def __init__(self, reports: ReportRepository, students: StudentRepository, classes: ClassRepository):
        self._reports = reports
        self._students = students
        self._classes = classes

    def _roster(self, report_type: ReportType, class_id: Optional[str]) -> list[Student]:
        students = list(self._students.list(class_id=class_id))
        if _uses_resident_roster(report_type):
            students = [s for s in students if s.is_resident]
        return students

    def _require_view(self, actor: EffectivePermissions, report_type: Optional[ReportType]) -> None:
        if report_type is not None and ReportType(report_type) == ReportType.MEAL:
            actor.require(actor.can_access_meal_stats(), "Bạn không có quyền xem số liệu báo cơm")
        else:
            actor.require(
                actor.can_access_attendance() or actor.can_access_meal_stats(),
                "Bạn không có quyền xem báo cáo điểm danh",
            )

    def submit(self, actor: EffectivePermissions, form: ReportForm, *, now: datetime) -> int:
        report_type = ReportType(form.report_type)
        if report_type == ReportType.MEAL:
            actor.require(actor.can_report_meals(), "Bạn không có quyền báo cơm")
            if form.meal_type is None:
                raise ValidationError("Báo cơm phải chọn đúng một bữa ăn")
            if not is_meal_registration_open(form.meal_type, now, actor.is_admin):
                meal = MealType(form.meal_type)
                raise ValidationError(
                    f"Đã quá giờ chốt báo cơm {MEAL_LABELS[meal]} ({cutoff_hour_for(meal)}:00)"
                )
        else:
            actor.require(actor.can_access_attendance(), "Bạn không có quyền điểm danh")

        class_id = actor.resolve_class_scope(form.class_id)
        roster = self._roster(report_type, class_id)
        if not roster:
            raise ValidationError("Không có học sinh nào trong phạm vi báo cáo")

        report = build_report(replace(form, class_id=class_id, reporter_id=actor.user_id), roster)
        report_id = self._reports.insert(report)
        logger.info(
            "Report %s saved: type=%s date=%s class=%s absent=%d/%d by user %s",
            report_id,
            report.report_type.value,
            report.report_date,
            report.class_id or "*",
            report.absent_count,
            report.total_students,
            actor.user_id,
        )
        return report_id

    def history(self, actor: EffectivePermissions, report_filter: ReportFilter) -> Sequence[AttendanceReport]:
        self._require_view(actor, report_filter.report_type)
        scoped = replace(report_filter, class_id=actor.resolve_class_scope(report_filter.class_id))
        return self._reports.list(scoped)

    def delete_by_type(self, actor: EffectivePermissions, report_type: ReportType) -> BulkResult:
        """Xoá toàn bộ báo cáo một loại, từng báo cáo một; lỗi giữa chừng để lại kết quả dở dang."""
        actor.require(actor.is_admin, "Chỉ quản trị viên được xoá báo cáo")
        result = BulkResult()
        for report in self._reports.list(ReportFilter(report_type=ReportType(report_type))):
            try:
                if self._reports.delete(report_id=int(report.report_id)):
                    result.ok()
                else:
                    result.skip()
            except DomainError as e:
                logger.warning("Delete report %s failed: %s", report.report_id, e)
                result.fail(f"Báo cáo {report.report_id}: {e}")
        logger.info(
            "User %s deleted %s reports: %d ok, %d failed", actor.user_id, report_type, result.success, result.failed
        )
        return result

    # --- thống kê --------------------------------------------------------
    def _meal_inputs(self, actor: EffectivePermissions, start: date, end: date):
        self._require_view(actor, ReportType.MEAL)
        class_id = actor.resolve_class_scope(None)
        # Bữa sáng ngày start nằm trong báo cáo ngày start - 1.
        reports = self._reports.list(
            ReportFilter(start=start - timedelta(days=1), end=end, report_type=ReportType.MEAL)
        )
        return reports, self._roster(ReportType.MEAL, class_id), self._classes.list_all()

    def daily_meal_stats(self, actor: EffectivePermissions, *, served_date: date) -> DailyMealStats:
        reports, roster, classes = self._meal_inputs(actor, served_date, served_date)
        return daily_meal_stats(reports, roster, classes, served_date)

    def meal_summary(self, actor: EffectivePermissions, *, start: date, end: date) -> MealSummary:
        if start > end:
            raise ValidationError("Ngày bắt đầu phải trước ngày kết thúc")
        reports, roster, classes = self._meal_inputs(actor, start, end)
        return meal_summary(reports, roster, classes, DateRange(start=start, end=end))

    def student_meal_counts(self, actor: EffectivePermissions, *, year: int, month: int) -> list[StudentMealCount]:
        start, end = month_bounds(int(year), validate_month(month))
        reports, roster, _ = self._meal_inputs(actor, start, end)
        return student_meal_counts(reports, roster, DateRange(start=start, end=end))

    def slice_stats(
        self,
        actor: EffectivePermissions,
        *,
        date_range: DateRange,
        report_slice: ReportSlice,
        dimension: StatsDimension = StatsDimension.CLASS,
    ) -> SliceStats:
        self._require_view(actor, report_slice.report_type)
        class_id = actor.resolve_class_scope(None)
        reports = self._reports.list(
            ReportFilter(
                start=report_date_for(report_slice, date_range.start),
                end=report_date_for(report_slice, date_range.end),
                report_type=report_slice.report_type,
                session=report_slice.session,
                meal_type=report_slice.meal_type,
            )
        )
        roster = self._roster(report_slice.report_type, class_id)
        return aggregate(reports, roster, self._classes.list_all(), date_range, report_slice, dimension)

    def weekly_stats(
        self, actor: EffectivePermissions, *, anchor: date, report_slice: ReportSlice
    ) -> SliceStats:
        start, end = week_bounds(anchor)
        return self.slice_stats(actor, date_range=DateRange(start=start, end=end), report_slice=report_slice)

    def monthly_stats(
        self, actor: EffectivePermissions, *, year: int, month: int, report_slice: ReportSlice
    ) -> SliceStats:
        start, end = month_bounds(int(year), validate_month(month))
        return self.slice_stats(actor, date_range=DateRange(start=start, end=end), report_slice=report_slice)
