from __future__ import annotations

from datetime import date, datetime

from boarding_attendance.core.enums import MealType, ReportType, Role
from boarding_attendance.deadlines.reminder import MealReminderService
from boarding_attendance.permissions.evaluator import resolve_permissions
from boarding_attendance.reports.model import AttendanceReport


def _meal_report(meal: MealType, *, class_id: str, report_date: date) -> AttendanceReport:
    return AttendanceReport(
        report_id=None,
        report_date=report_date,
        report_type=ReportType.MEAL,
        total_students=3,
        present_count=3,
        absent_count=0,
        meal_type=meal,
        class_id=class_id,
    )


def test_reminders_only_for_class_teachers(repos, admin_perms):
    svc = MealReminderService(repos.reports)
    summary = svc.reminders_for(admin_perms, now=datetime(2024, 3, 10, 7, 30))
    assert summary.reminders == ()
    assert summary.pending_count == 0


def test_reminders_track_reported_and_urgent_meals(repos, gvcn_perms):
    today = date(2024, 3, 10)
    repos.reports.insert(_meal_report(MealType.DINNER, class_id="6a", report_date=today))
    repos.reports.insert(_meal_report(MealType.LUNCH, class_id="6b", report_date=today))

    svc = MealReminderService(repos.reports)
    summary = svc.reminders_for(gvcn_perms, now=datetime(2024, 3, 10, 7, 30))
    by_meal = {r.meal_type: r for r in summary.reminders}

    assert by_meal[MealType.DINNER].has_reported
    # Báo cáo bữa trưa của lớp khác không tính cho 6A.
    assert not by_meal[MealType.LUNCH].has_reported
    assert by_meal[MealType.LUNCH].is_urgent
    assert by_meal[MealType.BREAKFAST].served_date == date(2024, 3, 11)

    # Trưa (gấp) + sáng còn phải báo; tối đã báo.
    assert summary.pending_count == 2
    assert summary.urgent_count == 1


def test_teacher_without_class_gets_no_reminders(repos):
    perms = resolve_permissions(user_id=9, roles=[Role.CLASS_TEACHER], class_id=None)
    summary = MealReminderService(repos.reports).reminders_for(perms, now=datetime(2024, 3, 10, 7, 30))
    assert summary.reminders == ()
