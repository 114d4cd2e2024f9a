from __future__ import annotations

from datetime import date, datetime

from boarding_attendance.core.enums import BoardingSession, MealType, ReportType, StatsDimension
from boarding_attendance.reports.aggregation import (
    DateRange,
    aggregate,
    daily_meal_stats,
    day_stats,
    latest_per_scope,
    meal_slice,
    meal_summary,
    rice_kg,
    student_meal_counts,
)
from boarding_attendance.reports.model import AbsentEntry, AttendanceReport, ReportSlice

MARCH_10 = date(2024, 3, 10)
MARCH_11 = date(2024, 3, 11)


def _residents(roster):
    return [s for s in roster if s.is_resident]


def _absent(student):
    return AbsentEntry(
        student_id=student.student_id,
        name=student.name,
        class_id=student.class_id,
        room=student.room,
        meal_group=student.meal_group,
    )


def _report(
    *,
    report_date,
    report_type=ReportType.MEAL,
    meal_type=MealType.LUNCH,
    session=None,
    class_id=None,
    absent=(),
    total=0,
    created_at=None,
):
    return AttendanceReport(
        report_id=None,
        report_date=report_date,
        report_type=report_type,
        total_students=total,
        present_count=total - len(absent),
        absent_count=len(absent),
        absent_students=tuple(absent),
        session=session,
        meal_type=meal_type if report_type == ReportType.MEAL else None,
        class_id=class_id,
        created_at=created_at,
    )


def test_rice_estimate():
    assert rice_kg(40, 35) == 15.0
    assert rice_kg(0, 0) == 0


def test_no_reports_means_every_class_missing(roster, classes):
    stats = day_stats([], _residents(roster), classes, meal_slice(MealType.LUNCH), MARCH_10)
    assert stats.total == 0
    assert stats.present == 0
    assert stats.absent == 0
    assert [c.class_id for c in stats.missing_classes] == ["6a", "6b"]


def test_class_report_covers_only_its_class(roster, classes):
    residents = _residents(roster)
    report = _report(report_date=MARCH_10, class_id="6a", absent=[_absent(residents[1])], total=3)
    stats = day_stats([report], residents, classes, meal_slice(MealType.LUNCH), MARCH_10)

    assert (stats.total, stats.present, stats.absent) == (3, 2, 1)
    assert [c.class_id for c in stats.missing_classes] == ["6b"]


def test_whole_school_report_covers_everyone(roster, classes):
    residents = _residents(roster)
    report = _report(report_date=MARCH_10, absent=[_absent(residents[3])], total=5)
    stats = day_stats([report], residents, classes, meal_slice(MealType.LUNCH), MARCH_10)

    assert (stats.total, stats.present, stats.absent) == (5, 4, 1)
    # Lớp 6A không có học sinh vắng nên vẫn bị coi là chưa báo.
    assert [c.class_id for c in stats.missing_classes] == ["6a"]


def test_absent_student_marks_their_class_as_reported(roster, classes):
    residents = _residents(roster)
    report = _report(report_date=MARCH_10, class_id="6a", absent=[_absent(residents[0]), _absent(residents[3])], total=3)
    stats = day_stats([report], residents, classes, meal_slice(MealType.LUNCH), MARCH_10)
    assert stats.missing_classes == ()
    assert stats.total == 5
    assert stats.absent == 2


def test_breakfast_is_read_from_previous_evening(roster, classes):
    residents = _residents(roster)
    report = _report(report_date=MARCH_10, meal_type=MealType.BREAKFAST, class_id="6a", total=3)

    served_11 = day_stats([report], residents, classes, meal_slice(MealType.BREAKFAST), MARCH_11)
    assert served_11.report_count == 1
    assert served_11.present == 3

    served_10 = day_stats([report], residents, classes, meal_slice(MealType.BREAKFAST), MARCH_10)
    assert served_10.report_count == 0


def test_most_recent_report_per_class_wins(roster, classes):
    residents = _residents(roster)
    older = _report(
        report_date=MARCH_10, class_id="6a", absent=[_absent(residents[0])], total=3, created_at=datetime(2024, 3, 10, 7)
    )
    newer = _report(report_date=MARCH_10, class_id="6a", total=3, created_at=datetime(2024, 3, 10, 7, 45))

    assert latest_per_scope([newer, older]) == [newer]
    stats = day_stats([newer, older], residents, classes, meal_slice(MealType.LUNCH), MARCH_10)
    assert stats.absent == 0
    assert stats.present == 3


def test_meal_group_breakdown_for_lunch(roster, classes):
    residents = _residents(roster)
    report = _report(report_date=MARCH_10, absent=[_absent(residents[0])], total=5)
    stats = daily_meal_stats([report], residents, classes, MARCH_10)

    groups = {g.key: g for g in stats.lunch.breakdown}
    assert (groups["M1"].total, groups["M1"].present, groups["M1"].absent) == (2, 1, 1)
    assert groups["M3"].present == 1
    assert [g.key for g in stats.breakfast.breakdown] == ["6a", "6b"]


def test_daily_meal_rice(roster, classes):
    residents = _residents(roster)
    reports = [
        _report(report_date=MARCH_10, meal_type=MealType.LUNCH, total=5),
        _report(report_date=MARCH_10, meal_type=MealType.DINNER, absent=[_absent(residents[4])], total=5),
    ]
    stats = daily_meal_stats(reports, residents, classes, MARCH_10)
    assert stats.lunch.present == 5
    assert stats.dinner.present == 4
    assert stats.rice_kg == 1.8


def test_meal_summary_sums_days(roster, classes):
    residents = _residents(roster)
    reports = [
        _report(report_date=MARCH_10, meal_type=MealType.LUNCH, total=5),
        _report(report_date=MARCH_11, meal_type=MealType.LUNCH, class_id="6b", total=2),
    ]
    summary = meal_summary(reports, residents, classes, DateRange(start=MARCH_10, end=MARCH_11))
    assert summary.present_total(MealType.LUNCH) == 7
    assert summary.rice_kg == 1.4


def test_multi_day_aggregate_unions_missing_classes(roster, classes):
    residents = _residents(roster)
    boarding = ReportSlice(report_type=ReportType.BOARDING, session=BoardingSession.EVENING_SLEEP)
    reports = [
        _report(report_date=MARCH_10, report_type=ReportType.BOARDING, session=BoardingSession.EVENING_SLEEP, class_id="6a", total=3),
        _report(report_date=MARCH_11, report_type=ReportType.BOARDING, session=BoardingSession.EVENING_SLEEP, class_id="6b", total=2),
        _report(report_date=MARCH_11, report_type=ReportType.BOARDING, session=BoardingSession.NOON_NAP, class_id="6a", total=3),
    ]
    stats = aggregate(reports, residents, classes, DateRange(start=MARCH_10, end=MARCH_11), boarding, StatsDimension.CLASS)

    assert stats.total == 5
    assert stats.report_count == 2
    assert sorted(c.class_id for c in stats.missing_classes) == ["6a", "6b"]


def test_student_meal_counts(roster):
    residents = _residents(roster)
    reports = [
        _report(report_date=MARCH_10, meal_type=MealType.LUNCH, class_id="6a", absent=[_absent(residents[0])], total=3),
        _report(report_date=MARCH_10, meal_type=MealType.DINNER, total=5),
    ]
    counts = {c.student_id: c for c in student_meal_counts(reports, residents, DateRange.single(MARCH_10))}

    assert (counts[1].lunch, counts[1].dinner) == (0, 1)
    assert (counts[2].lunch, counts[2].dinner) == (1, 1)
    assert (counts[4].lunch, counts[4].dinner) == (0, 1)
    assert counts[2].rice_kg == 0.4


def test_absentees_outside_the_roster_are_ignored(roster, classes):
    residents = _residents(roster)
    class_6a = [s for s in residents if s.class_id == "6a"]
    own = _report(report_date=MARCH_10, class_id="6a", total=3, created_at=datetime(2024, 3, 10, 7))
    other = _report(
        report_date=MARCH_10,
        class_id="6b",
        absent=[_absent(residents[3]), _absent(residents[4])],
        total=2,
        created_at=datetime(2024, 3, 10, 7, 10),
    )
    stats = daily_meal_stats([own, other], class_6a, classes, MARCH_10)

    assert (stats.lunch.total, stats.lunch.present, stats.lunch.absent) == (3, 3, 0)
    assert stats.lunch.absent_entries == ()
    assert all(g.absent == 0 for g in stats.lunch.breakdown)


def test_removed_student_does_not_reduce_presence(roster, classes):
    residents = _residents(roster)
    gone = AbsentEntry(student_id=99, name="Đã chuyển trường", class_id="6a")
    report = _report(report_date=MARCH_10, absent=[gone, _absent(residents[0])], total=5)
    stats = day_stats([report], residents, classes, meal_slice(MealType.LUNCH), MARCH_10)

    assert (stats.total, stats.present, stats.absent) == (5, 4, 1)
