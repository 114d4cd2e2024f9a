"""Tổng hợp số liệu điểm danh / báo cơm từ các báo cáo.

Báo cáo chỉ chứa học sinh vắng, nên có mặt = sĩ số trong phạm vi - vắng.
Phạm vi của một báo cáo là lớp ghi trên báo cáo (class_id) hoặc cả trường khi
class_id trống. Một lớp được coi là "đã báo" khi có báo cáo ghi class_id của
lớp hoặc có học sinh của lớp trong danh sách vắng (quy tắc ước lượng).

Mọi ngày ở đây là ngày ăn/ngày điểm danh thực tế; bữa sáng của ngày D được
lấy từ báo cáo ghi ngày D-1.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from ..common.datetime_utils import iter_days
from ..core.constants import RICE_KG_PER_MEAL
from ..core.enums import MealType, ReportType, StatsDimension
from ..deadlines.evaluator import report_date_for_meal
from ..students.model import ClassInfo, Student
from .model import AbsentEntry, AttendanceReport, ReportSlice


@dataclass(frozen=True)
class DateRange:
    start: date
    end: date

    def days(self) -> list[date]:
        return list(iter_days(self.start, self.end))

    @classmethod
    def single(cls, day: date) -> "DateRange":
        return cls(start=day, end=day)


@dataclass(frozen=True)
class GroupStats:
    key: str
    label: str
    enrolled: int
    total: int
    present: int
    absent: int
    reported: bool

    def as_dict(self) -> dict:
        return {
            "key": self.key,
            "label": self.label,
            "enrolled": self.enrolled,
            "total": self.total,
            "present": self.present,
            "absent": self.absent,
            "reported": self.reported,
        }


@dataclass(frozen=True)
class DayStats:
    served_date: date
    report_count: int
    total: int
    present: int
    absent: int
    absent_entries: tuple[AbsentEntry, ...]
    missing_classes: tuple[ClassInfo, ...]
    breakdown: tuple[GroupStats, ...] = ()

    def as_dict(self) -> dict:
        return {
            "date": self.served_date.isoformat(),
            "report_count": self.report_count,
            "total": self.total,
            "present": self.present,
            "absent": self.absent,
            "absent_students": [e.as_dict() for e in self.absent_entries],
            "missing_classes": [c.name for c in self.missing_classes],
            "breakdown": [g.as_dict() for g in self.breakdown],
        }


@dataclass(frozen=True)
class SliceStats:
    report_slice: ReportSlice
    date_range: DateRange
    days: tuple[DayStats, ...]

    @property
    def total(self) -> int:
        return sum(d.total for d in self.days)

    @property
    def present(self) -> int:
        return sum(d.present for d in self.days)

    @property
    def absent(self) -> int:
        return sum(d.absent for d in self.days)

    @property
    def report_count(self) -> int:
        return sum(d.report_count for d in self.days)

    @property
    def missing_classes(self) -> tuple[ClassInfo, ...]:
        """Lớp chưa báo ở ít nhất một ngày trong khoảng."""
        seen: dict[str, ClassInfo] = {}
        for d in self.days:
            for c in d.missing_classes:
                seen.setdefault(c.class_id, c)
        return tuple(seen.values())

    def as_dict(self) -> dict:
        return {
            "start": self.date_range.start.isoformat(),
            "end": self.date_range.end.isoformat(),
            "total": self.total,
            "present": self.present,
            "absent": self.absent,
            "report_count": self.report_count,
            "missing_classes": [c.name for c in self.missing_classes],
            "days": [d.as_dict() for d in self.days],
        }


def rice_kg(lunch_present: int, dinner_present: int) -> float:
    """Gạo (kg) = (suất trưa + suất tối) * 0.2."""
    return round((int(lunch_present) + int(dinner_present)) * RICE_KG_PER_MEAL, 3)


def report_date_for(report_slice: ReportSlice, served_date: date) -> date:
    if report_slice.report_type == ReportType.MEAL and report_slice.meal_type is not None:
        return report_date_for_meal(report_slice.meal_type, served_date)
    return served_date


def latest_per_scope(reports: Iterable[AttendanceReport]) -> list[AttendanceReport]:
    """Giữ báo cáo mới nhất (theo created_at) cho mỗi phạm vi lớp."""
    latest: dict[Optional[str], tuple[datetime, int, AttendanceReport]] = {}
    for position, report in enumerate(reports):
        key = (report.created_at or datetime.min, position)
        current = latest.get(report.class_id)
        if current is None or key >= current[:2]:
            latest[report.class_id] = (key[0], key[1], report)
    return [item[2] for item in sorted(latest.values(), key=lambda item: item[:2])]


def enrolled_classes(students: Sequence[Student], classes: Sequence[ClassInfo]) -> list[ClassInfo]:
    """Các lớp có ít nhất một học sinh trong roster, theo thứ tự danh mục lớp."""
    present_ids = {s.class_id for s in students}
    out = [c for c in classes if c.class_id in present_ids]
    known = {c.class_id for c in out}
    for class_id in sorted(present_ids - known):
        out.append(ClassInfo(class_id=class_id, name=class_id.upper(), grade=0))
    return out


def _reports_for_day(
    reports: Iterable[AttendanceReport], report_slice: ReportSlice, served_date: date
) -> list[AttendanceReport]:
    target = report_date_for(report_slice, served_date)
    return latest_per_scope(r for r in reports if r.report_date == target and report_slice.matches(r))


def _class_breakdown(
    students: Sequence[Student],
    classes: Sequence[ClassInfo],
    absent: Sequence[AbsentEntry],
    referenced: set[str],
    whole_school: bool,
) -> tuple[GroupStats, ...]:
    out = []
    for c in classes:
        enrolled = sum(1 for s in students if s.class_id == c.class_id)
        reported = c.class_id in referenced
        total = enrolled if (whole_school or reported) else 0
        absent_n = sum(1 for e in absent if e.class_id == c.class_id)
        out.append(
            GroupStats(
                key=c.class_id,
                label=c.name,
                enrolled=enrolled,
                total=total,
                present=max(total - absent_n, 0),
                absent=absent_n,
                reported=reported,
            )
        )
    return tuple(out)


def _meal_group_breakdown(
    students: Sequence[Student], covered: Sequence[Student], absent: Sequence[AbsentEntry]
) -> tuple[GroupStats, ...]:
    groups = sorted({s.meal_group for s in students if s.meal_group})
    out = []
    for g in groups:
        total = sum(1 for s in covered if s.meal_group == g)
        absent_n = sum(1 for e in absent if e.meal_group == g)
        out.append(
            GroupStats(
                key=g,
                label=f"Mâm {g}",
                enrolled=sum(1 for s in students if s.meal_group == g),
                total=total,
                present=max(total - absent_n, 0),
                absent=absent_n,
                reported=total > 0,
            )
        )
    return tuple(out)


def day_stats(
    reports: Iterable[AttendanceReport],
    students: Sequence[Student],
    classes: Sequence[ClassInfo],
    report_slice: ReportSlice,
    served_date: date,
    dimension: StatsDimension = StatsDimension.NONE,
) -> DayStats:
    todays = _reports_for_day(reports, report_slice, served_date)

    whole_school = any(r.class_id is None for r in todays)
    referenced: set[str] = set()
    absent_by_id: dict[int, AbsentEntry] = {}
    for r in todays:
        referenced |= r.referenced_class_ids()
        for entry in r.absent_students:
            absent_by_id.setdefault(entry.student_id, entry)

    covered = list(students) if whole_school else [s for s in students if s.class_id in referenced]
    # chỉ đếm vắng của học sinh thuộc phạm vi đang xem
    covered_ids = {s.student_id for s in covered}
    absent = [e for sid, e in absent_by_id.items() if sid in covered_ids]
    total = len(covered)
    roster_classes = enrolled_classes(students, classes)

    breakdown: tuple[GroupStats, ...] = ()
    if dimension == StatsDimension.CLASS:
        breakdown = _class_breakdown(students, roster_classes, absent, referenced, whole_school)
    elif dimension == StatsDimension.MEAL_GROUP:
        breakdown = _meal_group_breakdown(students, covered, absent)

    return DayStats(
        served_date=served_date,
        report_count=len(todays),
        total=total,
        present=max(total - len(absent), 0),
        absent=len(absent),
        absent_entries=tuple(absent),
        missing_classes=tuple(c for c in roster_classes if c.class_id not in referenced),
        breakdown=breakdown,
    )


def aggregate(
    reports: Iterable[AttendanceReport],
    students: Sequence[Student],
    classes: Sequence[ClassInfo],
    date_range: DateRange,
    report_slice: ReportSlice,
    dimension: StatsDimension = StatsDimension.NONE,
) -> SliceStats:
    reports = list(reports)
    days = tuple(
        day_stats(reports, students, classes, report_slice, d, dimension) for d in date_range.days()
    )
    return SliceStats(report_slice=report_slice, date_range=date_range, days=days)


# --- báo cơm ---------------------------------------------------------------

MEAL_DIMENSIONS = {
    MealType.BREAKFAST: StatsDimension.CLASS,
    MealType.LUNCH: StatsDimension.MEAL_GROUP,
    MealType.DINNER: StatsDimension.MEAL_GROUP,
}


@dataclass(frozen=True)
class DailyMealStats:
    served_date: date
    breakfast: DayStats
    lunch: DayStats
    dinner: DayStats

    @property
    def rice_kg(self) -> float:
        return rice_kg(self.lunch.present, self.dinner.present)

    def for_meal(self, meal_type: MealType) -> DayStats:
        return getattr(self, MealType(meal_type).value)

    def as_dict(self) -> dict:
        return {
            "date": self.served_date.isoformat(),
            "breakfast": self.breakfast.as_dict(),
            "lunch": self.lunch.as_dict(),
            "dinner": self.dinner.as_dict(),
            "rice_kg": self.rice_kg,
        }


@dataclass(frozen=True)
class MealSummary:
    date_range: DateRange
    days: tuple[DailyMealStats, ...]

    def present_total(self, meal_type: MealType) -> int:
        return sum(d.for_meal(meal_type).present for d in self.days)

    @property
    def rice_kg(self) -> float:
        return round(sum(d.rice_kg for d in self.days), 3)

    def as_dict(self) -> dict:
        return {
            "start": self.date_range.start.isoformat(),
            "end": self.date_range.end.isoformat(),
            "breakfast_present": self.present_total(MealType.BREAKFAST),
            "lunch_present": self.present_total(MealType.LUNCH),
            "dinner_present": self.present_total(MealType.DINNER),
            "rice_kg": self.rice_kg,
            "days": [d.as_dict() for d in self.days],
        }


def meal_slice(meal_type: MealType) -> ReportSlice:
    return ReportSlice(report_type=ReportType.MEAL, meal_type=MealType(meal_type))


def daily_meal_stats(
    reports: Iterable[AttendanceReport],
    students: Sequence[Student],
    classes: Sequence[ClassInfo],
    served_date: date,
) -> DailyMealStats:
    reports = list(reports)
    per_meal = {
        meal: day_stats(reports, students, classes, meal_slice(meal), served_date, MEAL_DIMENSIONS[meal])
        for meal in MealType
    }
    return DailyMealStats(
        served_date=served_date,
        breakfast=per_meal[MealType.BREAKFAST],
        lunch=per_meal[MealType.LUNCH],
        dinner=per_meal[MealType.DINNER],
    )


def meal_summary(
    reports: Iterable[AttendanceReport],
    students: Sequence[Student],
    classes: Sequence[ClassInfo],
    date_range: DateRange,
) -> MealSummary:
    reports = list(reports)
    return MealSummary(
        date_range=date_range,
        days=tuple(daily_meal_stats(reports, students, classes, d) for d in date_range.days()),
    )


@dataclass(frozen=True)
class StudentMealCount:
    student_id: int
    name: str
    class_id: str
    breakfast: int = 0
    lunch: int = 0
    dinner: int = 0

    @property
    def rice_kg(self) -> float:
        return rice_kg(self.lunch, self.dinner)

    def as_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "name": self.name,
            "class_id": self.class_id,
            "breakfast": self.breakfast,
            "lunch": self.lunch,
            "dinner": self.dinner,
            "rice_kg": self.rice_kg,
        }


def student_meal_counts(
    reports: Iterable[AttendanceReport],
    students: Sequence[Student],
    date_range: DateRange,
) -> list[StudentMealCount]:
    """Số bữa mỗi học sinh đã ăn trong khoảng ngày (chỉ tính ngày có báo cáo phủ lớp của em)."""
    reports = list(reports)
    counts = {s.student_id: {meal: 0 for meal in MealType} for s in students}

    for served in date_range.days():
        for meal in MealType:
            todays = _reports_for_day(reports, meal_slice(meal), served)
            if not todays:
                continue
            whole_school = any(r.class_id is None for r in todays)
            referenced: set[str] = set()
            absent_ids: set[int] = set()
            for r in todays:
                referenced |= r.referenced_class_ids()
                absent_ids |= {e.student_id for e in r.absent_students}
            for s in students:
                if (whole_school or s.class_id in referenced) and s.student_id not in absent_ids:
                    counts[s.student_id][meal] += 1

    return [
        StudentMealCount(
            student_id=s.student_id,
            name=s.name,
            class_id=s.class_id,
            breakfast=counts[s.student_id][MealType.BREAKFAST],
            lunch=counts[s.student_id][MealType.LUNCH],
            dinner=counts[s.student_id][MealType.DINNER],
        )
        for s in students
    ]
