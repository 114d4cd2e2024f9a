from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Mapping, Optional

from ..core.enums import AbsencePermission, BoardingSession, MealType, ReportType


@dataclass(frozen=True)
class AbsentEntry:
    """Bản chụp thông tin học sinh vắng tại thời điểm báo cáo (không tra lại bảng students)."""

    student_id: int
    name: str
    class_id: str
    room: Optional[str] = None
    meal_group: Optional[str] = None
    reason: Optional[str] = None
    permission: AbsencePermission = AbsencePermission.UNEXCUSED

    def as_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "name": self.name,
            "class_id": self.class_id,
            "room": self.room,
            "meal_group": self.meal_group,
            "reason": self.reason,
            "permission": self.permission.value,
        }

    @classmethod
    def from_dict(cls, data: Mapping) -> "AbsentEntry":
        return cls(
            student_id=int(data["student_id"]),
            name=str(data.get("name") or ""),
            class_id=str(data.get("class_id") or ""),
            room=data.get("room"),
            meal_group=data.get("meal_group"),
            reason=data.get("reason"),
            permission=AbsencePermission(data.get("permission") or AbsencePermission.UNEXCUSED.value),
        )


@dataclass(frozen=True)
class AttendanceReport:
    """Thực thể miền (domain): một báo cáo điểm danh.

    Báo cáo chỉ liệt kê học sinh vắng; sĩ số có mặt = tổng - vắng. Báo cáo không
    sửa được sau khi tạo.
    """

    report_id: Optional[int]
    report_date: date
    report_type: ReportType
    total_students: int
    present_count: int
    absent_count: int
    absent_students: tuple[AbsentEntry, ...] = ()
    session: Optional[BoardingSession] = None
    meal_type: Optional[MealType] = None
    class_id: Optional[str] = None
    notes: Optional[str] = None
    reporter_id: Optional[int] = None
    reporter_name: Optional[str] = None
    created_at: Optional[datetime] = None

    def referenced_class_ids(self) -> set[str]:
        ids = {e.class_id for e in self.absent_students if e.class_id}
        if self.class_id:
            ids.add(self.class_id)
        return ids

    def as_dict(self) -> dict:
        return {
            "report_id": self.report_id,
            "report_date": self.report_date.isoformat(),
            "report_type": self.report_type.value,
            "session": self.session.value if self.session else None,
            "meal_type": self.meal_type.value if self.meal_type else None,
            "class_id": self.class_id,
            "total_students": self.total_students,
            "present_count": self.present_count,
            "absent_count": self.absent_count,
            "absent_students": [e.as_dict() for e in self.absent_students],
            "notes": self.notes,
            "reporter_id": self.reporter_id,
            "reporter_name": self.reporter_name,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass(frozen=True)
class ReportSlice:
    """Một "lát" báo cáo: loại + buổi (nội trú) hoặc bữa (báo cơm)."""

    report_type: ReportType
    session: Optional[BoardingSession] = None
    meal_type: Optional[MealType] = None

    def matches(self, report: AttendanceReport) -> bool:
        if report.report_type != self.report_type:
            return False
        if self.session is not None and report.session != self.session:
            return False
        if self.meal_type is not None and report.meal_type != self.meal_type:
            return False
        return True


@dataclass(frozen=True)
class ReportFilter:
    start: Optional[date] = None
    end: Optional[date] = None
    report_type: Optional[ReportType] = None
    session: Optional[BoardingSession] = None
    meal_type: Optional[MealType] = None
    class_id: Optional[str] = None
    limit: Optional[int] = None


@dataclass(frozen=True)
class AbsenceInput:
    student_id: int
    reason: Optional[str] = None
    permission: AbsencePermission = AbsencePermission.UNEXCUSED


@dataclass(frozen=True)
class ReportForm:
    """Dữ liệu người dùng chọn trên form điểm danh.

    Truyền absent (danh sách vắng) hoặc present_ids (danh sách có mặt); nếu
    present_ids khác None thì vắng = sĩ số - có mặt, còn absent chỉ dùng để
    lấy lý do / loại phép cho từng học sinh.
    """

    report_date: date
    report_type: ReportType
    session: Optional[BoardingSession] = None
    meal_type: Optional[MealType] = None
    class_id: Optional[str] = None
    absent: tuple[AbsenceInput, ...] = ()
    present_ids: Optional[frozenset[int]] = None
    notes: Optional[str] = None
    reporter_id: Optional[int] = None
    reporter_name: Optional[str] = None
