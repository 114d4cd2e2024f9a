from __future__ import annotations

from typing import Sequence

from ..common.validators import optional_text
from ..core.enums import ReportType
from ..core.exceptions import ValidationError
from ..students.model import Student
from .model import AbsenceInput, AbsentEntry, AttendanceReport, ReportForm


def _check_slice_fields(form: ReportForm) -> None:
    report_type = ReportType(form.report_type)
    if report_type == ReportType.BOARDING:
        if form.session is None or form.meal_type is not None:
            raise ValidationError("Báo cáo nội trú phải chọn đúng một buổi kiểm tra")
    elif report_type == ReportType.MEAL:
        if form.meal_type is None or form.session is not None:
            raise ValidationError("Báo cơm phải chọn đúng một bữa ăn")
    elif form.session is not None or form.meal_type is not None:
        raise ValidationError("Báo cáo giờ tự học không có buổi/bữa")


def build_report(form: ReportForm, roster: Sequence[Student]) -> AttendanceReport:
    """Chuyển lựa chọn trên form thành báo cáo chuẩn để lưu.

    roster là danh sách học sinh trong phạm vi báo cáo (đã lọc theo lớp / nội trú).
    Hàm thuần, không ghi dữ liệu.
    """
    _check_slice_fields(form)

    roster_ids = [s.student_id for s in roster]
    details: dict[int, AbsenceInput] = {a.student_id: a for a in form.absent}

    if form.present_ids is not None:
        present = set(form.present_ids)
        absent_ids = {sid for sid in roster_ids if sid not in present}
    else:
        absent_ids = set(details) & set(roster_ids)

    absent_students = []
    for student in roster:
        if student.student_id not in absent_ids:
            continue
        detail = details.get(student.student_id) or AbsenceInput(student_id=student.student_id)
        absent_students.append(
            AbsentEntry(
                student_id=student.student_id,
                name=student.name,
                class_id=student.class_id,
                room=student.room,
                meal_group=student.meal_group,
                reason=optional_text(detail.reason, "Lý do"),
                permission=detail.permission,
            )
        )

    total = len(roster)
    absent = len(absent_students)
    return AttendanceReport(
        report_id=None,
        report_date=form.report_date,
        report_type=ReportType(form.report_type),
        session=form.session,
        meal_type=form.meal_type,
        class_id=form.class_id or None,
        total_students=total,
        present_count=total - absent,
        absent_count=absent,
        absent_students=tuple(absent_students),
        notes=optional_text(form.notes, "Ghi chú"),
        reporter_id=form.reporter_id,
        reporter_name=form.reporter_name,
    )
