from __future__ import annotations

from typing import Any, Optional

from flask import Flask, jsonify, request, session

from ..common.http import (
    current_permissions,
    int_arg,
    json_body,
    login_required,
    optional_date_arg,
    parse_date_value,
)
from ..container import Container
from ..core.enums import AbsencePermission, BoardingSession, MealType, ReportType, StatsDimension
from ..core.exceptions import ValidationError
from ..deadlines.evaluator import evaluate_meal_deadline
from .aggregation import DateRange
from .model import AbsenceInput, ReportFilter, ReportForm, ReportSlice


def _enum_or_none(enum_cls, value: Any, field_name: str):
    if value in (None, ""):
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"{field_name} không hợp lệ")


def _parse_absences(raw: Any) -> tuple[AbsenceInput, ...]:
    if raw in (None, ""):
        return ()
    if not isinstance(raw, list):
        raise ValidationError("Danh sách học sinh vắng không hợp lệ")
    out = []
    for item in raw:
        if isinstance(item, dict):
            student_id = item.get("student_id")
            reason = item.get("reason")
            if reason is not None and not isinstance(reason, str):
                raise ValidationError("Lý do không hợp lệ")
            permission = _enum_or_none(AbsencePermission, item.get("permission"), "Loại phép")
        else:
            student_id, reason, permission = item, None, None
        try:
            student_id = int(student_id)
        except (TypeError, ValueError):
            raise ValidationError("Mã học sinh không hợp lệ")
        out.append(
            AbsenceInput(
                student_id=student_id,
                reason=reason,
                permission=permission or AbsencePermission.UNEXCUSED,
            )
        )
    return tuple(out)


def _parse_form(data: dict) -> ReportForm:
    report_type = _enum_or_none(ReportType, data.get("report_type"), "Loại báo cáo")
    if report_type is None:
        raise ValidationError("Loại báo cáo không hợp lệ")
    notes = data.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ValidationError("Ghi chú không hợp lệ")
    class_id = data.get("class_id") or None
    if class_id is not None and not isinstance(class_id, str):
        raise ValidationError("Lớp không hợp lệ")
    present_ids: Optional[frozenset[int]] = None
    if data.get("present_ids") is not None:
        try:
            present_ids = frozenset(int(x) for x in data["present_ids"])
        except (TypeError, ValueError):
            raise ValidationError("Danh sách có mặt không hợp lệ")
    return ReportForm(
        report_date=parse_date_value(data.get("report_date"), "Ngày báo cáo"),
        report_type=report_type,
        session=_enum_or_none(BoardingSession, data.get("session"), "Buổi kiểm tra"),
        meal_type=_enum_or_none(MealType, data.get("meal_type"), "Bữa ăn"),
        class_id=class_id,
        absent=_parse_absences(data.get("absent")),
        present_ids=present_ids,
        notes=notes,
        reporter_name=session.get("name"),
    )


def _slice_from_args() -> ReportSlice:
    report_type = _enum_or_none(ReportType, request.args.get("type"), "Loại báo cáo")
    if report_type is None:
        raise ValidationError("Loại báo cáo không hợp lệ")
    return ReportSlice(
        report_type=report_type,
        session=_enum_or_none(BoardingSession, request.args.get("session"), "Buổi kiểm tra"),
        meal_type=_enum_or_none(MealType, request.args.get("meal_type"), "Bữa ăn"),
    )


def register(app: Flask, container: Container) -> None:
    svc = container.report_service

    @app.route("/api/reports", methods=["POST"], endpoint="submit_report")
    @login_required
    def submit_report():
        report_id = svc.submit(current_permissions(container), _parse_form(json_body()), now=container.clock())
        return jsonify({"message": "Đã lưu báo cáo.", "report_id": report_id}), 201

    @app.route("/api/reports", methods=["GET"], endpoint="report_history")
    @login_required
    def report_history():
        report_filter = ReportFilter(
            start=optional_date_arg("start", "Ngày bắt đầu"),
            end=optional_date_arg("end", "Ngày kết thúc"),
            report_type=_enum_or_none(ReportType, request.args.get("type"), "Loại báo cáo"),
            session=_enum_or_none(BoardingSession, request.args.get("session"), "Buổi kiểm tra"),
            meal_type=_enum_or_none(MealType, request.args.get("meal_type"), "Bữa ăn"),
            class_id=request.args.get("class_id") or None,
            limit=int_arg("limit", 200),
        )
        reports = svc.history(current_permissions(container), report_filter)
        return jsonify({"reports": [r.as_dict() for r in reports]})

    @app.route("/api/reports", methods=["DELETE"], endpoint="delete_reports")
    @login_required
    def delete_reports():
        report_type = _enum_or_none(ReportType, request.args.get("type"), "Loại báo cáo")
        if report_type is None:
            raise ValidationError("Loại báo cáo không hợp lệ")
        result = svc.delete_by_type(current_permissions(container), report_type)
        return jsonify(result.as_dict())

    @app.route("/api/meals/deadlines", endpoint="meal_deadlines")
    @login_required
    def meal_deadlines():
        perms = current_permissions(container)
        now = container.clock()
        out = []
        for meal in MealType:
            status = evaluate_meal_deadline(meal, now)
            out.append(
                {
                    "meal_type": meal.value,
                    "cutoff_hour": status.cutoff_hour,
                    "is_open": perms.is_admin or status.is_open,
                    "is_near_deadline": status.is_near_deadline,
                    "time_remaining": {
                        "hours": status.time_remaining.hours,
                        "minutes": status.time_remaining.minutes,
                    },
                }
            )
        return jsonify({"deadlines": out})

    @app.route("/api/meals/reminders", endpoint="meal_reminders")
    @login_required
    def meal_reminders():
        summary = container.reminder_service.reminders_for(current_permissions(container), now=container.clock())
        return jsonify(
            {
                "pending_count": summary.pending_count,
                "urgent_count": summary.urgent_count,
                "reminders": [r.as_dict() for r in summary.reminders],
            }
        )

    @app.route("/api/stats/meals/daily", endpoint="meal_daily_stats")
    @login_required
    def meal_daily_stats():
        served = optional_date_arg("date", "Ngày") or container.clock().date()
        stats = svc.daily_meal_stats(current_permissions(container), served_date=served)
        return jsonify(stats.as_dict())

    @app.route("/api/stats/meals/summary", endpoint="meal_summary")
    @login_required
    def meal_summary():
        today = container.clock().date()
        start = optional_date_arg("start", "Ngày bắt đầu") or today
        end = optional_date_arg("end", "Ngày kết thúc") or start
        summary = svc.meal_summary(current_permissions(container), start=start, end=end)
        return jsonify(summary.as_dict())

    @app.route("/api/stats/meals/students", endpoint="meal_student_counts")
    @login_required
    def meal_student_counts():
        today = container.clock().date()
        counts = svc.student_meal_counts(
            current_permissions(container), year=int_arg("year", today.year), month=int_arg("month", today.month)
        )
        return jsonify({"students": [c.as_dict() for c in counts]})

    @app.route("/api/stats/attendance", endpoint="attendance_stats")
    @login_required
    def attendance_stats():
        perms = current_permissions(container)
        today = container.clock().date()
        report_slice = _slice_from_args()
        period = request.args.get("period") or "day"
        if period == "week":
            anchor = optional_date_arg("date", "Ngày") or today
            stats = svc.weekly_stats(perms, anchor=anchor, report_slice=report_slice)
        elif period == "month":
            stats = svc.monthly_stats(
                perms, year=int_arg("year", today.year), month=int_arg("month", today.month), report_slice=report_slice
            )
        else:
            start = optional_date_arg("start", "Ngày bắt đầu") or today
            end = optional_date_arg("end", "Ngày kết thúc") or start
            dimension = _enum_or_none(StatsDimension, request.args.get("dimension"), "Chiều thống kê")
            stats = svc.slice_stats(
                perms,
                date_range=DateRange(start=start, end=end),
                report_slice=report_slice,
                dimension=dimension or StatsDimension.CLASS,
            )
        return jsonify(stats.as_dict())
