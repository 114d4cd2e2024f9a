from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import current_permissions, int_arg, json_body, login_required, parse_date_value
from ..container import Container
from ..core.exceptions import ValidationError
from .model import DutyEntry


def _entry_json(e: DutyEntry) -> dict:
    return {
        "duty_id": e.duty_id,
        "teacher_name": e.teacher_name,
        "duty_date": e.duty_date.isoformat(),
        "notes": e.notes,
    }


def _parse_selections(raw) -> list[tuple[str, object]]:
    if not isinstance(raw, list):
        raise ValidationError("Danh sách lịch trực không hợp lệ")
    out = []
    for item in raw:
        if not isinstance(item, dict):
            raise ValidationError("Danh sách lịch trực không hợp lệ")
        out.append((str(item.get("teacher_name") or ""), parse_date_value(item.get("duty_date"), "Ngày trực")))
    return out


def register(app: Flask, container: Container) -> None:
    svc = container.duty_service

    @app.route("/api/duty/current", endpoint="duty_current")
    @login_required
    def duty_current():
        roster = svc.current_roster(now=container.clock())
        return jsonify(
            {
                "shift_date": roster.shift.shift_date.isoformat(),
                "shift_end": roster.shift.shift_end.isoformat(),
                "remaining": {"hours": roster.shift.remaining.hours, "minutes": roster.shift.remaining.minutes},
                "entries": [_entry_json(e) for e in roster.entries],
                "staff_count": roster.staffing.count,
                "expected": roster.staffing.expected,
                "is_adequate": roster.staffing.is_adequate,
                "shortfall": roster.staffing.shortfall,
            }
        )

    @app.route("/api/duty", methods=["GET"], endpoint="duty_month")
    @login_required
    def duty_month():
        today = container.clock().date()
        entries = svc.list_month(year=int_arg("year", today.year), month=int_arg("month", today.month))
        return jsonify(
            {
                "entries": [_entry_json(e) for e in entries],
                "can_manage": svc.can_manage(current_permissions(container)),
            }
        )

    @app.route("/api/duty", methods=["POST"], endpoint="duty_add")
    @login_required
    def duty_add():
        data = json_body()
        duty_id = svc.add(
            current_permissions(container),
            teacher_name=str(data.get("teacher_name", "")),
            duty_date=parse_date_value(data.get("duty_date"), "Ngày trực"),
            notes=data.get("notes"),
        )
        return jsonify({"message": "Đã thêm lịch trực.", "duty_id": duty_id}), 201

    @app.route("/api/duty/<int:duty_id>", methods=["PUT"], endpoint="duty_update")
    @login_required
    def duty_update(duty_id: int):
        data = json_body()
        svc.update(
            current_permissions(container),
            duty_id=duty_id,
            teacher_name=str(data.get("teacher_name", "")),
            notes=data.get("notes"),
        )
        return jsonify({"message": "Đã cập nhật lịch trực."})

    @app.route("/api/duty/<int:duty_id>", methods=["DELETE"], endpoint="duty_delete")
    @login_required
    def duty_delete(duty_id: int):
        svc.delete(current_permissions(container), duty_id=duty_id)
        return jsonify({"message": "Đã xoá lịch trực."})

    @app.route("/api/duty/bulk", methods=["POST"], endpoint="duty_bulk")
    @login_required
    def duty_bulk():
        selections = _parse_selections(json_body().get("entries"))
        result = svc.bulk_assign(current_permissions(container), selections)
        return jsonify(result.as_dict())

    @app.route("/api/duty/month", methods=["PUT"], endpoint="duty_replace_month")
    @login_required
    def duty_replace_month():
        data = json_body()
        try:
            year, month = int(data.get("year")), int(data.get("month"))
        except (TypeError, ValueError):
            raise ValidationError("Tháng/năm không hợp lệ")
        result = svc.replace_month(
            current_permissions(container),
            year=year,
            month=month,
            selections=_parse_selections(data.get("entries")),
        )
        return jsonify(result.as_dict())

    @app.route("/api/duty/copy-previous", methods=["POST"], endpoint="duty_copy_previous")
    @login_required
    def duty_copy_previous():
        data = json_body()
        today = container.clock().date()
        proposals = svc.copy_previous_month(
            year=int(data.get("year") or today.year),
            month=int(data.get("month") or today.month),
            current=_parse_selections(data.get("entries") or []),
        )
        return jsonify({"entries": [{"teacher_name": n, "duty_date": d.isoformat()} for n, d in proposals]})
