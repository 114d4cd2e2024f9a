from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http import current_permissions, json_body, login_required
from ..container import Container
from .model import Student


def _student_json(s: Student) -> dict:
    return {
        "student_id": s.student_id,
        "name": s.name,
        "class_id": s.class_id,
        "date_of_birth": s.date_of_birth.isoformat() if s.date_of_birth else None,
        "room": s.room,
        "meal_group": s.meal_group,
        "gender": s.gender,
        "parent_phone": s.parent_phone,
        "phone": s.phone,
        "address": s.address,
        "national_id_number": s.national_id_number,
        "is_boarding": s.is_boarding,
    }


def register(app: Flask, container: Container) -> None:
    svc = container.student_service

    @app.route("/api/classes", endpoint="list_classes")
    @login_required
    def list_classes():
        return jsonify(
            {"classes": [{"class_id": c.class_id, "name": c.name, "grade": c.grade} for c in svc.list_classes()]}
        )

    @app.route("/api/students", methods=["GET"], endpoint="list_students")
    @login_required
    def list_students():
        students = svc.list_students(current_permissions(container), class_id=request.args.get("class_id"))
        return jsonify({"students": [_student_json(s) for s in students]})

    @app.route("/api/students", methods=["POST"], endpoint="create_student")
    @login_required
    def create_student():
        student_id = svc.create(current_permissions(container), json_body())
        return jsonify({"message": "Đã thêm học sinh.", "student_id": student_id}), 201

    @app.route("/api/students/<int:student_id>", methods=["PUT"], endpoint="update_student")
    @login_required
    def update_student(student_id: int):
        svc.update(current_permissions(container), student_id=student_id, fields=json_body())
        return jsonify({"message": "Đã cập nhật học sinh."})

    @app.route("/api/students/<int:student_id>", methods=["DELETE"], endpoint="delete_student")
    @login_required
    def delete_student(student_id: int):
        svc.delete(current_permissions(container), student_id=student_id)
        return jsonify({"message": "Đã xoá học sinh."})

    @app.route("/api/students/import", methods=["POST"], endpoint="import_students")
    @login_required
    def import_students():
        rows = json_body().get("rows") or []
        result = svc.bulk_insert(current_permissions(container), rows)
        return jsonify(result.as_dict())
