from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import parse_iso_date
from ..common.results import BulkResult
from ..common.validators import optional_text, require_max_length, require_non_empty, validate_phone
from ..core.constants import FEATURE_STUDENTS
from ..core.exceptions import DomainError, ValidationError
from ..permissions.evaluator import EffectivePermissions
from .model import ClassInfo, Student
from .repository import ClassRepository, StudentRepository

logger = logging.getLogger(__name__)


def _as_bool(value: Any, default: bool = True) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "x", "có", "co"}
    return bool(value)


def _as_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value).strip()[:10])
    except ValueError:
        raise ValidationError("Ngày sinh không hợp lệ (YYYY-MM-DD)")


class StudentService:
    """Use case: danh sách học sinh theo lớp, thêm/sửa/xoá và nhập hàng loạt."""

    def __init__(self, students: StudentRepository, classes: ClassRepository):
        self._students = students
        self._classes = classes

    def list_classes(self) -> Sequence[ClassInfo]:
        return self._classes.list_all()

    def list_students(self, actor: EffectivePermissions, *, class_id: Optional[str] = None) -> Sequence[Student]:
        return self._students.list(class_id=actor.resolve_class_scope(class_id))

    def roster(self, *, class_id: Optional[str] = None, residents_only: bool = False) -> list[Student]:
        """Danh sách học sinh dùng để lập báo cáo / thống kê."""
        students = list(self._students.list(class_id=class_id))
        if residents_only:
            students = [s for s in students if s.is_resident]
        return students

    def get(self, student_id: int) -> Student:
        student = self._students.get_by_id(int(student_id))
        if not student:
            raise ValidationError("Học sinh không tồn tại")
        return student

    def build_student(self, fields: Mapping[str, Any], *, student_id: int = 0) -> Student:
        name = require_non_empty(str(fields.get("name") or ""), "Họ tên học sinh")
        require_max_length(name, "Họ tên học sinh", 100)

        class_id = require_non_empty(str(fields.get("class_id") or ""), "Lớp").lower()
        if class_id not in {c.class_id for c in self._classes.list_all()}:
            raise ValidationError(f"Lớp '{class_id}' không tồn tại")

        return Student(
            student_id=int(student_id),
            name=name,
            class_id=class_id,
            date_of_birth=_as_date(fields.get("date_of_birth")),
            room=optional_text(fields.get("room")),
            meal_group=optional_text(fields.get("meal_group")),
            gender=optional_text(fields.get("gender")),
            parent_phone=validate_phone(fields.get("parent_phone")),
            phone=validate_phone(fields.get("phone")),
            address=optional_text(fields.get("address")),
            national_id_number=optional_text(fields.get("national_id_number")),
            is_boarding=_as_bool(fields.get("is_boarding")),
        )

    def create(self, actor: EffectivePermissions, fields: Mapping[str, Any]) -> int:
        actor.require(actor.can_create(FEATURE_STUDENTS), "Bạn không có quyền thêm học sinh")
        return self._students.insert(self.build_student(fields))

    def update(self, actor: EffectivePermissions, *, student_id: int, fields: Mapping[str, Any]) -> None:
        actor.require(actor.can_edit(FEATURE_STUDENTS), "Bạn không có quyền sửa học sinh")
        self.get(student_id)
        self._students.update(self.build_student(fields, student_id=student_id))

    def delete(self, actor: EffectivePermissions, *, student_id: int) -> None:
        actor.require(actor.can_delete(FEATURE_STUDENTS), "Bạn không có quyền xoá học sinh")
        if not self._students.delete(student_id=int(student_id)):
            raise ValidationError("Học sinh không tồn tại")

    def bulk_insert(self, actor: EffectivePermissions, rows: Iterable[Mapping[str, Any]]) -> BulkResult:
        """Nhập nhiều học sinh; dòng lỗi được ghi lại và không chặn các dòng khác.

        Số dòng trong thông báo lỗi tính từ 2 (dòng 1 là tiêu đề của file nhập).
        """
        actor.require(actor.can_create(FEATURE_STUDENTS), "Bạn không có quyền thêm học sinh")
        result = BulkResult()
        for index, row in enumerate(rows, start=2):
            try:
                self._students.insert(self.build_student(row))
                result.ok()
            except DomainError as e:
                result.fail(f"Dòng {index}: {e}")
        logger.info("Student import by user %s: %d ok, %d failed", actor.user_id, result.success, result.failed)
        return result
