from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class ClassInfo:
    """Danh mục lớp (dữ liệu seed)."""

    class_id: str
    name: str
    grade: int


@dataclass(frozen=True)
class Student:
    """Thực thể miền (domain): Student.

    Lưu ý: báo cáo lưu bản chụp (snapshot) thông tin học sinh vắng, nên sửa/xoá
    học sinh không làm thay đổi lịch sử.
    """

    student_id: int
    name: str
    class_id: str
    date_of_birth: Optional[date] = None
    room: Optional[str] = None
    meal_group: Optional[str] = None
    gender: Optional[str] = None
    parent_phone: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    national_id_number: Optional[str] = None
    is_boarding: bool = True

    @property
    def is_resident(self) -> bool:
        """Học sinh ở nội trú (có phòng) - thuộc danh sách điểm danh nội trú và báo cơm."""
        return bool(self.room)
