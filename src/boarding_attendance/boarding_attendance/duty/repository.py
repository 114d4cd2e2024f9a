from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import DutyEntry


class DutyRepository(Protocol):
    def list_range(self, *, start: date, end: date) -> Sequence[DutyEntry]:
        raise NotImplementedError

    def list_for_date(self, *, duty_date: date) -> Sequence[DutyEntry]:
        raise NotImplementedError

    def get_by_id(self, duty_id: int) -> Optional[DutyEntry]:
        raise NotImplementedError

    def insert(
        self, *, teacher_name: str, duty_date: date, notes: Optional[str] = None, created_by: Optional[int] = None
    ) -> int:
        raise NotImplementedError

    def insert_if_absent(self, *, teacher_name: str, duty_date: date, created_by: Optional[int] = None) -> bool:
        """Thêm (teacher_name, duty_date) nếu chưa có.

        Returns False khi cặp này đã tồn tại (không tạo bản ghi trùng).
        """

        raise NotImplementedError

    def update(self, *, duty_id: int, teacher_name: str, notes: Optional[str] = None) -> bool:
        raise NotImplementedError

    def delete(self, *, duty_id: int) -> bool:
        raise NotImplementedError

    def delete_range(self, *, start: date, end: date) -> int:
        raise NotImplementedError
