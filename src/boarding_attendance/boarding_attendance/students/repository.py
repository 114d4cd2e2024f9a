from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import ClassInfo, Student


class StudentRepository(Protocol):
    def list(self, *, class_id: Optional[str] = None) -> Sequence[Student]:
        raise NotImplementedError

    def get_by_id(self, student_id: int) -> Optional[Student]:
        raise NotImplementedError

    def insert(self, student: Student) -> int:
        """Insert a student (student_id is ignored). Returns the new id."""

        raise NotImplementedError

    def update(self, student: Student) -> bool:
        raise NotImplementedError

    def delete(self, *, student_id: int) -> bool:
        raise NotImplementedError


class ClassRepository(Protocol):
    def list_all(self) -> Sequence[ClassInfo]:
        raise NotImplementedError
