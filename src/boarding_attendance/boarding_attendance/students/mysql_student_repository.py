from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, fetchall, fetchone
from .model import ClassInfo, Student
from .repository import ClassRepository, StudentRepository

_COLUMNS = (
    "student_id, name, class_id, date_of_birth, room, meal_group, gender, "
    "parent_phone, phone, address, national_id_number, is_boarding"
)


def _to_student(r: dict) -> Student:
    return Student(
        student_id=int(r["student_id"]),
        name=r["name"],
        class_id=r["class_id"],
        date_of_birth=as_date(r.get("date_of_birth")),
        room=r.get("room"),
        meal_group=r.get("meal_group"),
        gender=r.get("gender"),
        parent_phone=r.get("parent_phone"),
        phone=r.get("phone"),
        address=r.get("address"),
        national_id_number=r.get("national_id_number"),
        is_boarding=bool(r.get("is_boarding", True)),
    )


def _params(s: Student) -> tuple:
    return (
        s.name,
        s.class_id,
        s.date_of_birth,
        s.room,
        s.meal_group,
        s.gender,
        s.parent_phone,
        s.phone,
        s.address,
        s.national_id_number,
        int(s.is_boarding),
    )


class MySQLStudentRepository(StudentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list(self, *, class_id: Optional[str] = None) -> Sequence[Student]:
        where = ""
        params: tuple = ()
        if class_id:
            where = "WHERE class_id=%s"
            params = (class_id,)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students {where} ORDER BY class_id, name", params)
            return [_to_student(r) for r in fetchall(cur)]

    def get_by_id(self, student_id: int) -> Optional[Student]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM students WHERE student_id=%s", (int(student_id),))
            r = fetchone(cur)
            return _to_student(r) if r else None

    def insert(self, student: Student) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO students(name, class_id, date_of_birth, room, meal_group, gender,
                                     parent_phone, phone, address, national_id_number, is_boarding)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                _params(student),
            )
            return int(cur.lastrowid)

    def update(self, student: Student) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE students
                SET name=%s, class_id=%s, date_of_birth=%s, room=%s, meal_group=%s, gender=%s,
                    parent_phone=%s, phone=%s, address=%s, national_id_number=%s, is_boarding=%s
                WHERE student_id=%s
                """,
                _params(student) + (int(student.student_id),),
            )
            return cur.rowcount > 0

    def delete(self, *, student_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM students WHERE student_id=%s", (int(student_id),))
            return cur.rowcount > 0


class MySQLClassRepository(ClassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[ClassInfo]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, grade FROM classes ORDER BY grade, name")
            return [ClassInfo(class_id=r["id"], name=r["name"], grade=int(r["grade"])) for r in fetchall(cur)]
