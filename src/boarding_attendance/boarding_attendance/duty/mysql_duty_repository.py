from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_date, db_cursor, fetchall, fetchone
from .model import DutyEntry
from .repository import DutyRepository

_COLUMNS = "duty_id, teacher_name, duty_date, notes, created_by"


def _to_entry(r: dict) -> DutyEntry:
    return DutyEntry(
        duty_id=int(r["duty_id"]),
        teacher_name=r["teacher_name"],
        duty_date=as_date(r["duty_date"]),
        notes=r.get("notes"),
        created_by=int(r["created_by"]) if r.get("created_by") is not None else None,
    )


class MySQLDutyRepository(DutyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_range(self, *, start: date, end: date) -> Sequence[DutyEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM duty_schedules
                WHERE duty_date BETWEEN %s AND %s
                ORDER BY duty_date ASC, teacher_name ASC
                """,
                (start, end),
            )
            return [_to_entry(r) for r in fetchall(cur)]

    def list_for_date(self, *, duty_date: date) -> Sequence[DutyEntry]:
        return self.list_range(start=duty_date, end=duty_date)

    def get_by_id(self, duty_id: int) -> Optional[DutyEntry]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM duty_schedules WHERE duty_id=%s", (int(duty_id),))
            r = fetchone(cur)
            return _to_entry(r) if r else None

    def insert(
        self, *, teacher_name: str, duty_date: date, notes: Optional[str] = None, created_by: Optional[int] = None
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO duty_schedules(teacher_name, duty_date, notes, created_by) VALUES(%s,%s,%s,%s)",
                (teacher_name, duty_date, notes, created_by),
            )
            return int(cur.lastrowid)

    def insert_if_absent(self, *, teacher_name: str, duty_date: date, created_by: Optional[int] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO duty_schedules(teacher_name, duty_date, created_by)
                SELECT %s, %s, %s FROM DUAL
                WHERE NOT EXISTS (
                    SELECT 1 FROM duty_schedules WHERE teacher_name=%s AND duty_date=%s
                )
                """,
                (teacher_name, duty_date, created_by, teacher_name, duty_date),
            )
            return cur.rowcount > 0

    def update(self, *, duty_id: int, teacher_name: str, notes: Optional[str] = None) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE duty_schedules SET teacher_name=%s, notes=%s WHERE duty_id=%s",
                (teacher_name, notes, int(duty_id)),
            )
            return cur.rowcount > 0

    def delete(self, *, duty_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM duty_schedules WHERE duty_id=%s", (int(duty_id),))
            return cur.rowcount > 0

    def delete_range(self, *, start: date, end: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM duty_schedules WHERE duty_date BETWEEN %s AND %s", (start, end))
            return int(cur.rowcount)
