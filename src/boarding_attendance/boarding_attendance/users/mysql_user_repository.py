from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import LoginRecord, Profile
from .repository import ProfileRepository

_COLUMNS = "user_id, email, full_name, username, phone, class_id, is_active"


def _to_profile(row: dict) -> Profile:
    return Profile(
        user_id=int(row["user_id"]),
        email=row["email"],
        full_name=row["full_name"],
        username=row.get("username"),
        phone=row.get("phone"),
        class_id=row.get("class_id"),
        is_active=bool(row.get("is_active", True)),
    )


class MySQLProfileRepository(ProfileRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_where(self, column: str, value) -> Optional[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM profiles WHERE {column}=%s", (value,))
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def get_by_id(self, user_id: int) -> Optional[Profile]:
        return self._get_where("user_id", int(user_id))

    def get_by_email(self, email: str) -> Optional[Profile]:
        return self._get_where("email", email.lower())

    def get_by_username(self, username: str) -> Optional[Profile]:
        return self._get_where("username", username)

    def get_by_phone(self, phone: str) -> Optional[Profile]:
        return self._get_where("phone", phone)

    def list_all(self) -> Sequence[Profile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM profiles ORDER BY full_name")
            return [_to_profile(r) for r in fetchall(cur)]

    def update(
        self,
        *,
        user_id: int,
        full_name: str,
        username: Optional[str],
        phone: Optional[str],
        class_id: Optional[str],
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE profiles SET full_name=%s, username=%s, phone=%s, class_id=%s WHERE user_id=%s",
                (full_name, username, phone, class_id, int(user_id)),
            )
            return cur.rowcount > 0

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("UPDATE profiles SET is_active=%s WHERE user_id=%s", (int(bool(is_active)), int(user_id)))
            return cur.rowcount > 0

    def delete_by_id(self, user_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM profiles WHERE user_id=%s", (int(user_id),))
            return cur.rowcount > 0

    def record_login(self, *, user_id: int, identifier: str, success: bool) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO login_history(user_id, identifier, success) VALUES(%s,%s,%s)",
                (int(user_id), identifier, int(bool(success))),
            )

    def list_login_history(self, *, user_id: Optional[int] = None, limit: int = 50) -> Sequence[LoginRecord]:
        where = "WHERE user_id=%s" if user_id is not None else ""
        params: tuple = (int(user_id),) if user_id is not None else ()
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT user_id, identifier, success, created_at
                FROM login_history
                {where}
                ORDER BY created_at DESC, id DESC
                LIMIT {int(limit)}
                """,
                params,
            )
            return [
                LoginRecord(
                    user_id=int(r["user_id"]),
                    identifier=r["identifier"],
                    success=bool(r["success"]),
                    created_at=r.get("created_at"),
                )
                for r in fetchall(cur)
            ]
