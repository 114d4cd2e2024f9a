from __future__ import annotations

import secrets
from datetime import datetime, timedelta
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .repository import AuthGateway

RESET_TOKEN_TTL = timedelta(hours=1)


class MySQLAuthGateway(AuthGateway):
    """Tài khoản lưu trong bảng profiles, mật khẩu băm bằng werkzeug."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def sign_in(self, *, email: str, password: str) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT user_id, password_hash, is_active FROM profiles WHERE email=%s",
                (email.lower(),),
            )
            row = fetchone(cur)
        if not row or not row.get("is_active", True):
            return None
        try:
            ok = check_password_hash(row["password_hash"], password)
        except ValueError:
            # hash hỏng / placeholder kiểu 'CHANGE_ME'
            ok = False
        return int(row["user_id"]) if ok else None

    def sign_up(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        username: Optional[str] = None,
        phone: Optional[str] = None,
        class_id: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO profiles(email, password_hash, full_name, username, phone, class_id, is_active)
                VALUES(%s,%s,%s,%s,%s,%s,1)
                """,
                (email.lower(), generate_password_hash(password), full_name, username, phone, class_id),
            )
            return int(cur.lastrowid)

    def resolve_login_identifier(self, identifier: str) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT email FROM profiles WHERE username=%s OR phone=%s LIMIT 1",
                (identifier, identifier),
            )
            row = fetchone(cur)
            return row["email"] if row else None

    def request_password_reset(self, *, email: str) -> Optional[str]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT user_id FROM profiles WHERE email=%s", (email.lower(),))
            row = fetchone(cur)
            if not row:
                return None
            token = secrets.token_urlsafe(32)
            cur.execute(
                "INSERT INTO password_resets(token, user_id, expires_at) VALUES(%s,%s,%s)",
                (token, int(row["user_id"]), datetime.now() + RESET_TOKEN_TTL),
            )
            return token

    def complete_password_reset(self, *, token: str, password: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id FROM password_resets
                WHERE token=%s AND used_at IS NULL AND expires_at > %s
                """,
                (token, datetime.now()),
            )
            row = fetchone(cur)
            if not row:
                return False
            cur.execute(
                "UPDATE profiles SET password_hash=%s WHERE user_id=%s",
                (generate_password_hash(password), int(row["user_id"])),
            )
            cur.execute("UPDATE password_resets SET used_at=%s WHERE token=%s", (datetime.now(), token))
            return True

    def set_password(self, *, user_id: int, password: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE profiles SET password_hash=%s WHERE user_id=%s",
                (generate_password_hash(password), int(user_id)),
            )
            return cur.rowcount > 0
