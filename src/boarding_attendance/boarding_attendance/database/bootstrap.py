from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterable

from werkzeug.security import generate_password_hash

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)


def _connect(db_config: dict, *, with_database: bool = True):
    return DatabaseConnection(DBConfig.from_dict(db_config)).connect(with_database=with_database)


def _strip_create_db_and_use(sql: str) -> str:
    # schema.sql dùng được với mọi tên DB cấu hình trong DB_CONFIG.
    sql = re.sub(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$", "", sql)
    sql = re.sub(r"(?im)^\s*USE\b.*?;\s*$", "", sql)
    return sql


def _iter_sql_statements(sql: str) -> Iterable[str]:
    """Split a script on ';' outside of quoted strings."""

    buf: list[str] = []
    quote = ""
    escaped = False

    for ch in sql:
        buf.append(ch)
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif quote:
            if ch == quote:
                quote = ""
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            stmt = "".join(buf[:-1]).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _run_script(db_config: dict, path: str | Path) -> int:
    sql = _strip_create_db_and_use(Path(path).read_text(encoding="utf-8"))
    conn = _connect(db_config)
    count = 0
    try:
        cur = conn.cursor()
        for stmt in _iter_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    finally:
        conn.close()
    return count


def ensure_database_exists(db_config: dict) -> None:
    target = DBConfig.from_dict(db_config)
    conn = _connect(db_config, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{target.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci;"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    count = _run_script(db_config, schema_path)
    logger.info("Applied schema %s (%d statements)", schema_path, count)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    count = _run_script(db_config, seed_path)
    logger.info("Applied seed %s (%d statements)", seed_path, count)


def ensure_demo_users(db_config: dict) -> None:
    """Tạo (hoặc đặt lại mật khẩu) tài khoản demo: quản trị viên và một GVCN lớp 6A."""

    conn = _connect(db_config)
    try:
        cur = conn.cursor(dictionary=True)

        def upsert_profile(*, email: str, username: str, full_name: str, password: str, class_id=None) -> int:
            password_hash = generate_password_hash(password)
            cur.execute("SELECT user_id FROM profiles WHERE email=%s", (email,))
            existing = cur.fetchone()
            if existing:
                cur.execute(
                    """
                    UPDATE profiles
                    SET full_name=%s, username=%s, password_hash=%s, class_id=%s, is_active=1
                    WHERE user_id=%s
                    """,
                    (full_name, username, password_hash, class_id, existing["user_id"]),
                )
                return int(existing["user_id"])
            cur.execute(
                """
                INSERT INTO profiles (email, username, full_name, password_hash, class_id)
                VALUES (%s, %s, %s, %s, %s)
                """,
                (email, username, full_name, password_hash, class_id),
            )
            return int(cur.lastrowid)

        def grant_role(user_id: int, role: str) -> None:
            cur.execute("INSERT IGNORE INTO user_roles (user_id, role) VALUES (%s, %s)", (user_id, role))

        admin_id = upsert_profile(
            email="admin@school.edu.vn", username="admin", full_name="Quản trị viên", password="admin123"
        )
        grant_role(admin_id, "admin")

        gvcn_id = upsert_profile(
            email="gvcn6a@school.edu.vn",
            username="gvcn6a",
            full_name="Nguyễn Thị Lan",
            password="teacher123",
            class_id="6a",
        )
        grant_role(gvcn_id, "teacher")
        grant_role(gvcn_id, "class_teacher")

        conn.commit()
    finally:
        conn.close()


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(db_config)
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
