from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import PermissionGroup
from .repository import PermissionGroupRepository


def _to_group(r: dict) -> PermissionGroup:
    return PermissionGroup(group_id=int(r["group_id"]), name=r["name"], description=r.get("description"))


class MySQLPermissionGroupRepository(PermissionGroupRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[PermissionGroup]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT group_id, name, description FROM permission_groups ORDER BY name")
            return [_to_group(r) for r in fetchall(cur)]

    def get_by_id(self, group_id: int) -> Optional[PermissionGroup]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT group_id, name, description FROM permission_groups WHERE group_id=%s", (int(group_id),))
            r = fetchone(cur)
            return _to_group(r) if r else None

    def get_by_name(self, name: str) -> Optional[PermissionGroup]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT group_id, name, description FROM permission_groups WHERE name=%s", (name,))
            r = fetchone(cur)
            return _to_group(r) if r else None

    def create(self, *, name: str, description: Optional[str]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("INSERT INTO permission_groups(name, description) VALUES(%s,%s)", (name, description))
            return int(cur.lastrowid)

    def update(self, *, group_id: int, name: str, description: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE permission_groups SET name=%s, description=%s WHERE group_id=%s",
                (name, description, int(group_id)),
            )
            return cur.rowcount > 0

    def delete(self, *, group_id: int) -> bool:
        # permission_group_permissions / user_permission_groups xoá theo ON DELETE CASCADE
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM permission_groups WHERE group_id=%s", (int(group_id),))
            return cur.rowcount > 0

    def clear_memberships(self, *, user_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM user_permission_groups WHERE user_id=%s", (int(user_id),))

    def add_membership(self, *, user_id: int, group_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT IGNORE INTO user_permission_groups(user_id, group_id) VALUES(%s,%s)",
                (int(user_id), int(group_id)),
            )
            return cur.rowcount > 0
