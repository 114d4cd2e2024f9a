from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import FeatureGrant, GroupPermission, UserPermission
from .repository import PermissionRepository


def _grant(row: dict) -> FeatureGrant:
    return FeatureGrant(
        can_view=bool(row["can_view"]),
        can_create=bool(row["can_create"]),
        can_edit=bool(row["can_edit"]),
        can_delete=bool(row["can_delete"]),
    )


def _grant_params(owner_id: int, code: str, g: FeatureGrant) -> tuple:
    return (int(owner_id), code, int(g.can_view), int(g.can_create), int(g.can_edit), int(g.can_delete))


class MySQLPermissionRepository(PermissionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_roles(self, user_id: int) -> Sequence[Role]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT role FROM user_roles WHERE user_id=%s ORDER BY role", (int(user_id),))
            out: list[Role] = []
            for r in fetchall(cur):
                try:
                    out.append(Role(r["role"]))
                except ValueError:
                    continue
            return out

    def set_roles(self, *, user_id: int, roles: Iterable[Role]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM user_roles WHERE user_id=%s", (int(user_id),))
            for role in {Role(r) for r in roles}:
                cur.execute("INSERT INTO user_roles(user_id, role) VALUES(%s,%s)", (int(user_id), role.value))

    def list_user_permissions(self, user_id: int) -> Sequence[UserPermission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT user_id, feature_code, can_view, can_create, can_edit, can_delete
                FROM user_permissions
                WHERE user_id=%s
                """,
                (int(user_id),),
            )
            return [
                UserPermission(user_id=int(r["user_id"]), feature_code=r["feature_code"], grant=_grant(r))
                for r in fetchall(cur)
            ]

    def replace_user_permissions(self, *, user_id: int, grants: Mapping[str, FeatureGrant]) -> None:
        # Một transaction: xoá hết rồi ghi lại.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM user_permissions WHERE user_id=%s", (int(user_id),))
            for code, g in grants.items():
                cur.execute(
                    """
                    INSERT INTO user_permissions(user_id, feature_code, can_view, can_create, can_edit, can_delete)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    _grant_params(user_id, code, g),
                )

    def list_group_permissions(self, group_id: int) -> Sequence[GroupPermission]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT group_id, feature_code, can_view, can_create, can_edit, can_delete
                FROM permission_group_permissions
                WHERE group_id=%s
                """,
                (int(group_id),),
            )
            return [
                GroupPermission(group_id=int(r["group_id"]), feature_code=r["feature_code"], grant=_grant(r))
                for r in fetchall(cur)
            ]

    def replace_group_permissions(self, *, group_id: int, grants: Mapping[str, FeatureGrant]) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM permission_group_permissions WHERE group_id=%s", (int(group_id),))
            for code, g in grants.items():
                cur.execute(
                    """
                    INSERT INTO permission_group_permissions(group_id, feature_code, can_view, can_create, can_edit, can_delete)
                    VALUES(%s,%s,%s,%s,%s,%s)
                    """,
                    _grant_params(group_id, code, g),
                )

    def list_user_group_ids(self, user_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT group_id FROM user_permission_groups WHERE user_id=%s", (int(user_id),))
            return [int(r["group_id"]) for r in fetchall(cur)]
