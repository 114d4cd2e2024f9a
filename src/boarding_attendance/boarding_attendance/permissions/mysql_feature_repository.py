from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AppFeature
from .repository import FeatureRepository

_COLUMNS = "feature_id, code, label, icon_name, display_order, is_active"


def _to_feature(r: dict) -> AppFeature:
    return AppFeature(
        feature_id=int(r["feature_id"]),
        code=r["code"],
        label=r["label"],
        icon_name=r.get("icon_name"),
        display_order=int(r.get("display_order") or 0),
        is_active=bool(r.get("is_active", True)),
    )


class MySQLFeatureRepository(FeatureRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self, *, include_inactive: bool = False) -> Sequence[AppFeature]:
        where = "" if include_inactive else "WHERE is_active=1"
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM app_features {where} ORDER BY display_order, code")
            return [_to_feature(r) for r in fetchall(cur)]

    def get_by_code(self, code: str) -> Optional[AppFeature]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM app_features WHERE code=%s", (code,))
            r = fetchone(cur)
            return _to_feature(r) if r else None

    def create(self, *, code: str, label: str, icon_name: Optional[str], display_order: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO app_features(code, label, icon_name, display_order, is_active) VALUES(%s,%s,%s,%s,1)",
                (code, label, icon_name, int(display_order)),
            )
            return int(cur.lastrowid)

    def update(self, *, feature_id: int, label: str, icon_name: Optional[str], display_order: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE app_features SET label=%s, icon_name=%s, display_order=%s WHERE feature_id=%s",
                (label, icon_name, int(display_order), int(feature_id)),
            )
            return cur.rowcount > 0

    def set_active(self, *, feature_id: int, is_active: bool) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE app_features SET is_active=%s WHERE feature_id=%s", (int(bool(is_active)), int(feature_id))
            )
            return cur.rowcount > 0

    def delete_with_grants(self, *, feature_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT code FROM app_features WHERE feature_id=%s", (int(feature_id),))
            r = fetchone(cur)
            if not r:
                return False
            cur.execute("DELETE FROM user_permissions WHERE feature_code=%s", (r["code"],))
            cur.execute("DELETE FROM permission_group_permissions WHERE feature_code=%s", (r["code"],))
            cur.execute("DELETE FROM app_features WHERE feature_id=%s", (int(feature_id),))
            return cur.rowcount > 0
