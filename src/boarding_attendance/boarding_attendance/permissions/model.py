from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import PermissionAction


@dataclass(frozen=True)
class FeatureGrant:
    """Bốn quyền CRUD trên một chức năng. Các cờ độc lập với nhau."""

    can_view: bool = False
    can_create: bool = False
    can_edit: bool = False
    can_delete: bool = False

    @classmethod
    def full(cls) -> "FeatureGrant":
        return cls(True, True, True, True)

    @property
    def is_empty(self) -> bool:
        return not (self.can_view or self.can_create or self.can_edit or self.can_delete)

    def allows(self, action: PermissionAction) -> bool:
        return bool(getattr(self, f"can_{PermissionAction(action).value}"))

    def union(self, other: "FeatureGrant") -> "FeatureGrant":
        return FeatureGrant(
            can_view=self.can_view or other.can_view,
            can_create=self.can_create or other.can_create,
            can_edit=self.can_edit or other.can_edit,
            can_delete=self.can_delete or other.can_delete,
        )

    def as_dict(self) -> dict:
        return {
            "can_view": self.can_view,
            "can_create": self.can_create,
            "can_edit": self.can_edit,
            "can_delete": self.can_delete,
        }


@dataclass(frozen=True)
class UserPermission:
    user_id: int
    feature_code: str
    grant: FeatureGrant


@dataclass(frozen=True)
class GroupPermission:
    group_id: int
    feature_code: str
    grant: FeatureGrant


@dataclass(frozen=True)
class PermissionGroup:
    group_id: int
    name: str
    description: Optional[str] = None


@dataclass(frozen=True)
class AppFeature:
    """Chức năng có thể phân quyền. Chức năng tắt (is_active=False) bị ẩn khỏi màn hình phân quyền."""

    feature_id: int
    code: str
    label: str
    icon_name: Optional[str] = None
    display_order: int = 0
    is_active: bool = True
