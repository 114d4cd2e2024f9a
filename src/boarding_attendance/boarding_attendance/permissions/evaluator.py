"""Tính quyền hiệu lực của một người dùng.

Nguồn quyền: vai trò (admin có toàn quyền), quyền gán trực tiếp và quyền của
các nhóm mà người dùng thuộc về. Quyền trực tiếp và quyền nhóm được hợp (OR)
theo từng hành động.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from ..core.enums import PermissionAction, Role
from ..core.exceptions import AuthorizationError
from .model import FeatureGrant, GroupPermission, UserPermission

_NO_GRANT = FeatureGrant()


@dataclass(frozen=True)
class EffectivePermissions:
    user_id: Optional[int]
    roles: frozenset[Role] = frozenset()
    class_id: Optional[str] = None
    grants: Mapping[str, FeatureGrant] = field(default_factory=lambda: MappingProxyType({}))
    group_names: frozenset[str] = frozenset()

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles

    def has_role(self, role: Role) -> bool:
        return Role(role) in self.roles

    def has_any_role(self, *roles: Role) -> bool:
        return any(Role(r) in self.roles for r in roles)

    def in_group(self, name: str) -> bool:
        return name in self.group_names

    def grant_for(self, feature_code: str) -> FeatureGrant:
        if self.is_admin:
            return FeatureGrant.full()
        return self.grants.get(feature_code, _NO_GRANT)

    def can(self, action: PermissionAction, feature_code: str) -> bool:
        return self.grant_for(feature_code).allows(action)

    def can_view(self, feature_code: str) -> bool:
        return self.can(PermissionAction.VIEW, feature_code)

    def can_create(self, feature_code: str) -> bool:
        return self.can(PermissionAction.CREATE, feature_code)

    def can_edit(self, feature_code: str) -> bool:
        return self.can(PermissionAction.EDIT, feature_code)

    def can_delete(self, feature_code: str) -> bool:
        return self.can(PermissionAction.DELETE, feature_code)

    # Lối tắt theo vai trò (độc lập với quyền chi tiết theo chức năng)
    def can_access_meals(self) -> bool:
        return self.has_any_role(Role.ADMIN, Role.CLASS_TEACHER, Role.ACCOUNTANT, Role.KITCHEN)

    def can_access_meal_stats(self) -> bool:
        return self.has_any_role(Role.ADMIN, Role.CLASS_TEACHER, Role.ACCOUNTANT, Role.KITCHEN)

    def can_report_meals(self) -> bool:
        return self.has_any_role(Role.ADMIN, Role.CLASS_TEACHER)

    def can_access_attendance(self) -> bool:
        return self.has_any_role(Role.ADMIN, Role.TEACHER, Role.CLASS_TEACHER)

    def is_class_teacher(self, class_id: Optional[str] = None) -> bool:
        if not self.has_role(Role.CLASS_TEACHER) or not self.class_id:
            return False
        return class_id is None or class_id == self.class_id

    def resolve_class_scope(self, requested: Optional[str] = None) -> Optional[str]:
        """Phạm vi lớp được phép xem/ghi.

        Admin chọn tuỳ ý (None = tất cả). GVCN luôn bị giới hạn trong lớp của mình.
        """
        requested = requested or None
        if self.is_admin:
            return requested
        if self.is_class_teacher():
            if requested is not None and requested != self.class_id:
                raise AuthorizationError("Bạn chỉ được thao tác với lớp chủ nhiệm")
            return self.class_id
        return requested

    def require(self, allowed: bool, message: str = "Bạn không có quyền thực hiện thao tác này") -> None:
        if not allowed:
            raise AuthorizationError(message)


def resolve_permissions(
    *,
    user_id: Optional[int],
    roles: Iterable[Role] = (),
    class_id: Optional[str] = None,
    direct_grants: Iterable[UserPermission] = (),
    group_grants: Iterable[GroupPermission] = (),
    group_names: Iterable[str] = (),
) -> EffectivePermissions:
    merged: dict[str, FeatureGrant] = {}
    for row in list(direct_grants) + list(group_grants):
        current = merged.get(row.feature_code, _NO_GRANT)
        merged[row.feature_code] = current.union(row.grant)

    return EffectivePermissions(
        user_id=user_id,
        roles=frozenset(Role(r) for r in roles),
        class_id=class_id or None,
        grants=MappingProxyType({code: g for code, g in merged.items() if not g.is_empty}),
        group_names=frozenset(group_names),
    )


def anonymous() -> EffectivePermissions:
    return EffectivePermissions(user_id=None)
