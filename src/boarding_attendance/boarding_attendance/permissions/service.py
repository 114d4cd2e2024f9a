from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping, Optional, Sequence

from ..common.results import BulkResult
from ..common.validators import optional_text, require_non_empty
from ..core.constants import FEATURE_USERS
from ..core.enums import GroupAssignMode
from ..core.exceptions import DomainError, ValidationError
from .editor import grants_to_persist
from .evaluator import EffectivePermissions, resolve_permissions
from .model import AppFeature, FeatureGrant, PermissionGroup
from ..users.repository import ProfileRepository
from .repository import FeatureRepository, PermissionGroupRepository, PermissionRepository

logger = logging.getLogger(__name__)

_FEATURE_CODE_RE = re.compile(r"^[a-z][a-z0-9_]{1,49}$")


class PermissionService:
    """Use case: tính quyền hiệu lực và quản trị quyền (vai trò, quyền trực tiếp, nhóm quyền, chức năng)."""

    def __init__(
        self,
        permissions: PermissionRepository,
        groups: PermissionGroupRepository,
        features: FeatureRepository,
        profiles: Optional[ProfileRepository] = None,
    ):
        self._permissions = permissions
        self._groups = groups
        self._features = features
        self._profiles = profiles

    def load_for_user(self, *, user_id: int, class_id: Optional[str] = None) -> EffectivePermissions:
        """Tính quyền hiệu lực; lớp chủ nhiệm lấy từ hồ sơ hiện tại nếu không truyền vào."""
        if class_id is None and self._profiles is not None:
            profile = self._profiles.get_by_id(int(user_id))
            class_id = profile.class_id if profile else None
        roles = self._permissions.list_roles(user_id)
        direct = self._permissions.list_user_permissions(user_id)

        group_grants = []
        group_names = []
        for group_id in self._permissions.list_user_group_ids(user_id):
            group = self._groups.get_by_id(group_id)
            if group:
                group_names.append(group.name)
            group_grants.extend(self._permissions.list_group_permissions(group_id))

        return resolve_permissions(
            user_id=user_id,
            roles=roles,
            class_id=class_id,
            direct_grants=direct,
            group_grants=group_grants,
            group_names=group_names,
        )

    def _require_editor(self, actor: EffectivePermissions) -> None:
        actor.require(actor.is_admin or actor.can_edit(FEATURE_USERS), "Bạn không có quyền phân quyền người dùng")

    # --- quyền trực tiếp / quyền nhóm ------------------------------------
    def get_user_grants(self, user_id: int) -> dict[str, FeatureGrant]:
        return {p.feature_code: p.grant for p in self._permissions.list_user_permissions(user_id)}

    def get_group_grants(self, group_id: int) -> dict[str, FeatureGrant]:
        return {p.feature_code: p.grant for p in self._permissions.list_group_permissions(group_id)}

    def save_user_grants(
        self, actor: EffectivePermissions, *, user_id: int, grants: Mapping[str, FeatureGrant]
    ) -> int:
        """Ghi đè quyền trực tiếp của user; chỉ lưu các dòng có ít nhất một quyền. Trả về số dòng đã lưu."""
        self._require_editor(actor)
        rows = grants_to_persist(grants)
        self._permissions.replace_user_permissions(user_id=int(user_id), grants=rows)
        logger.info("User %s saved %d permission rows for user %s", actor.user_id, len(rows), user_id)
        return len(rows)

    def save_group_grants(
        self, actor: EffectivePermissions, *, group_id: int, grants: Mapping[str, FeatureGrant]
    ) -> int:
        self._require_editor(actor)
        if not self._groups.get_by_id(group_id):
            raise ValidationError("Nhóm quyền không tồn tại")
        rows = grants_to_persist(grants)
        self._permissions.replace_group_permissions(group_id=int(group_id), grants=rows)
        logger.info("User %s saved %d permission rows for group %s", actor.user_id, len(rows), group_id)
        return len(rows)

    # --- nhóm quyền ------------------------------------------------------
    def list_groups(self) -> Sequence[PermissionGroup]:
        return self._groups.list_all()

    def create_group(self, actor: EffectivePermissions, *, name: str, description: Optional[str] = None) -> int:
        self._require_editor(actor)
        name = require_non_empty(name, "Tên nhóm")
        if self._groups.get_by_name(name):
            raise ValidationError("Tên nhóm đã tồn tại")
        return self._groups.create(name=name, description=optional_text(description))

    def update_group(
        self, actor: EffectivePermissions, *, group_id: int, name: str, description: Optional[str] = None
    ) -> None:
        self._require_editor(actor)
        name = require_non_empty(name, "Tên nhóm")
        existing = self._groups.get_by_name(name)
        if existing and existing.group_id != int(group_id):
            raise ValidationError("Tên nhóm đã tồn tại")
        if not self._groups.update(group_id=int(group_id), name=name, description=optional_text(description)):
            raise ValidationError("Nhóm quyền không tồn tại")

    def delete_group(self, actor: EffectivePermissions, *, group_id: int) -> None:
        self._require_editor(actor)
        if not self._groups.delete(group_id=int(group_id)):
            raise ValidationError("Nhóm quyền không tồn tại")

    def assign_groups(
        self,
        actor: EffectivePermissions,
        *,
        user_ids: Iterable[int],
        group_ids: Iterable[int],
        mode: GroupAssignMode = GroupAssignMode.APPEND,
    ) -> BulkResult:
        """Gán nhóm hàng loạt. APPEND bỏ qua cặp đã có; REPLACE xoá nhóm cũ của user trước."""
        self._require_editor(actor)
        user_ids = sorted({int(u) for u in user_ids})
        group_ids = sorted({int(g) for g in group_ids})
        if not user_ids or not group_ids:
            raise ValidationError("Vui lòng chọn người dùng và nhóm quyền")

        result = BulkResult()
        for user_id in user_ids:
            try:
                if GroupAssignMode(mode) == GroupAssignMode.REPLACE:
                    self._groups.clear_memberships(user_id=user_id)
                for group_id in group_ids:
                    if self._groups.add_membership(user_id=user_id, group_id=group_id):
                        result.ok()
                    else:
                        result.skip()
            except DomainError as e:
                logger.warning("Assign groups failed for user %s: %s", user_id, e)
                result.fail(f"Người dùng {user_id}: {e}")
        return result

    # --- danh mục chức năng ----------------------------------------------
    def list_features(self, *, include_inactive: bool = False) -> Sequence[AppFeature]:
        return self._features.list_all(include_inactive=include_inactive)

    def create_feature(
        self,
        actor: EffectivePermissions,
        *,
        code: str,
        label: str,
        icon_name: Optional[str] = None,
        display_order: int = 0,
    ) -> int:
        actor.require(actor.is_admin, "Chỉ quản trị viên được quản lý chức năng")
        code = require_non_empty(code, "Mã chức năng").lower()
        if not _FEATURE_CODE_RE.match(code):
            raise ValidationError("Mã chức năng chỉ gồm chữ thường, số và dấu gạch dưới")
        label = require_non_empty(label, "Tên chức năng")
        if self._features.get_by_code(code):
            raise ValidationError("Mã chức năng đã tồn tại")
        return self._features.create(
            code=code, label=label, icon_name=optional_text(icon_name), display_order=int(display_order)
        )

    def update_feature(
        self,
        actor: EffectivePermissions,
        *,
        feature_id: int,
        label: str,
        icon_name: Optional[str] = None,
        display_order: int = 0,
    ) -> None:
        actor.require(actor.is_admin, "Chỉ quản trị viên được quản lý chức năng")
        label = require_non_empty(label, "Tên chức năng")
        if not self._features.update(
            feature_id=int(feature_id), label=label, icon_name=optional_text(icon_name), display_order=int(display_order)
        ):
            raise ValidationError("Chức năng không tồn tại")

    def set_feature_active(self, actor: EffectivePermissions, *, feature_id: int, is_active: bool) -> None:
        actor.require(actor.is_admin, "Chỉ quản trị viên được quản lý chức năng")
        if not self._features.set_active(feature_id=int(feature_id), is_active=bool(is_active)):
            raise ValidationError("Chức năng không tồn tại")

    def delete_feature(self, actor: EffectivePermissions, *, feature_id: int) -> None:
        actor.require(actor.is_admin, "Chỉ quản trị viên được quản lý chức năng")
        if not self._features.delete_with_grants(feature_id=int(feature_id)):
            raise ValidationError("Chức năng không tồn tại")
        logger.info("User %s deleted feature %s and its grants", actor.user_id, feature_id)
