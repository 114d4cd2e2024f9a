from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol, Sequence

from ..core.enums import Role
from .model import AppFeature, FeatureGrant, GroupPermission, PermissionGroup, UserPermission


class PermissionRepository(Protocol):
    """Giao diện repository cho vai trò và quyền chi tiết.

    Lưu ý (DIP): tầng service phụ thuộc vào interface này, không phụ thuộc trực tiếp DB cụ thể.
    """

    def list_roles(self, user_id: int) -> Sequence[Role]:
        raise NotImplementedError

    def set_roles(self, *, user_id: int, roles: Iterable[Role]) -> None:
        raise NotImplementedError

    def list_user_permissions(self, user_id: int) -> Sequence[UserPermission]:
        raise NotImplementedError

    def replace_user_permissions(self, *, user_id: int, grants: Mapping[str, FeatureGrant]) -> None:
        """Xoá toàn bộ quyền trực tiếp của user rồi ghi lại các dòng trong grants."""

        raise NotImplementedError

    def list_group_permissions(self, group_id: int) -> Sequence[GroupPermission]:
        raise NotImplementedError

    def replace_group_permissions(self, *, group_id: int, grants: Mapping[str, FeatureGrant]) -> None:
        raise NotImplementedError

    def list_user_group_ids(self, user_id: int) -> Sequence[int]:
        raise NotImplementedError


class PermissionGroupRepository(Protocol):
    def list_all(self) -> Sequence[PermissionGroup]:
        raise NotImplementedError

    def get_by_id(self, group_id: int) -> Optional[PermissionGroup]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[PermissionGroup]:
        raise NotImplementedError

    def create(self, *, name: str, description: Optional[str]) -> int:
        raise NotImplementedError

    def update(self, *, group_id: int, name: str, description: Optional[str]) -> bool:
        raise NotImplementedError

    def delete(self, *, group_id: int) -> bool:
        raise NotImplementedError

    def clear_memberships(self, *, user_id: int) -> None:
        raise NotImplementedError

    def add_membership(self, *, user_id: int, group_id: int) -> bool:
        """Thêm user vào nhóm; trả về False nếu đã có (bỏ qua trùng lặp)."""

        raise NotImplementedError


class FeatureRepository(Protocol):
    def list_all(self, *, include_inactive: bool = False) -> Sequence[AppFeature]:
        raise NotImplementedError

    def get_by_code(self, code: str) -> Optional[AppFeature]:
        raise NotImplementedError

    def create(self, *, code: str, label: str, icon_name: Optional[str], display_order: int) -> int:
        raise NotImplementedError

    def update(
        self, *, feature_id: int, label: str, icon_name: Optional[str], display_order: int
    ) -> bool:
        raise NotImplementedError

    def set_active(self, *, feature_id: int, is_active: bool) -> bool:
        raise NotImplementedError

    def delete_with_grants(self, *, feature_id: int) -> bool:
        """Xoá chức năng cùng mọi quyền (user/nhóm) tham chiếu tới nó."""

        raise NotImplementedError
