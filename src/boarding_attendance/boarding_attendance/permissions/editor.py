"""Quy tắc tiện lợi của màn hình phân quyền.

Chỉ áp dụng khi chỉnh sửa: bật một hành động thì tự bật quyền xem, tắt quyền
xem thì tắt mọi hành động. Bộ đánh giá quyền không áp dụng các quy tắc này.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping

from ..core.enums import PermissionAction
from .model import FeatureGrant


def toggle(grant: FeatureGrant, action: PermissionAction, value: bool) -> FeatureGrant:
    action = PermissionAction(action)
    if action == PermissionAction.VIEW:
        if value:
            return replace(grant, can_view=True)
        return FeatureGrant()

    updated = replace(grant, **{f"can_{action.value}": bool(value)})
    if value:
        updated = replace(updated, can_view=True)
    return updated


def select_all(value: bool) -> FeatureGrant:
    """Chọn/bỏ chọn cả bốn quyền của một chức năng."""
    return FeatureGrant.full() if value else FeatureGrant()


def set_view_for_all(
    grants: Mapping[str, FeatureGrant], feature_codes: Iterable[str], value: bool
) -> dict[str, FeatureGrant]:
    """Bật/tắt quyền xem cho mọi chức năng; khi bật thì giữ nguyên các hành động khác."""
    out = dict(grants)
    for code in feature_codes:
        out[code] = toggle(out.get(code, FeatureGrant()), PermissionAction.VIEW, value)
    return out


def grants_to_persist(grants: Mapping[str, FeatureGrant]) -> dict[str, FeatureGrant]:
    # Dòng toàn False coi như không có quyền, không lưu.
    return {code: g for code, g in grants.items() if not g.is_empty}
