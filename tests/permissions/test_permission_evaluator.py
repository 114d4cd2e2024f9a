from __future__ import annotations

import pytest

from boarding_attendance.core.enums import PermissionAction, Role
from boarding_attendance.core.exceptions import AuthorizationError
from boarding_attendance.permissions.evaluator import anonymous, resolve_permissions
from boarding_attendance.permissions.model import FeatureGrant, GroupPermission, UserPermission


def test_direct_and_group_grants_are_unioned_per_action():
    perms = resolve_permissions(
        user_id=5,
        roles=[Role.TEACHER],
        direct_grants=[UserPermission(5, "students", FeatureGrant(can_edit=True))],
        group_grants=[GroupPermission(1, "students", FeatureGrant(can_delete=True))],
    )
    assert perms.can_edit("students")
    assert perms.can_delete("students")
    # Không tự suy ra quyền xem từ quyền sửa.
    assert not perms.can_view("students")
    assert not perms.can_create("students")


def test_admin_gets_every_action_on_any_feature():
    perms = resolve_permissions(user_id=1, roles=[Role.ADMIN])
    for action in PermissionAction:
        assert perms.can(action, "anything")


def test_empty_grants_are_dropped():
    perms = resolve_permissions(
        user_id=5, direct_grants=[UserPermission(5, "meals", FeatureGrant())]
    )
    assert "meals" not in perms.grants
    assert not perms.can_view("meals")


def test_role_shortcuts():
    kitchen = resolve_permissions(user_id=3, roles=[Role.KITCHEN])
    assert kitchen.can_access_meals()
    assert kitchen.can_access_meal_stats()
    assert not kitchen.can_report_meals()
    assert not kitchen.can_access_attendance()

    teacher = resolve_permissions(user_id=4, roles=[Role.TEACHER])
    assert teacher.can_access_attendance()
    assert not teacher.can_access_meals()


def test_class_teacher_scope_is_locked_to_own_class(gvcn_perms, admin_perms):
    assert gvcn_perms.resolve_class_scope(None) == "6a"
    assert gvcn_perms.resolve_class_scope("6a") == "6a"
    with pytest.raises(AuthorizationError):
        gvcn_perms.resolve_class_scope("6b")

    assert admin_perms.resolve_class_scope(None) is None
    assert admin_perms.resolve_class_scope("6b") == "6b"


def test_anonymous_has_nothing():
    perms = anonymous()
    assert not perms.is_admin
    assert not perms.can_view("students")
    with pytest.raises(AuthorizationError):
        perms.require(perms.can_view("students"))
