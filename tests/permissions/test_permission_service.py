from __future__ import annotations

import pytest

from boarding_attendance.core.enums import GroupAssignMode, Role
from boarding_attendance.core.exceptions import AuthorizationError, ValidationError
from boarding_attendance.permissions.evaluator import resolve_permissions
from boarding_attendance.permissions.model import FeatureGrant
from boarding_attendance.permissions.service import PermissionService


@pytest.fixture
def perm_svc(repos):
    return PermissionService(repos.permissions, repos.groups, repos.features)


def test_load_for_user_merges_roles_direct_and_group_grants(perm_svc, repos, admin_perms):
    repos.permissions.set_roles(user_id=10, roles=[Role.TEACHER])
    perm_svc.save_user_grants(admin_perms, user_id=10, grants={"students": FeatureGrant(can_edit=True)})
    gid = perm_svc.create_group(admin_perms, name="Quản lí nội trú", description="Nhóm quản lý")
    perm_svc.save_group_grants(admin_perms, group_id=gid, grants={"students": FeatureGrant(can_delete=True)})
    perm_svc.assign_groups(admin_perms, user_ids=[10], group_ids=[gid])

    perms = perm_svc.load_for_user(user_id=10)
    assert perms.has_role(Role.TEACHER)
    assert perms.can_edit("students") and perms.can_delete("students")
    assert perms.in_group("Quản lí nội trú")


def test_load_for_user_reads_class_from_current_profile(repos):
    svc = PermissionService(repos.permissions, repos.groups, repos.features, repos.accounts)
    user_id = repos.accounts.sign_up(
        email="gvcn7a@school.edu.vn", password="teacher123", full_name="Trần Văn Nam", class_id="7a"
    )
    repos.permissions.set_roles(user_id=user_id, roles=[Role.TEACHER, Role.CLASS_TEACHER])
    assert svc.load_for_user(user_id=user_id).class_id == "7a"

    repos.accounts.update(user_id=user_id, full_name="Trần Văn Nam", username=None, phone=None, class_id="6b")
    assert svc.load_for_user(user_id=user_id).class_id == "6b"


def test_save_user_grants_drops_all_false_rows(perm_svc, repos, admin_perms):
    saved = perm_svc.save_user_grants(
        admin_perms,
        user_id=10,
        grants={"students": FeatureGrant(), "meals": FeatureGrant(can_view=True)},
    )
    assert saved == 1
    assert list(perm_svc.get_user_grants(10)) == ["meals"]


def test_only_editors_can_change_permissions(perm_svc):
    teacher = resolve_permissions(user_id=4, roles=[Role.TEACHER])
    with pytest.raises(AuthorizationError):
        perm_svc.save_user_grants(teacher, user_id=10, grants={})
    with pytest.raises(AuthorizationError):
        perm_svc.create_group(teacher, name="Nhóm A")


def test_group_names_must_be_unique(perm_svc, admin_perms):
    perm_svc.create_group(admin_perms, name="Nhóm A")
    with pytest.raises(ValidationError):
        perm_svc.create_group(admin_perms, name="Nhóm A")


def test_assign_groups_append_skips_existing(perm_svc, admin_perms):
    a = perm_svc.create_group(admin_perms, name="Nhóm A")
    b = perm_svc.create_group(admin_perms, name="Nhóm B")
    perm_svc.assign_groups(admin_perms, user_ids=[10], group_ids=[a])

    result = perm_svc.assign_groups(admin_perms, user_ids=[10, 11], group_ids=[a, b])
    assert result.success == 3
    assert result.skipped == 1


def test_assign_groups_replace_clears_old_memberships(perm_svc, repos, admin_perms):
    a = perm_svc.create_group(admin_perms, name="Nhóm A")
    b = perm_svc.create_group(admin_perms, name="Nhóm B")
    perm_svc.assign_groups(admin_perms, user_ids=[10], group_ids=[a])

    result = perm_svc.assign_groups(admin_perms, user_ids=[10], group_ids=[b], mode=GroupAssignMode.REPLACE)
    assert result.success == 1
    assert repos.permissions.list_user_group_ids(10) == [b]


def test_assign_groups_requires_selection(perm_svc, admin_perms):
    with pytest.raises(ValidationError):
        perm_svc.assign_groups(admin_perms, user_ids=[], group_ids=[1])


def test_feature_catalog_is_admin_only(perm_svc, repos, admin_perms):
    editor = resolve_permissions(user_id=4, roles=[Role.TEACHER])
    with pytest.raises(AuthorizationError):
        perm_svc.create_feature(editor, code="reports", label="Báo cáo")

    fid = perm_svc.create_feature(admin_perms, code="Reports", label="Báo cáo", display_order=9)
    assert repos.features.get_by_code("reports").feature_id == fid

    with pytest.raises(ValidationError):
        perm_svc.create_feature(admin_perms, code="reports", label="Trùng")
    with pytest.raises(ValidationError):
        perm_svc.create_feature(admin_perms, code="1bad-code", label="Sai mã")


def test_inactive_features_are_hidden_by_default(perm_svc, repos, admin_perms):
    meals = repos.features.get_by_code("meals")
    perm_svc.set_feature_active(admin_perms, feature_id=meals.feature_id, is_active=False)

    assert "meals" not in [f.code for f in perm_svc.list_features()]
    assert "meals" in [f.code for f in perm_svc.list_features(include_inactive=True)]


def test_delete_feature_removes_its_grants(perm_svc, repos, admin_perms):
    perm_svc.save_user_grants(admin_perms, user_id=10, grants={"meals": FeatureGrant(can_view=True)})
    meals = repos.features.get_by_code("meals")
    perm_svc.delete_feature(admin_perms, feature_id=meals.feature_id)

    assert perm_svc.get_user_grants(10) == {}
    with pytest.raises(ValidationError):
        perm_svc.delete_feature(admin_perms, feature_id=meals.feature_id)
