from __future__ import annotations

from datetime import date, datetime

import pytest

from boarding_attendance.core.constants import DUTY_MANAGER_GROUP_NAME
from boarding_attendance.core.enums import Role
from boarding_attendance.core.exceptions import AuthorizationError, ValidationError
from boarding_attendance.duty.model import DutyEntry
from boarding_attendance.duty.service import DutyService
from boarding_attendance.permissions.evaluator import resolve_permissions
from boarding_attendance.permissions.model import FeatureGrant, UserPermission


@pytest.fixture
def duty_svc(repos):
    return DutyService(repos.duties)


def test_bulk_assign_skips_existing_pairs(duty_svc, repos, admin_perms):
    d = date(2024, 3, 5)
    first = duty_svc.bulk_assign(admin_perms, [("Thầy Hùng", d), ("Cô Mai", d)])
    assert (first.success, first.skipped) == (2, 0)

    again = duty_svc.bulk_assign(admin_perms, [("Thầy Hùng", d), ("Thầy Hùng", d), ("  ", d)])
    assert again.success == 0
    assert again.skipped == 1
    assert len(repos.duties.list_for_date(duty_date=d)) == 2


def test_current_roster_uses_shift_date_and_staffing(duty_svc, admin_perms):
    duty_svc.bulk_assign(admin_perms, [("Thầy Hùng", date(2024, 3, 9)), ("Cô Mai", date(2024, 3, 9))])
    duty_svc.add(admin_perms, teacher_name="Cô Lan", duty_date=date(2024, 3, 10))

    roster = duty_svc.current_roster(now=datetime(2024, 3, 10, 5, 30))
    assert roster.shift.shift_date == date(2024, 3, 9)
    assert [e.teacher_name for e in roster.entries] == ["Cô Mai", "Thầy Hùng"]
    assert roster.staffing.count == 2
    assert roster.staffing.shortfall == 1


def test_manager_group_member_can_manage(duty_svc, repos):
    gid = repos.groups.create(name=DUTY_MANAGER_GROUP_NAME, description=None)
    repos.groups.add_membership(user_id=7, group_id=gid)
    perms = resolve_permissions(user_id=7, roles=[Role.TEACHER], group_names=[DUTY_MANAGER_GROUP_NAME])
    assert duty_svc.can_manage(perms)
    duty_svc.add(perms, teacher_name="Thầy Dũng", duty_date=date(2024, 3, 12))


def test_duty_edit_grant_can_manage(duty_svc):
    perms = resolve_permissions(
        user_id=8,
        roles=[Role.TEACHER],
        direct_grants=[UserPermission(8, "duty", FeatureGrant(can_view=True, can_edit=True))],
    )
    assert duty_svc.can_manage(perms)


def test_plain_teacher_cannot_manage(duty_svc):
    perms = resolve_permissions(user_id=9, roles=[Role.TEACHER])
    with pytest.raises(AuthorizationError):
        duty_svc.add(perms, teacher_name="Thầy Dũng", duty_date=date(2024, 3, 12))


def test_update_and_delete_unknown_entry(duty_svc, admin_perms):
    with pytest.raises(ValidationError):
        duty_svc.update(admin_perms, duty_id=99, teacher_name="Cô Mai")
    with pytest.raises(ValidationError):
        duty_svc.delete(admin_perms, duty_id=99)


def test_replace_month_clears_only_that_month(duty_svc, repos, admin_perms):
    duty_svc.bulk_assign(
        admin_perms,
        [("Thầy Hùng", date(2024, 2, 28)), ("Cô Mai", date(2024, 3, 1)), ("Cô Lan", date(2024, 3, 2))],
    )
    result = duty_svc.replace_month(
        admin_perms, year=2024, month=3, selections=[("Cô Mai", date(2024, 3, 1)), ("Thầy Dũng", date(2024, 3, 3))]
    )
    assert result.success == 2

    march = duty_svc.list_month(year=2024, month=3)
    assert [(e.teacher_name, e.duty_date.day) for e in march] == [("Cô Mai", 1), ("Thầy Dũng", 3)]
    assert len(duty_svc.list_month(year=2024, month=2)) == 1


def test_replace_month_rejects_dates_outside_month(duty_svc, admin_perms):
    with pytest.raises(ValidationError):
        duty_svc.replace_month(admin_perms, year=2024, month=3, selections=[("Cô Mai", date(2024, 4, 1))])


def test_list_month_rejects_bad_month(duty_svc):
    with pytest.raises(ValidationError):
        duty_svc.list_month(year=2024, month=13)


def test_copy_previous_month_maps_day_of_month(repos):
    repos.duties.items = {
        1: DutyEntry(1, "Thầy Hùng", date(2024, 1, 15)),
        2: DutyEntry(2, "Cô Mai", date(2024, 1, 31)),
    }
    svc = DutyService(repos.duties)
    proposals = svc.copy_previous_month(
        year=2024, month=2, current=[("Thầy Hùng", date(2024, 2, 15)), ("Cô Lan", date(2024, 2, 1))]
    )
    # 31/01 không có ngày tương ứng trong tháng 2; cặp trùng được gộp.
    assert proposals == [("Thầy Hùng", date(2024, 2, 15)), ("Cô Lan", date(2024, 2, 1))]


def test_copy_previous_month_wraps_year(repos):
    repos.duties.items = {1: DutyEntry(1, "Cô Mai", date(2023, 12, 5))}
    proposals = DutyService(repos.duties).copy_previous_month(year=2024, month=1)
    assert proposals == [("Cô Mai", date(2024, 1, 5))]
