from __future__ import annotations

import pytest

from boarding_attendance.core.enums import Role
from boarding_attendance.core.exceptions import AuthenticationError, ValidationError
from boarding_attendance.users.service import ACCOUNT_NOT_FOUND, WRONG_CREDENTIALS, AuthService


@pytest.fixture
def auth_svc(repos):
    return AuthService(repos.accounts, repos.accounts, repos.permissions)


@pytest.mark.parametrize("identifier", ["gvcn6a", "0912345678", "GVCN6A@school.edu.vn"])
def test_sign_in_by_username_phone_or_email(auth_svc, accounts, identifier):
    user = auth_svc.sign_in(identifier, "teacher123")
    assert user.user_id == accounts.gvcn_id
    assert user.class_id == "6a"
    assert Role.CLASS_TEACHER in user.roles


def test_wrong_password_is_recorded(auth_svc, repos, accounts):
    with pytest.raises(AuthenticationError, match=WRONG_CREDENTIALS):
        auth_svc.sign_in("admin", "sai-mat-khau")
    last = repos.accounts.list_login_history(limit=1)[0]
    assert last.user_id == accounts.admin_id
    assert not last.success


def test_unknown_username(auth_svc, accounts):
    with pytest.raises(AuthenticationError, match=ACCOUNT_NOT_FOUND):
        auth_svc.sign_in("khongco", "whatever")


def test_inactive_account_cannot_sign_in(auth_svc, repos, accounts):
    repos.accounts.set_active(accounts.gvcn_id, is_active=False)
    with pytest.raises(AuthenticationError):
        auth_svc.sign_in("gvcn6a", "teacher123")


def test_sign_up_requires_username_or_phone(auth_svc):
    with pytest.raises(ValidationError):
        auth_svc.sign_up(email="moi@school.edu.vn", password="matkhau1", full_name="Người Mới")


def test_sign_up_rejects_taken_username(auth_svc, accounts):
    with pytest.raises(ValidationError, match="Tên đăng nhập đã tồn tại"):
        auth_svc.sign_up(email="moi@school.edu.vn", password="matkhau1", full_name="Người Mới", username="admin")


def test_sign_up_creates_account_without_roles(auth_svc, repos):
    user_id = auth_svc.sign_up(
        email="Moi@School.edu.vn", password="matkhau1", full_name="Người Mới", phone="0911111111"
    )
    assert repos.accounts.get_by_id(user_id).email == "moi@school.edu.vn"
    assert repos.permissions.list_roles(user_id) == []
    assert auth_svc.sign_in("0911111111", "matkhau1").user_id == user_id


@pytest.mark.parametrize(
    "field, value",
    [
        ("password", "12345"),
        ("full_name", "A"),
        ("full_name", "Nguyen 123"),
        ("email", "khong-phai-email"),
        ("phone", "0912"),
    ],
)
def test_sign_up_validation(auth_svc, field, value):
    fields = dict(email="moi@school.edu.vn", password="matkhau1", full_name="Người Mới", username="nguoimoi")
    fields[field] = value
    with pytest.raises(ValidationError):
        auth_svc.sign_up(**fields)


def test_password_reset_flow(auth_svc, repos, accounts):
    auth_svc.request_password_reset("gvcn6a@school.edu.vn")
    token = next(iter(repos.accounts.reset_tokens))
    auth_svc.complete_password_reset(token=token, password="matkhaumoi")
    assert auth_svc.sign_in("gvcn6a", "matkhaumoi").user_id == accounts.gvcn_id

    with pytest.raises(ValidationError):
        auth_svc.complete_password_reset(token=token, password="matkhaumoi")


def test_password_reset_for_unknown_email_is_silent(auth_svc, repos):
    auth_svc.request_password_reset("nobody@school.edu.vn")
    assert repos.accounts.reset_tokens == {}
