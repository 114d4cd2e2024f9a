from __future__ import annotations

import re
from typing import Optional

from ..core.constants import PASSWORD_MAX_LENGTH, PASSWORD_MIN_LENGTH
from ..core.exceptions import ValidationError

_PHONE_RE = re.compile(r"^0[0-9]{9}$")
# Chữ cái (kể cả tiếng Việt có dấu), khoảng trắng, nháy đơn, gạch ngang.
_NAME_RE = re.compile(r"^(?:[^\W\d_]|[\s'-])+$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")


def require_non_empty(value: str, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} không hợp lệ")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if not isinstance(value, str) or len(value) < min_len:
        raise ValidationError(f"{field_name} tối thiểu {min_len} ký tự")
    return value


def require_max_length(value: str, field_name: str, max_len: int) -> str:
    if value is not None and len(value) > max_len:
        raise ValidationError(f"{field_name} tối đa {max_len} ký tự")
    return value


def optional_text(value: Optional[str], field_name: str = "Nội dung") -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} không hợp lệ")
    value = value.strip()
    return value or None


def validate_full_name(value: str) -> str:
    name = require_non_empty(value, "Họ tên")
    if len(name) < 2 or len(name) > 100:
        raise ValidationError("Họ tên phải từ 2 đến 100 ký tự")
    if not _NAME_RE.match(name):
        raise ValidationError("Họ tên chỉ được chứa chữ cái")
    return name


def validate_email(value: str) -> str:
    email = require_non_empty(value, "Email").lower()
    require_max_length(email, "Email", 255)
    if not _EMAIL_RE.match(email):
        raise ValidationError("Email không hợp lệ")
    return email


def validate_phone(value: Optional[str]) -> Optional[str]:
    """Số điện thoại là tuỳ chọn; nếu có phải gồm 10 số, bắt đầu bằng 0."""
    phone = optional_text(value)
    if phone is None:
        return None
    if not _PHONE_RE.match(phone):
        raise ValidationError("Số điện thoại phải có 10 số và bắt đầu bằng 0")
    return phone


def validate_username(value: Optional[str]) -> Optional[str]:
    username = optional_text(value)
    if username is None:
        return None
    if len(username) < 3 or len(username) > 50:
        raise ValidationError("Tên đăng nhập phải từ 3 đến 50 ký tự")
    if not _USERNAME_RE.match(username):
        raise ValidationError("Tên đăng nhập chỉ gồm chữ, số và dấu gạch dưới")
    return username


def validate_password(value: str) -> str:
    require_min_length(value, "Mật khẩu", PASSWORD_MIN_LENGTH)
    require_max_length(value, "Mật khẩu", PASSWORD_MAX_LENGTH)
    return value


def validate_month(month: int) -> int:
    if not 1 <= int(month) <= 12:
        raise ValidationError("Tháng không hợp lệ")
    return int(month)
