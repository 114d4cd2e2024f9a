from __future__ import annotations

from datetime import date

import pytest

from boarding_attendance.common.datetime_utils import TimeRemaining, month_bounds, previous_month, week_bounds
from boarding_attendance.common.validators import (
    optional_text,
    require_non_empty,
    validate_email,
    validate_full_name,
    validate_password,
    validate_phone,
)
from boarding_attendance.core.exceptions import ValidationError


def test_vietnamese_names_are_accepted():
    assert validate_full_name("  Nguyễn Thị Ánh  ") == "Nguyễn Thị Ánh"
    assert validate_full_name("H'Hen Niê") == "H'Hen Niê"


@pytest.mark.parametrize("value", ["0912", "912345678", "09123456789", "abcdefghij"])
def test_bad_phone_numbers(value):
    with pytest.raises(ValidationError):
        validate_phone(value)


def test_phone_is_optional():
    assert validate_phone("") is None
    assert validate_phone(None) is None


def test_email_is_lowercased():
    assert validate_email("GV@School.EDU.vn") == "gv@school.edu.vn"


def test_month_helpers():
    assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert previous_month(2024, 1) == (2023, 12)
    assert week_bounds(date(2024, 3, 17)) == (date(2024, 3, 11), date(2024, 3, 17))


def test_time_remaining_clamps_negative():
    assert TimeRemaining.from_minutes(-5) == TimeRemaining(0, 0)
    assert TimeRemaining.from_minutes(125).total_minutes == 125


@pytest.mark.parametrize("value", [5, ["Ốm"], {"a": 1}])
def test_non_text_values_are_rejected(value):
    with pytest.raises(ValidationError, match="Lý do không hợp lệ"):
        optional_text(value, "Lý do")
    with pytest.raises(ValidationError):
        require_non_empty(value, "Tên")
    with pytest.raises(ValidationError):
        validate_password(value)


def test_optional_text_strips_to_none():
    assert optional_text("   ") is None
    assert optional_text(" Ốm ") == "Ốm"
