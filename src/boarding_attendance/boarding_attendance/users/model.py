from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Profile:
    """Thực thể miền (domain): hồ sơ người dùng.

    Lưu ý: Đây là đối tượng dữ liệu thuần (không chứa code truy cập DB, không chứa mật khẩu).
    class_id chỉ có giá trị với GVCN.
    """

    user_id: int
    email: str
    full_name: str
    username: Optional[str] = None
    phone: Optional[str] = None
    class_id: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class LoginRecord:
    user_id: int
    identifier: str
    success: bool
    created_at: Optional[datetime] = None
