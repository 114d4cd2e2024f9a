from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import LoginRecord, Profile


class ProfileRepository(Protocol):
    """Giao diện repository cho hồ sơ người dùng.

    Lưu ý (DIP): tầng service phụ thuộc vào interface này, không phụ thuộc trực tiếp DB cụ thể.
    """

    def get_by_id(self, user_id: int) -> Optional[Profile]:
        raise NotImplementedError

    def get_by_email(self, email: str) -> Optional[Profile]:
        raise NotImplementedError

    def get_by_username(self, username: str) -> Optional[Profile]:
        raise NotImplementedError

    def get_by_phone(self, phone: str) -> Optional[Profile]:
        raise NotImplementedError

    def list_all(self) -> Sequence[Profile]:
        raise NotImplementedError

    def update(
        self,
        *,
        user_id: int,
        full_name: str,
        username: Optional[str],
        phone: Optional[str],
        class_id: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def set_active(self, user_id: int, *, is_active: bool) -> bool:
        raise NotImplementedError

    def delete_by_id(self, user_id: int) -> bool:
        raise NotImplementedError

    def record_login(self, *, user_id: int, identifier: str, success: bool) -> None:
        raise NotImplementedError

    def list_login_history(self, *, user_id: Optional[int] = None, limit: int = 50) -> Sequence[LoginRecord]:
        raise NotImplementedError


class AuthGateway(Protocol):
    """Dịch vụ xác thực (tài khoản + mật khẩu). Hệ thống coi đây là hộp đen."""

    def sign_in(self, *, email: str, password: str) -> Optional[int]:
        """Returns user_id, or None when the credentials are wrong."""

        raise NotImplementedError

    def sign_up(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        username: Optional[str] = None,
        phone: Optional[str] = None,
        class_id: Optional[str] = None,
    ) -> int:
        raise NotImplementedError

    def resolve_login_identifier(self, identifier: str) -> Optional[str]:
        """Map a username or phone number to the account email."""

        raise NotImplementedError

    def request_password_reset(self, *, email: str) -> Optional[str]:
        """Create a reset token for the account (None when the email is unknown)."""

        raise NotImplementedError

    def complete_password_reset(self, *, token: str, password: str) -> bool:
        raise NotImplementedError

    def set_password(self, *, user_id: int, password: str) -> bool:
        raise NotImplementedError
