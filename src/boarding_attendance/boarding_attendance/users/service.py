from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence

from ..common.results import BulkResult
from ..common.validators import (
    optional_text,
    validate_email,
    validate_full_name,
    validate_password,
    validate_phone,
    validate_username,
)
from ..core.constants import FEATURE_USERS
from ..core.enums import Role
from ..core.exceptions import AuthenticationError, DomainError, ValidationError
from ..permissions.evaluator import EffectivePermissions
from ..permissions.repository import PermissionRepository
from .model import LoginRecord, Profile
from .repository import AuthGateway, ProfileRepository

logger = logging.getLogger(__name__)

WRONG_CREDENTIALS = "Tên đăng nhập/SĐT/Email hoặc mật khẩu không đúng"
ACCOUNT_NOT_FOUND = "Không tìm thấy tài khoản với thông tin này"


@dataclass(frozen=True)
class SessionUser:
    """What we store into Flask session after login."""

    user_id: int
    full_name: str
    email: str
    class_id: Optional[str]
    roles: tuple[Role, ...]


def _parse_roles(values: Iterable[Any]) -> list[Role]:
    try:
        return sorted({Role(v) for v in values if v}, key=lambda r: r.value)
    except ValueError:
        raise ValidationError("Vai trò không hợp lệ")


def _check_class_assignment(roles: Sequence[Role], class_id: Optional[str]) -> Optional[str]:
    class_id = optional_text(class_id)
    if Role.CLASS_TEACHER in roles and not class_id:
        raise ValidationError("GVCN phải được gán lớp chủ nhiệm")
    if class_id and Role.CLASS_TEACHER not in roles:
        raise ValidationError("Chỉ GVCN mới được gán lớp")
    return class_id.lower() if class_id else None


class AuthService:
    """Use case: đăng nhập bằng email / tên đăng nhập / SĐT, đăng ký, quên mật khẩu."""

    def __init__(self, gateway: AuthGateway, profiles: ProfileRepository, permissions: PermissionRepository):
        self._gateway = gateway
        self._profiles = profiles
        self._permissions = permissions

    def sign_in(self, identifier: str, password: str) -> SessionUser:
        identifier = (identifier or "").strip()
        if not identifier or not password:
            raise AuthenticationError(WRONG_CREDENTIALS)

        if "@" in identifier:
            email = identifier.lower()
        else:
            email = self._gateway.resolve_login_identifier(identifier)
            if not email:
                raise AuthenticationError(ACCOUNT_NOT_FOUND)

        user_id = self._gateway.sign_in(email=email, password=password)
        profile = self._profiles.get_by_email(email)
        if user_id is None or profile is None:
            if profile is not None:
                self._profiles.record_login(user_id=profile.user_id, identifier=identifier, success=False)
            logger.info("Failed sign-in for %s", identifier)
            raise AuthenticationError(WRONG_CREDENTIALS)

        self._profiles.record_login(user_id=profile.user_id, identifier=identifier, success=True)
        return SessionUser(
            user_id=profile.user_id,
            full_name=profile.full_name,
            email=profile.email,
            class_id=profile.class_id,
            roles=tuple(self._permissions.list_roles(profile.user_id)),
        )

    def sign_up(
        self,
        *,
        email: str,
        password: str,
        full_name: str,
        username: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> int:
        """Tự đăng ký tài khoản; tài khoản mới chưa có vai trò cho tới khi admin cấp."""
        validate_password(password)
        username = validate_username(username)
        phone = validate_phone(phone)
        if not username and not phone:
            raise ValidationError("Vui lòng nhập tên đăng nhập hoặc số điện thoại")
        email = validate_email(email)
        full_name = validate_full_name(full_name)

        _ensure_unique(self._profiles, email=email, username=username, phone=phone)
        user_id = self._gateway.sign_up(
            email=email, password=password, full_name=full_name, username=username, phone=phone
        )
        logger.info("New account %s registered (user_id=%s)", email, user_id)
        return user_id

    def request_password_reset(self, email: str) -> None:
        """Tạo mã đặt lại mật khẩu; việc gửi email do hệ thống bên ngoài đảm nhận.

        Không báo lỗi khi email không tồn tại để tránh dò tài khoản.
        """
        email = validate_email(email)
        token = self._gateway.request_password_reset(email=email)
        if token is None:
            logger.info("Password reset requested for unknown email %s", email)
        else:
            logger.info("Password reset token issued for %s", email)

    def complete_password_reset(self, *, token: str, password: str) -> None:
        validate_password(password)
        if not token or not self._gateway.complete_password_reset(token=token, password=password):
            raise ValidationError("Liên kết đặt lại mật khẩu không hợp lệ hoặc đã hết hạn")


def _ensure_unique(
    profiles: ProfileRepository,
    *,
    email: str,
    username: Optional[str],
    phone: Optional[str],
    user_id: Optional[int] = None,
) -> None:
    def taken(found: Optional[Profile]) -> bool:
        return found is not None and found.user_id != user_id

    if taken(profiles.get_by_email(email)):
        raise ValidationError("Email đã được sử dụng")
    if username and taken(profiles.get_by_username(username)):
        raise ValidationError("Tên đăng nhập đã tồn tại")
    if phone and taken(profiles.get_by_phone(phone)):
        raise ValidationError("Số điện thoại đã được sử dụng")


class UserService:
    """Use case: quản lý người dùng (admin)."""

    def __init__(self, profiles: ProfileRepository, gateway: AuthGateway, permissions: PermissionRepository):
        self._profiles = profiles
        self._gateway = gateway
        self._permissions = permissions

    def list_users(self) -> list[dict]:
        out = []
        for p in self._profiles.list_all():
            out.append(
                {
                    "user_id": p.user_id,
                    "email": p.email,
                    "full_name": p.full_name,
                    "username": p.username or "",
                    "phone": p.phone or "",
                    "class_id": p.class_id,
                    "is_active": p.is_active,
                    "roles": [r.value for r in self._permissions.list_roles(p.user_id)],
                }
            )
        return out

    def create_account(
        self,
        actor: EffectivePermissions,
        *,
        email: str,
        password: str,
        full_name: str,
        username: Optional[str] = None,
        phone: Optional[str] = None,
        class_id: Optional[str] = None,
        roles: Iterable[Any] = (),
    ) -> int:
        actor.require(actor.can_create(FEATURE_USERS), "Bạn không có quyền tạo tài khoản")

        email = validate_email(email)
        validate_password(password)
        full_name = validate_full_name(full_name)
        username = validate_username(username)
        phone = validate_phone(phone)
        parsed_roles = _parse_roles(roles)
        if Role.ADMIN in parsed_roles and not actor.is_admin:
            raise ValidationError("Chỉ quản trị viên được tạo tài khoản quản trị")
        class_id = _check_class_assignment(parsed_roles, class_id)

        _ensure_unique(self._profiles, email=email, username=username, phone=phone)
        user_id = self._gateway.sign_up(
            email=email,
            password=password,
            full_name=full_name,
            username=username,
            phone=phone,
            class_id=class_id,
        )
        if parsed_roles:
            self._permissions.set_roles(user_id=user_id, roles=parsed_roles)
        logger.info("User %s created account %s (user_id=%s)", actor.user_id, email, user_id)
        return user_id

    def bulk_create(self, actor: EffectivePermissions, rows: Iterable[Mapping[str, Any]]) -> BulkResult:
        """Tạo nhiều tài khoản từ file nhập; dòng lỗi không chặn các dòng khác."""
        actor.require(actor.can_create(FEATURE_USERS), "Bạn không có quyền tạo tài khoản")
        result = BulkResult()
        for index, row in enumerate(rows, start=2):
            roles = row.get("roles") or ()
            if isinstance(roles, str):
                roles = [r.strip() for r in roles.split(",")]
            try:
                self.create_account(
                    actor,
                    email=str(row.get("email") or ""),
                    password=str(row.get("password") or ""),
                    full_name=str(row.get("full_name") or ""),
                    username=row.get("username"),
                    phone=row.get("phone"),
                    class_id=row.get("class_id"),
                    roles=roles,
                )
                result.ok()
            except DomainError as e:
                result.fail(f"Dòng {index}: {e}")
        return result

    def update_profile(
        self,
        actor: EffectivePermissions,
        *,
        user_id: int,
        full_name: str,
        username: Optional[str] = None,
        phone: Optional[str] = None,
        class_id: Optional[str] = None,
    ) -> None:
        actor.require(actor.can_edit(FEATURE_USERS), "Bạn không có quyền sửa tài khoản")
        profile = self._profiles.get_by_id(int(user_id))
        if not profile:
            raise ValidationError("Người dùng không tồn tại")

        full_name = validate_full_name(full_name)
        username = validate_username(username)
        phone = validate_phone(phone)
        class_id = _check_class_assignment(self._permissions.list_roles(profile.user_id), class_id)
        _ensure_unique(self._profiles, email=profile.email, username=username, phone=phone, user_id=profile.user_id)
        self._profiles.update(
            user_id=profile.user_id, full_name=full_name, username=username, phone=phone, class_id=class_id
        )

    def set_roles(
        self, actor: EffectivePermissions, *, user_id: int, roles: Iterable[Any], class_id: Optional[str] = None
    ) -> None:
        """Đổi vai trò; GVCN phải kèm lớp chủ nhiệm, bỏ GVCN thì xoá lớp."""
        actor.require(actor.is_admin, "Chỉ quản trị viên được đổi vai trò")
        profile = self._profiles.get_by_id(int(user_id))
        if not profile:
            raise ValidationError("Người dùng không tồn tại")
        parsed = _parse_roles(roles)
        if actor.user_id == profile.user_id and Role.ADMIN not in parsed:
            raise ValidationError("Không thể tự bỏ quyền quản trị của chính mình")
        if Role.CLASS_TEACHER in parsed:
            class_id = _check_class_assignment(parsed, class_id or profile.class_id)
        else:
            class_id = None

        self._permissions.set_roles(user_id=profile.user_id, roles=parsed)
        self._profiles.update(
            user_id=profile.user_id,
            full_name=profile.full_name,
            username=profile.username,
            phone=profile.phone,
            class_id=class_id,
        )
        logger.info("User %s set roles of user %s to %s", actor.user_id, user_id, [r.value for r in parsed])

    def set_active(self, actor: EffectivePermissions, *, user_id: int, is_active: bool) -> None:
        actor.require(actor.is_admin, "Chỉ quản trị viên được khoá tài khoản")
        if actor.user_id == int(user_id):
            raise ValidationError("Không thể tự khoá tài khoản của chính mình")
        if not self._profiles.get_by_id(int(user_id)):
            raise ValidationError("Người dùng không tồn tại")
        self._profiles.set_active(int(user_id), is_active=bool(is_active))

    def reset_password(self, actor: EffectivePermissions, *, user_id: int, password: str) -> None:
        actor.require(actor.is_admin, "Chỉ quản trị viên được đặt lại mật khẩu")
        validate_password(password)
        if not self._gateway.set_password(user_id=int(user_id), password=password):
            raise ValidationError("Người dùng không tồn tại")

    def delete_user(self, actor: EffectivePermissions, *, user_id: int) -> None:
        actor.require(actor.can_delete(FEATURE_USERS), "Bạn không có quyền xoá tài khoản")
        if actor.user_id == int(user_id):
            raise ValidationError("Không thể xoá tài khoản của chính mình")
        if Role.ADMIN in self._permissions.list_roles(int(user_id)):
            raise ValidationError("Không thể xóa tài khoản Admin")
        if not self._profiles.delete_by_id(int(user_id)):
            raise ValidationError("Người dùng không tồn tại")

    def login_history(
        self, actor: EffectivePermissions, *, user_id: Optional[int] = None, limit: int = 50
    ) -> Sequence[LoginRecord]:
        actor.require(actor.can_view(FEATURE_USERS), "Bạn không có quyền xem lịch sử đăng nhập")
        return self._profiles.list_login_history(user_id=user_id, limit=int(limit))
