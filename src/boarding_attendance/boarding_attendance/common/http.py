"""Tiện ích dùng chung cho các controller JSON."""

from __future__ import annotations

import logging
from datetime import date
from functools import wraps
from typing import Any, Optional

from flask import Flask, g, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.exceptions import AuthenticationError, AuthorizationError, StorageError, ValidationError
from ..permissions.evaluator import EffectivePermissions
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"error": "Vui lòng đăng nhập để tiếp tục!"}), 401
        return view(*args, **kwargs)

    return wrapper


def current_permissions(container) -> EffectivePermissions:
    """Quyền hiệu lực của người đang đăng nhập, tính một lần cho mỗi request."""
    perms = g.get("permissions")
    if perms is None:
        perms = container.permission_service.load_for_user(user_id=int(session["user_id"]))
        g.permissions = perms
    return perms


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_date_value(value: Any, field_name: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value or "").strip())
    except ValueError:
        raise ValidationError(f"{field_name} không hợp lệ")


def optional_date_arg(name: str, field_name: str) -> Optional[date]:
    value = request.args.get(name)
    return parse_date_value(value, field_name) if value else None


def int_arg(name: str, default: int) -> int:
    value = request.args.get(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"Tham số {name} không hợp lệ")


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def _validation(e: ValidationError):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(AuthenticationError)
    def _authentication(e: AuthenticationError):
        return jsonify({"error": str(e)}), 401

    @app.errorhandler(AuthorizationError)
    def _authorization(e: AuthorizationError):
        return jsonify({"error": str(e)}), 403

    @app.errorhandler(StorageError)
    def _storage(e: StorageError):
        logger.error("Storage error on %s %s: %s", request.method, request.path, e)
        return jsonify({"error": "Lỗi hệ thống, vui lòng thử lại sau"}), 503

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"error": "Lỗi hệ thống"}), 500
