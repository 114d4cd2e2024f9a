from __future__ import annotations

from datetime import timedelta

from flask import Flask, jsonify, request, session

from ..common.http import current_permissions, int_arg, json_body, login_required
from ..container import Container
from ..core.constants import DEFAULT_SESSION_DAYS, FEATURE_USERS


def register(app: Flask, container: Container) -> None:
    @app.route("/api/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = json_body()
        s_user = container.auth_service.sign_in(str(data.get("identifier", "")), str(data.get("password", "")))

        session.clear()
        session.permanent = bool(data.get("remember_me"))
        app.permanent_session_lifetime = timedelta(days=DEFAULT_SESSION_DAYS)

        session["user_id"] = s_user.user_id
        session["name"] = s_user.full_name
        session["email"] = s_user.email
        session["roles"] = [r.value for r in s_user.roles]

        return jsonify({"message": "Đăng nhập thành công!", "user_id": s_user.user_id, "roles": session["roles"]})

    @app.route("/api/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"message": "Đã đăng xuất hệ thống."})

    @app.route("/api/auth/register", methods=["POST"], endpoint="register")
    def register_account():
        data = json_body()
        user_id = container.auth_service.sign_up(
            email=str(data.get("email", "")),
            password=str(data.get("password", "")),
            full_name=str(data.get("full_name", "")),
            username=data.get("username"),
            phone=data.get("phone"),
        )
        return jsonify({"message": "Tài khoản của bạn đã được tạo. Bạn có thể đăng nhập ngay.", "user_id": user_id}), 201

    @app.route("/api/auth/forgot-password", methods=["POST"], endpoint="forgot_password")
    def forgot_password():
        container.auth_service.request_password_reset(str(json_body().get("email", "")))
        return jsonify({"message": "Vui lòng kiểm tra hộp thư của bạn để đặt lại mật khẩu."})

    @app.route("/api/auth/reset-password", methods=["POST"], endpoint="reset_password")
    def reset_password():
        data = json_body()
        container.auth_service.complete_password_reset(
            token=str(data.get("token", "")), password=str(data.get("password", ""))
        )
        return jsonify({"message": "Đã đặt lại mật khẩu."})

    @app.route("/api/me", endpoint="me")
    @login_required
    def me():
        perms = current_permissions(container)
        return jsonify(
            {
                "user_id": perms.user_id,
                "full_name": session.get("name"),
                "email": session.get("email"),
                "class_id": perms.class_id,
                "roles": sorted(r.value for r in perms.roles),
                "groups": sorted(perms.group_names),
                "can_access_meals": perms.can_access_meals(),
                "can_access_meal_stats": perms.can_access_meal_stats(),
                "can_access_attendance": perms.can_access_attendance(),
                "can_manage_duty": container.duty_service.can_manage(perms),
                "grants": {code: g.as_dict() for code, g in perms.grants.items()},
            }
        )

    @app.route("/api/users", methods=["GET"], endpoint="list_users")
    @login_required
    def list_users():
        perms = current_permissions(container)
        perms.require(perms.can_view(FEATURE_USERS), "Bạn không có quyền xem danh sách người dùng")
        return jsonify({"users": container.user_service.list_users()})

    @app.route("/api/users", methods=["POST"], endpoint="create_user")
    @login_required
    def create_user():
        data = json_body()
        user_id = container.user_service.create_account(
            current_permissions(container),
            email=str(data.get("email", "")),
            password=str(data.get("password", "")),
            full_name=str(data.get("full_name", "")),
            username=data.get("username"),
            phone=data.get("phone"),
            class_id=data.get("class_id"),
            roles=data.get("roles") or (),
        )
        return jsonify({"message": "Đã tạo tài khoản.", "user_id": user_id}), 201

    @app.route("/api/users/import", methods=["POST"], endpoint="import_users")
    @login_required
    def import_users():
        rows = json_body().get("rows") or []
        result = container.user_service.bulk_create(current_permissions(container), rows)
        return jsonify(result.as_dict())

    @app.route("/api/users/<int:user_id>", methods=["PUT"], endpoint="update_user")
    @login_required
    def update_user(user_id: int):
        data = json_body()
        container.user_service.update_profile(
            current_permissions(container),
            user_id=user_id,
            full_name=str(data.get("full_name", "")),
            username=data.get("username"),
            phone=data.get("phone"),
            class_id=data.get("class_id"),
        )
        return jsonify({"message": "Đã cập nhật thông tin."})

    @app.route("/api/users/<int:user_id>/roles", methods=["PUT"], endpoint="set_user_roles")
    @login_required
    def set_user_roles(user_id: int):
        data = json_body()
        container.user_service.set_roles(
            current_permissions(container),
            user_id=user_id,
            roles=data.get("roles") or (),
            class_id=data.get("class_id"),
        )
        return jsonify({"message": "Đã cập nhật vai trò."})

    @app.route("/api/users/<int:user_id>/active", methods=["PUT"], endpoint="set_user_active")
    @login_required
    def set_user_active(user_id: int):
        is_active = bool(json_body().get("is_active", True))
        container.user_service.set_active(current_permissions(container), user_id=user_id, is_active=is_active)
        return jsonify({"message": "Đã mở khoá tài khoản." if is_active else "Đã khoá tài khoản."})

    @app.route("/api/users/<int:user_id>/password", methods=["POST"], endpoint="set_user_password")
    @login_required
    def set_user_password(user_id: int):
        container.user_service.reset_password(
            current_permissions(container), user_id=user_id, password=str(json_body().get("password", ""))
        )
        return jsonify({"message": "Đã đặt lại mật khẩu."})

    @app.route("/api/users/<int:user_id>", methods=["DELETE"], endpoint="delete_user")
    @login_required
    def delete_user(user_id: int):
        container.user_service.delete_user(current_permissions(container), user_id=user_id)
        return jsonify({"message": "Đã xóa người dùng."})

    @app.route("/api/users/login-history", endpoint="login_history")
    @login_required
    def login_history():
        user_id = request.args.get("user_id")
        records = container.user_service.login_history(
            current_permissions(container),
            user_id=int(user_id) if user_id and user_id.isdigit() else None,
            limit=int_arg("limit", 50),
        )
        return jsonify(
            {
                "history": [
                    {
                        "user_id": r.user_id,
                        "identifier": r.identifier,
                        "success": r.success,
                        "created_at": r.created_at.isoformat() if r.created_at else None,
                    }
                    for r in records
                ]
            }
        )
