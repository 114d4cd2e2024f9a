from __future__ import annotations

from typing import Any, Mapping

from flask import Flask, jsonify, request

from ..common.http import current_permissions, json_body, login_required
from ..container import Container
from ..core.constants import FEATURE_USERS
from ..core.enums import GroupAssignMode
from ..core.exceptions import ValidationError
from .model import FeatureGrant


def _parse_grants(raw: Any) -> dict[str, FeatureGrant]:
    """{"meals": {"can_view": true, ...}, ...} -> {code: FeatureGrant}"""
    if not isinstance(raw, Mapping):
        raise ValidationError("Dữ liệu phân quyền không hợp lệ")
    out: dict[str, FeatureGrant] = {}
    for code, flags in raw.items():
        if not isinstance(flags, Mapping):
            raise ValidationError(f"Quyền của chức năng '{code}' không hợp lệ")
        out[str(code)] = FeatureGrant(
            can_view=bool(flags.get("can_view")),
            can_create=bool(flags.get("can_create")),
            can_edit=bool(flags.get("can_edit")),
            can_delete=bool(flags.get("can_delete")),
        )
    return out


def _grants_json(grants: Mapping[str, FeatureGrant]) -> dict:
    return {code: g.as_dict() for code, g in grants.items()}


def register(app: Flask, container: Container) -> None:
    svc = container.permission_service

    @app.route("/api/permissions/features", methods=["GET"], endpoint="list_features")
    @login_required
    def list_features():
        include_inactive = request.args.get("all") == "1"
        features = svc.list_features(include_inactive=include_inactive)
        return jsonify(
            {
                "features": [
                    {
                        "feature_id": f.feature_id,
                        "code": f.code,
                        "label": f.label,
                        "icon_name": f.icon_name,
                        "display_order": f.display_order,
                        "is_active": f.is_active,
                    }
                    for f in features
                ]
            }
        )

    @app.route("/api/permissions/features", methods=["POST"], endpoint="create_feature")
    @login_required
    def create_feature():
        data = json_body()
        feature_id = svc.create_feature(
            current_permissions(container),
            code=str(data.get("code", "")),
            label=str(data.get("label", "")),
            icon_name=data.get("icon_name"),
            display_order=int(data.get("display_order") or 0),
        )
        return jsonify({"message": "Đã thêm chức năng.", "feature_id": feature_id}), 201

    @app.route("/api/permissions/features/<int:feature_id>", methods=["PUT"], endpoint="update_feature")
    @login_required
    def update_feature(feature_id: int):
        data = json_body()
        svc.update_feature(
            current_permissions(container),
            feature_id=feature_id,
            label=str(data.get("label", "")),
            icon_name=data.get("icon_name"),
            display_order=int(data.get("display_order") or 0),
        )
        return jsonify({"message": "Đã cập nhật chức năng."})

    @app.route("/api/permissions/features/<int:feature_id>/active", methods=["PUT"], endpoint="toggle_feature")
    @login_required
    def toggle_feature(feature_id: int):
        is_active = bool(json_body().get("is_active", True))
        svc.set_feature_active(current_permissions(container), feature_id=feature_id, is_active=is_active)
        return jsonify({"message": "Đã bật chức năng." if is_active else "Đã tắt chức năng."})

    @app.route("/api/permissions/features/<int:feature_id>", methods=["DELETE"], endpoint="delete_feature")
    @login_required
    def delete_feature(feature_id: int):
        svc.delete_feature(current_permissions(container), feature_id=feature_id)
        return jsonify({"message": "Đã xoá chức năng và các quyền liên quan."})

    @app.route("/api/permissions/users/<int:user_id>", methods=["GET"], endpoint="get_user_grants")
    @login_required
    def get_user_grants(user_id: int):
        perms = current_permissions(container)
        perms.require(perms.is_admin or perms.can_edit(FEATURE_USERS), "Bạn không có quyền phân quyền người dùng")
        return jsonify({"grants": _grants_json(svc.get_user_grants(user_id))})

    @app.route("/api/permissions/users/<int:user_id>", methods=["PUT"], endpoint="save_user_grants")
    @login_required
    def save_user_grants(user_id: int):
        grants = _parse_grants(json_body().get("grants"))
        saved = svc.save_user_grants(current_permissions(container), user_id=user_id, grants=grants)
        return jsonify({"message": "Đã lưu phân quyền.", "saved": saved})

    @app.route("/api/permissions/groups", methods=["GET"], endpoint="list_groups")
    @login_required
    def list_groups():
        groups = svc.list_groups()
        return jsonify(
            {"groups": [{"group_id": g.group_id, "name": g.name, "description": g.description} for g in groups]}
        )

    @app.route("/api/permissions/groups", methods=["POST"], endpoint="create_group")
    @login_required
    def create_group():
        data = json_body()
        group_id = svc.create_group(
            current_permissions(container), name=str(data.get("name", "")), description=data.get("description")
        )
        return jsonify({"message": "Đã tạo nhóm quyền.", "group_id": group_id}), 201

    @app.route("/api/permissions/groups/<int:group_id>", methods=["PUT"], endpoint="update_group")
    @login_required
    def update_group(group_id: int):
        data = json_body()
        svc.update_group(
            current_permissions(container),
            group_id=group_id,
            name=str(data.get("name", "")),
            description=data.get("description"),
        )
        return jsonify({"message": "Đã cập nhật nhóm quyền."})

    @app.route("/api/permissions/groups/<int:group_id>", methods=["DELETE"], endpoint="delete_group")
    @login_required
    def delete_group(group_id: int):
        svc.delete_group(current_permissions(container), group_id=group_id)
        return jsonify({"message": "Đã xoá nhóm quyền."})

    @app.route("/api/permissions/groups/<int:group_id>/grants", methods=["GET"], endpoint="get_group_grants")
    @login_required
    def get_group_grants(group_id: int):
        return jsonify({"grants": _grants_json(svc.get_group_grants(group_id))})

    @app.route("/api/permissions/groups/<int:group_id>/grants", methods=["PUT"], endpoint="save_group_grants")
    @login_required
    def save_group_grants(group_id: int):
        grants = _parse_grants(json_body().get("grants"))
        saved = svc.save_group_grants(current_permissions(container), group_id=group_id, grants=grants)
        return jsonify({"message": "Đã lưu quyền của nhóm.", "saved": saved})

    @app.route("/api/permissions/groups/assign", methods=["POST"], endpoint="assign_groups")
    @login_required
    def assign_groups():
        data = json_body()
        try:
            mode = GroupAssignMode(data.get("mode") or GroupAssignMode.APPEND.value)
        except ValueError:
            raise ValidationError("Chế độ gán nhóm không hợp lệ")
        result = svc.assign_groups(
            current_permissions(container),
            user_ids=data.get("user_ids") or [],
            group_ids=data.get("group_ids") or [],
            mode=mode,
        )
        return jsonify(result.as_dict())
