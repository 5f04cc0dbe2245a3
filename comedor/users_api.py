from __future__ import annotations

from flask import Blueprint, jsonify, request

from .app_authz import current_identity, require_api_role
from .context import user_service
from .errors import BusinessRuleError
from .notices import make_notice

bp = Blueprint("users_api", __name__, url_prefix="/api/admin/users")

_UPDATABLE = ("name", "role", "branch_id", "active", "permissions")


@bp.get("")
@require_api_role("admin")
def list_users():
    users = user_service().list(role=request.args.get("role") or None)
    return jsonify({"ok": True, "users": [u.to_dict() for u in users]})


@bp.post("")
@require_api_role("admin")
def create_user():
    data = request.get_json(silent=True) or {}
    user = user_service().create(
        name=data.get("name") or "",
        email=data.get("email") or "",
        password=data.get("password") or "",
        role=data.get("role") or "",
        branch_id=data.get("branch_id") or None,
        created_by=current_identity()["uid"],
    )
    return (
        jsonify({"ok": True, "user": user.to_dict(), "notice": make_notice("success", "Usuario creado exitosamente")}),
        201,
    )


@bp.get("/<uid>")
@require_api_role("admin")
def get_user(uid: str):
    return jsonify({"ok": True, "user": user_service().require(uid).to_dict()})


@bp.put("/<uid>")
@require_api_role("admin")
def update_user(uid: str):
    data = request.get_json(silent=True) or {}
    changes = {k: data[k] for k in _UPDATABLE if k in data}
    user = user_service().update(uid, changes)
    return jsonify({"ok": True, "user": user.to_dict(), "notice": make_notice("success", "Usuario actualizado")})


@bp.delete("/<uid>")
@require_api_role("admin")
def delete_user(uid: str):
    if uid == current_identity()["uid"]:
        raise BusinessRuleError("self delete", user_message="No puede eliminar su propia cuenta.")
    user_service().delete(uid)
    return jsonify({"ok": True, "notice": make_notice("success", "Usuario eliminado")})
