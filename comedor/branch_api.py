from __future__ import annotations

from flask import Blueprint, jsonify, request

from .app_authz import require_api_role
from .branch_service import sort_by_employee_count, sort_by_name
from .context import branch_service
from .notices import make_notice

bp = Blueprint("branch_api", __name__, url_prefix="/api/admin/branches")


@bp.get("")
@require_api_role("admin")
def list_branches():
    include_inactive = request.args.get("include_inactive", "0") == "1"
    branches = branch_service().list(include_inactive=include_inactive)
    if request.args.get("sort") == "employees":
        branches = sort_by_employee_count(branches)
    else:
        branches = sort_by_name(branches)
    return jsonify({"ok": True, "branches": [b.to_dict() for b in branches]})


@bp.post("")
@require_api_role("admin")
def create_branch():
    data = request.get_json(silent=True) or {}
    branch = branch_service().create(
        data.get("name") or "",
        branch_id=data.get("id") or None,
        coordinator_id=data.get("coordinator_id") or None,
    )
    return (
        jsonify({"ok": True, "branch": branch.to_dict(), "notice": make_notice("success", "Sucursal creada")}),
        201,
    )


@bp.put("/<branch_id>")
@require_api_role("admin")
def update_branch(branch_id: str):
    data = request.get_json(silent=True) or {}
    changes = {k: data[k] for k in ("name", "coordinator_id", "active") if k in data}
    branch = branch_service().update(branch_id, changes)
    return jsonify({"ok": True, "branch": branch.to_dict()})


@bp.post("/<branch_id>/recount")
@require_api_role("admin")
def recount_branch(branch_id: str):
    count = branch_service().recount(branch_id)
    return jsonify({"ok": True, "employee_count": count})


@bp.post("/defaults")
@require_api_role("admin")
def seed_default_branches():
    created = branch_service().ensure_defaults()
    return jsonify({"ok": True, "created": [b.to_dict() for b in created]})
