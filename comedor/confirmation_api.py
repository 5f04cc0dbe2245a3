from __future__ import annotations

from flask import Blueprint, jsonify, request

from .app_authz import current_identity, require_api_role
from .confirmation_service import upcoming_week_id
from .context import confirmation_service, now
from .downloads import csv_response
from .errors import BusinessRuleError
from .notices import make_notice

bp = Blueprint("confirmation_api", __name__)


def _branch_id() -> str:
    branch_id = current_identity()["branch_id"]
    if not branch_id:
        raise BusinessRuleError("coordinator without branch", user_message="No tienes una sucursal asignada.")
    return branch_id


def _week_arg() -> str:
    return request.args.get("week") or upcoming_week_id(now())


@bp.get("/api/coordinator/confirmations")
@require_api_role("coordinator")
def confirmation_page():
    page = confirmation_service().load_page(_branch_id(), _week_arg(), now())
    return jsonify({"ok": True, **page.to_dict()})


@bp.post("/api/coordinator/confirmations/summary")
@require_api_role("coordinator")
def confirmation_summary():
    data = request.get_json(silent=True) or {}
    summary = confirmation_service().summarize(_branch_id(), data.get("employees", []))
    return jsonify({"ok": True, "summary": summary.to_dict()})


@bp.put("/api/coordinator/confirmations/<week_id>")
@require_api_role("coordinator")
def save_confirmations(week_id: str):
    data = request.get_json(silent=True) or {}
    identity = current_identity()
    entries, summary = confirmation_service().save(
        _branch_id(), week_id, identity["uid"], data.get("employees", []), now()
    )
    return jsonify(
        {
            "ok": True,
            "entries": [e.to_dict() for e in entries],
            "summary": summary.to_dict(),
            "notice": make_notice("success", "Confirmaciones guardadas exitosamente"),
        }
    )


@bp.get("/api/coordinator/confirmations/history")
@require_api_role("coordinator")
def confirmation_history():
    limit = request.args.get("limit", default=5, type=int)
    history = confirmation_service().history(current_identity()["uid"], limit=limit)
    return jsonify({"ok": True, "history": history})


@bp.get("/api/admin/confirmations")
@require_api_role("admin")
def admin_confirmations():
    return jsonify({"ok": True, **confirmation_service().admin_overview(_week_arg())})


@bp.get("/api/admin/confirmations/export.csv")
@require_api_role("admin")
def export_confirmations():
    week_id = _week_arg()
    # Rows are produced before streaming so store errors surface as problem responses
    rows = list(confirmation_service().export_rows(week_id))
    return csv_response(f"confirmaciones_{week_id}", rows)
