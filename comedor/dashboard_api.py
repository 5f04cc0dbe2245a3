from __future__ import annotations

from flask import Blueprint, jsonify, request

from .app_authz import current_identity, require_api_role
from .context import confirmation_service, now
from .dashboard_service import DashboardService
from .errors import BusinessRuleError
from .logging_setup import recent_errors

bp = Blueprint("dashboard_api", __name__)


@bp.get("/api/coordinator/dashboard")
@require_api_role("coordinator")
def coordinator_dashboard():
    identity = current_identity()
    if not identity["branch_id"]:
        raise BusinessRuleError("coordinator without branch", user_message="No tienes una sucursal asignada.")
    data = DashboardService(confirmation_service()).coordinator_dashboard(
        identity["uid"], identity["branch_id"], now()
    )
    return jsonify({"ok": True, **data})


@bp.get("/api/admin/dashboard")
@require_api_role("admin")
def admin_dashboard():
    return jsonify({"ok": True, **DashboardService(confirmation_service()).admin_dashboard(now())})


@bp.get("/api/admin/errors")
@require_api_role("admin")
def error_history():
    limit = request.args.get("limit", type=int)
    return jsonify({"ok": True, "errors": recent_errors(limit)})
