from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify, request

from .app_authz import current_identity, require_api_role
from .confirmation_window import time_remaining
from .context import confirmation_service, menu_service, now
from .date_utils import format_week_range, week_id as week_id_for
from .errors import ValidationError
from .menu_service import PUBLISHABLE_STATUSES
from .notices import make_notice

bp = Blueprint("menu_api", __name__)


def _menu_payload(menu) -> dict[str, Any]:
    return {"ok": True, "menu": menu.to_dict()}


@bp.get("/api/admin/menus")
@require_api_role("admin")
def list_menus():
    limit = request.args.get("limit", type=int)
    return jsonify({"ok": True, "menus": [m.to_dict() for m in menu_service().list_menus(limit=limit)]})


@bp.post("/api/admin/menus")
@require_api_role("admin")
def create_menu():
    data = request.get_json(silent=True) or {}
    start = data.get("week_start") or data.get("start_date")
    if not start:
        raise ValidationError("La fecha de inicio es requerida.", errors=[{"field": "week_start", "message": "required"}])
    menu = menu_service().create_menu(start, created_by=current_identity()["uid"])
    return jsonify({**_menu_payload(menu), "notice": make_notice("success", "Menú creado")}), 201


@bp.get("/api/admin/menus/<week_id>")
@require_api_role("admin")
def get_menu(week_id: str):
    return jsonify(_menu_payload(menu_service().require(week_id)))


@bp.put("/api/admin/menus/<week_id>")
@require_api_role("admin")
def replace_menu_days(week_id: str):
    data = request.get_json(silent=True) or {}
    days = data.get("days")
    if not isinstance(days, dict):
        raise ValidationError("Los días del menú son requeridos.", errors=[{"field": "days", "message": "required"}])
    menu = menu_service().set_days(week_id, days)
    return jsonify({**_menu_payload(menu), "notice": make_notice("success", "Menú guardado")})


@bp.put("/api/admin/menus/<week_id>/days/<day>")
@require_api_role("admin")
def set_day(week_id: str, day: str):
    data = request.get_json(silent=True) or {}
    menu = menu_service().set_day_items(week_id, day, data.get("items", []))
    return jsonify(_menu_payload(menu))


@bp.post("/api/admin/menus/<week_id>/days/<day>/items")
@require_api_role("admin")
def add_item(week_id: str, day: str):
    data = request.get_json(silent=True) or {}
    menu = menu_service().add_item(week_id, day, data.get("name") or "", data.get("description") or "")
    return jsonify(_menu_payload(menu)), 201


@bp.delete("/api/admin/menus/<week_id>/days/<day>/items/<int:index>")
@require_api_role("admin")
def remove_item(week_id: str, day: str, index: int):
    return jsonify(_menu_payload(menu_service().remove_item(week_id, day, index)))


@bp.post("/api/admin/menus/<week_id>/window")
@require_api_role("admin")
def set_window(week_id: str):
    data = request.get_json(silent=True) or {}
    menu = menu_service().set_window(week_id, data.get("confirm_start"), data.get("confirm_end"))
    return jsonify({**_menu_payload(menu), "notice": make_notice("success", "Periodo de confirmación actualizado")})


@bp.post("/api/admin/menus/<week_id>/publish")
@require_api_role("admin")
def publish_menu(week_id: str):
    menu = menu_service().publish(week_id, published_by=current_identity()["uid"])
    return jsonify({**_menu_payload(menu), "notice": make_notice("success", "Menú publicado exitosamente")})


@bp.post("/api/admin/menus/archive")
@require_api_role("admin")
def archive_menus():
    return jsonify({"ok": True, "completed": menu_service().archive_elapsed(now())})


@bp.get("/api/coordinator/menu")
@require_api_role("coordinator")
def coordinator_menu():
    current = now()
    week_id = request.args.get("week") or week_id_for(current)
    menu = menu_service().get_menu(week_id)
    if menu is not None and menu.status in PUBLISHABLE_STATUSES:
        menu = None
    window = confirmation_service().evaluate(menu, current)
    return jsonify(
        {
            "ok": True,
            "week": format_week_range(week_id_for(week_id)),
            "menu": menu.to_dict() if menu else None,
            "window": window.to_dict(),
            "time_remaining": time_remaining(current, window.end) if window.can_confirm else None,
            "notice": None if menu else make_notice("info", "No hay menú publicado para esta semana."),
        }
    )
