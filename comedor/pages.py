"""Role-gated page endpoints.

Each page answers with the JSON context the browser renders. Denied gate
checks redirect: no identity to the login entry, a foreign role to the
caller's own dashboard.
"""
from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, jsonify, redirect

from .app_authz import current_identity, protect_route, require_role
from .app_sessions import get_session
from .confirmation_service import upcoming_week_id
from .context import (
    branch_service,
    confirmation_service,
    employee_service,
    menu_service,
    now,
    user_service,
)
from .csrf import generate_token
from .date_utils import format_week_range, week_id as week_id_for
from .errors import handle_error
from .menu_service import PUBLISHABLE_STATUSES
from .notices import Notice, make_notice
from .roles import dashboard_for

bp = Blueprint("pages", __name__)

log = logging.getLogger(__name__)


def _page(name: str, **context: Any):
    return jsonify({"page": name, "user": current_identity(), **context})


@bp.get("/")
def login_page():
    identity = get_session()
    if identity is not None:
        # Already signed in and still valid: straight to the own dashboard
        decision = protect_route(identity["role"], user_service())
        if decision.granted and decision.identity is not None:
            return redirect(dashboard_for(decision.identity["role"]) or "/")
    return jsonify({"page": "login", "csrf_token": generate_token()})


@bp.get("/admin/dashboard")
@require_role("admin")
def admin_dashboard():
    return _page("admin/dashboard", week=format_week_range(upcoming_week_id(now())))


@bp.get("/admin/menu")
@require_role("admin")
def admin_menu():
    menus = menu_service().list_menus(limit=10)
    return _page("admin/menu", menus=[m.to_dict() for m in menus], next_week=upcoming_week_id(now()))


@bp.get("/admin/users")
@require_role("admin")
def admin_users():
    return _page(
        "admin/users",
        users=[u.to_dict() for u in user_service().list()],
        branches=[b.to_dict() for b in branch_service().list()],
    )


@bp.get("/admin/confirmations")
@require_role("admin")
def admin_confirmations():
    return _page("admin/confirmations", overview=confirmation_service().admin_overview(upcoming_week_id(now())))


@bp.get("/coordinator/dashboard")
@require_role("coordinator")
def coordinator_dashboard():
    return _page("coordinator/dashboard", week=format_week_range(upcoming_week_id(now())))


@bp.get("/coordinator/employees")
@require_role("coordinator")
def coordinator_employees():
    notices: list[Notice] = []
    employees: list[dict[str, Any]] = []
    branch_id = current_identity()["branch_id"]
    if branch_id:
        try:
            employees = [e.to_dict() for e in employee_service().list_for_branch(branch_id)]
        except Exception as exc:  # noqa: BLE001
            # Render the page with an empty list
            err = handle_error(exc, "Error al cargar empleados", logger=log)
            notices.append(make_notice("error", err.user_message))
    else:
        notices.append(make_notice("warning", "No tienes una sucursal asignada."))
    return _page("coordinator/employees", employees=employees, notices=notices)


@bp.get("/coordinator/confirmations")
@require_role("coordinator")
def coordinator_confirmations():
    branch_id = current_identity()["branch_id"] or ""
    current = now()
    page = confirmation_service().load_page(branch_id, upcoming_week_id(current), current)
    return _page("coordinator/confirmations", **page.to_dict())


def _published_menu(week_id: str):
    menu = menu_service().get_menu(week_id)
    if menu is None or menu.status in PUBLISHABLE_STATUSES:
        return None
    return menu


@bp.get("/coordinator/menu")
@require_role("coordinator")
def coordinator_menu():
    week_id = week_id_for(now())
    menu = _published_menu(week_id)
    return _page("coordinator/menu", week=format_week_range(week_id), menu=menu.to_dict() if menu else None)


@bp.get("/employee/dashboard")
@require_role("employee")
def employee_dashboard():
    week_id = week_id_for(now())
    menu = _published_menu(week_id)
    return _page("employee/dashboard", week=format_week_range(week_id), menu=menu.to_dict() if menu else None)
