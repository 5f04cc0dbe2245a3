"""Dashboard aggregates.

Each dashboard is assembled from independent reads issued concurrently on a
thread pool and awaited jointly. If any read fails the whole dashboard fails
with one generic error; partial dashboards are never returned.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any

from .aggregation import confirmation_rate
from .confirmation_service import ConfirmationService, upcoming_week_id
from .date_utils import format_week_range, week_id as week_id_for
from .errors import AppError, ErrorSeverity, handle_error
from .roles import CANONICAL_ROLES
from .user_service import UserService

log = logging.getLogger(__name__)

DASHBOARD_ERROR_MESSAGE = "Error al cargar los datos del dashboard. Intente nuevamente."


def gather(tasks: dict[str, Callable[[], Any]], max_workers: int = 4) -> dict[str, Any]:
    """Run ``tasks`` concurrently; any failure becomes a single generic ``AppError``."""
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="dashboard") as pool:
        futures = {name: pool.submit(fn) for name, fn in tasks.items()}
        try:
            return {name: fut.result() for name, fut in futures.items()}
        except Exception as exc:  # noqa: BLE001
            err = handle_error(exc, "Error al cargar el dashboard", severity=ErrorSeverity.ERROR, logger=log)
            raise AppError(
                err.detail,
                code="dashboard-unavailable",
                status=503,
                error_type=err.error_type,
                user_message=DASHBOARD_ERROR_MESSAGE,
            ) from exc


class DashboardService:
    def __init__(self, confirmations: ConfirmationService, max_workers: int = 4):
        self.confirmations = confirmations
        self.store = confirmations.store
        self.users = UserService(self.store)
        self.max_workers = max_workers

    def _employee_stats(self, branch_id: str) -> dict[str, int]:
        employees = self.confirmations.employees.list_for_branch(branch_id)
        active = [e for e in employees if e.active]
        return {
            "total": len(employees),
            "active": len(active),
            "inactive": len(employees) - len(active),
            "with_restrictions": sum(1 for e in active if e.dietary_restrictions),
        }

    def _confirmation_stats(self, branch_id: str, week_id: str) -> dict[str, Any]:
        entries = self.confirmations.get_entries(week_id, branch_id)
        branch = self.confirmations.branches.require(branch_id)
        summary = self.confirmations.summarize_entries(entries, branch.employee_count)
        return {
            "week_id": week_id,
            "confirmed_employees": summary.confirmed_employees,
            "total_slots": summary.total_slots,
            "by_day": summary.by_day,
            "confirmation_rate": confirmation_rate(summary.confirmed_employees, branch.employee_count),
            "estimated_savings": summary.estimated_savings,
        }

    def _week_info(self, now: datetime) -> dict[str, Any]:
        return {
            "current": format_week_range(week_id_for(now)),
            "upcoming": format_week_range(upcoming_week_id(now)),
        }

    def _menu_status(self, week_id: str, now: datetime) -> dict[str, Any]:
        menu = self.confirmations.menus.get_menu(week_id)
        window = self.confirmations.evaluate(menu, now)
        return {
            "week_id": week_id,
            "exists": menu is not None,
            "status": menu.status if menu else None,
            "status_text": menu.status_text if menu else "Sin menú",
            "window": window.to_dict(),
        }

    def coordinator_dashboard(self, coordinator_id: str, branch_id: str, now: datetime) -> dict[str, Any]:
        week_id = upcoming_week_id(now)
        data = gather(
            {
                "employees": lambda: self._employee_stats(branch_id),
                "confirmations": lambda: self._confirmation_stats(branch_id, week_id),
                "week": lambda: self._week_info(now),
                "menu": lambda: self._menu_status(week_id, now),
                "history": lambda: self.confirmations.history(coordinator_id),
            },
            self.max_workers,
        )
        return {"branch_id": branch_id, **data}

    def _user_counts(self) -> dict[str, int]:
        users = self.users.list()
        return {role: sum(1 for u in users if u.canonical_role == role) for role in CANONICAL_ROLES}

    def admin_dashboard(self, now: datetime) -> dict[str, Any]:
        week_id = upcoming_week_id(now)
        return gather(
            {
                "confirmations": lambda: self.confirmations.admin_overview(week_id),
                "current_menu": lambda: self._menu_status(week_id_for(now), now),
                "upcoming_menu": lambda: self._menu_status(week_id, now),
                "users": self._user_counts,
                "week": lambda: self._week_info(now),
            },
            self.max_workers,
        )


__all__ = ["DashboardService", "gather", "DASHBOARD_ERROR_MESSAGE"]
