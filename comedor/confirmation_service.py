"""Weekly meal confirmations per branch.

One document per (week, branch) in ``confirmations`` with id
``<weekId>_<branchId>``. Its ``employees`` list holds ``{employeeId, name,
days}`` entries; an employee missing from the list confirmed no days. Each
save replaces the whole document (last write wins).
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from .aggregation import ConfirmationEntry, ConfirmationSummary, confirmation_rate, summarize
from .branch_service import BranchService
from .confirmation_window import (
    StrictWindowPolicy,
    WindowEvaluation,
    WindowPolicy,
    WindowSettings,
    WindowState,
    time_remaining,
)
from .date_utils import format_week_range, get_monday, is_valid_date_string, week_id as week_id_for
from .documents import CONFIRMATIONS, WEEKLY_MENUS, DocumentStore, Transaction
from .employee_service import Employee, EmployeeService
from .errors import BusinessRuleError, ValidationError, handle_error, translate
from .menu_service import PUBLISHABLE_STATUSES, MenuService, WeeklyMenu
from .notices import Notice, make_notice
from .state import StateStore
from .weekdays import Weekday, confirmable_days

log = logging.getLogger(__name__)

ENTRIES = "entries"
SUMMARY = "summary"


def confirmation_id(week_id: str, branch_id: str) -> str:
    return f"{week_id}_{branch_id}"


def upcoming_week_id(now: datetime) -> str:
    """Week whose confirmations are collected now (the window closes before its Monday)."""
    return week_id_for(now + timedelta(days=7))


class ConfirmationEditor:
    """Per-page selection state; the summary is recomputed on every change.

    Selections live in a ``StateStore`` under ``entries`` as
    ``{employee_id: tuple[Weekday, ...]}``. A subscription on that key keeps
    ``summary`` current.
    """

    def __init__(
        self,
        roster: Sequence[Employee],
        entries: Iterable[ConfirmationEntry] = (),
        meal_cost: float = 50,
        working_days_per_week: int = 5,
        state: StateStore[str] | None = None,
    ):
        self.roster = {e.id: e for e in roster if e.id}
        self.meal_cost = meal_cost
        self.working_days_per_week = working_days_per_week
        self.days = confirmable_days(working_days_per_week)
        self.state: StateStore[str] = state or StateStore()
        self._unsubscribe = self.state.subscribe(ENTRIES, lambda new, old: self._recompute())
        selections: dict[str, tuple[Weekday, ...]] = {}
        for entry in entries:
            if entry.employee_id in self.roster:
                selections[entry.employee_id] = self._ordered(entry.valid_days() & set(self.days))
        self.state.set(ENTRIES, selections)

    def _ordered(self, days: Iterable[Weekday]) -> tuple[Weekday, ...]:
        chosen = set(days)
        return tuple(d for d in self.days if d in chosen)

    def _require_employee(self, employee_id: str) -> None:
        if employee_id not in self.roster:
            raise ValidationError(
                f"Empleado desconocido: {employee_id}",
                errors=[{"field": "employeeId", "message": employee_id}],
            )

    def _require_day(self, day: str | Weekday) -> Weekday:
        parsed = day if isinstance(day, Weekday) else Weekday.from_key(str(day))
        if parsed is None or parsed not in self.days:
            raise ValidationError(f"Día inválido: {day}", errors=[{"field": "days", "message": str(day)}])
        return parsed

    def _selections(self) -> dict[str, tuple[Weekday, ...]]:
        return dict(self.state.get(ENTRIES) or {})

    def _recompute(self) -> None:
        self.state.set(
            SUMMARY,
            summarize(self.entries(), len(self.roster), self.meal_cost, self.working_days_per_week),
        )

    def days_for(self, employee_id: str) -> list[str]:
        return [d.key for d in self._selections().get(employee_id, ())]

    def toggle(self, employee_id: str, day: str | Weekday) -> bool:
        """Flip one (employee, day) slot; returns whether it is now confirmed."""
        self._require_employee(employee_id)
        weekday = self._require_day(day)
        selections = self._selections()
        current = set(selections.get(employee_id, ()))
        confirmed = weekday not in current
        if confirmed:
            current.add(weekday)
        else:
            current.discard(weekday)
        selections[employee_id] = self._ordered(current)
        self.state.set(ENTRIES, selections)
        return confirmed

    def set_days(self, employee_id: str, days: Iterable[str | Weekday]) -> None:
        self._require_employee(employee_id)
        parsed = [self._require_day(d) for d in days]
        selections = self._selections()
        selections[employee_id] = self._ordered(parsed)
        self.state.set(ENTRIES, selections)

    def select_all_for_day(self, day: str | Weekday, selected: bool = True) -> None:
        weekday = self._require_day(day)
        selections = self._selections()
        for employee_id in self.roster:
            current = set(selections.get(employee_id, ()))
            if selected:
                current.add(weekday)
            else:
                current.discard(weekday)
            selections[employee_id] = self._ordered(current)
        self.state.set(ENTRIES, selections)

    def select_all(self, selected: bool = True) -> None:
        self.state.set(ENTRIES, {eid: (self.days if selected else ()) for eid in self.roster})

    def clear(self) -> None:
        self.select_all(False)

    def entries(self) -> list[ConfirmationEntry]:
        selections = self._selections()
        return [
            ConfirmationEntry(eid, emp.name, [d.key for d in selections.get(eid, ())])
            for eid, emp in self.roster.items()
        ]

    @property
    def summary(self) -> ConfirmationSummary:
        return self.state.get(SUMMARY)

    def close(self) -> None:
        self._unsubscribe()


@dataclass
class ConfirmationPage:
    week_id: str
    menu: WeeklyMenu | None
    roster: list[Employee]
    entries: list[ConfirmationEntry]
    window: WindowEvaluation
    summary: ConfirmationSummary
    notices: list[Notice]
    now: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_id": self.week_id,
            "week": format_week_range(self.week_id),
            "menu": self.menu.to_dict() if self.menu else None,
            "roster": [e.to_dict() for e in self.roster],
            "entries": [e.to_dict() for e in self.entries],
            "window": self.window.to_dict(),
            "time_remaining": time_remaining(self.now, self.window.end) if self.window.can_confirm else None,
            "summary": self.summary.to_dict(),
            "notices": self.notices,
        }


def _entries_from_payload(payload: Any) -> list[ConfirmationEntry]:
    if not isinstance(payload, list):
        raise ValidationError("Las confirmaciones deben enviarse como lista.")
    out = []
    for item in payload:
        if not isinstance(item, Mapping):
            raise ValidationError("Formato de confirmación inválido.")
        out.append(ConfirmationEntry.from_dict(item))
    return out


class ConfirmationService:
    def __init__(
        self,
        store: DocumentStore,
        settings: WindowSettings | None = None,
        policy: WindowPolicy | None = None,
        meal_cost: float = 50,
        working_days_per_week: int = 5,
    ):
        self.store = store
        self.settings = settings or WindowSettings()
        self.policy = policy or StrictWindowPolicy()
        self.meal_cost = meal_cost
        self.working_days_per_week = working_days_per_week
        self.menus = MenuService(store, self.settings, working_days_per_week)
        self.employees = EmployeeService(store)
        self.branches = BranchService(store)

    def _week(self, week_id: str) -> str:
        if not is_valid_date_string(week_id):
            raise ValidationError("La fecha de la semana no es válida.")
        return get_monday(week_id).isoformat()

    def summarize_entries(self, entries: Sequence[ConfirmationEntry], roster_size: int) -> ConfirmationSummary:
        return summarize(entries, roster_size, self.meal_cost, self.working_days_per_week)

    def get_entries(self, week_id: str, branch_id: str) -> list[ConfirmationEntry]:
        doc = self.store.get(CONFIRMATIONS, confirmation_id(week_id, branch_id))
        if doc is None:
            return []
        return [ConfirmationEntry.from_dict(e) for e in doc.get("employees") or [] if isinstance(e, Mapping)]

    def evaluate(self, menu: WeeklyMenu | None, now: datetime) -> WindowEvaluation:
        if menu is None:
            return self.policy.evaluate(now, None, None, None)
        if menu.status in PUBLISHABLE_STATUSES:
            # an unpublished menu has no usable window yet
            return self.policy.evaluate(now, None, None, menu.status)
        return self.policy.evaluate(now, menu.confirm_start, menu.confirm_end, menu.status)

    def editor(self, roster: Sequence[Employee], entries: Iterable[ConfirmationEntry] = ()) -> ConfirmationEditor:
        return ConfirmationEditor(roster, entries, self.meal_cost, self.working_days_per_week)

    def load_page(self, branch_id: str, week_id: str, now: datetime) -> ConfirmationPage:
        week_id = self._week(week_id)
        notices: list[Notice] = []
        menu = self.menus.get_menu(week_id)
        if menu is None:
            notices.append(make_notice("warning", "No hay menú registrado para esta semana."))
        try:
            roster = self.employees.list_for_branch(branch_id, active_only=True)
        except Exception as exc:  # noqa: BLE001
            # The page still renders with an empty roster
            err = handle_error(exc, "Error al cargar empleados", logger=log)
            notices.append(make_notice("error", err.user_message))
            roster = []
        entries = self.get_entries(week_id, branch_id)
        window = self.evaluate(menu, now)
        if not window.can_confirm:
            notices.append(make_notice("info", window.message))
        editor = self.editor(roster, entries)
        return ConfirmationPage(
            week_id=week_id,
            menu=menu,
            roster=roster,
            entries=editor.entries() if roster else entries,
            window=window,
            summary=editor.summary,
            notices=notices,
            now=now,
        )

    def summarize(self, branch_id: str, payload: Any) -> ConfirmationSummary:
        roster = self.employees.list_for_branch(branch_id, active_only=True)
        editor = self.editor(roster)
        for entry in _entries_from_payload(payload):
            editor.set_days(entry.employee_id, entry.days)
        return editor.summary

    def save(
        self,
        branch_id: str,
        week_id: str,
        coordinator_id: str,
        payload: Any,
        now: datetime,
    ) -> tuple[list[ConfirmationEntry], ConfirmationSummary]:
        week_id = self._week(week_id)
        menu = self.menus.require(week_id)
        window = self.evaluate(menu, now)
        if window.state is not WindowState.OPEN:
            code = "window-undefined" if window.state is WindowState.UNDEFINED else "window-closed"
            raise BusinessRuleError(
                f"confirmation window {window.state.value} for {week_id}",
                code=code,
                user_message=window.message if window.state is WindowState.NOT_YET_OPEN else translate(code),
            )
        roster = self.employees.list_for_branch(branch_id, active_only=True)
        editor = self.editor(roster)
        for entry in _entries_from_payload(payload):
            editor.set_days(entry.employee_id, entry.days)
        entries = editor.entries()
        summary = editor.summary
        doc_id = confirmation_id(week_id, branch_id)
        data = {
            "weekId": week_id,
            "branchId": branch_id,
            "coordinatorId": coordinator_id,
            "employees": [e.to_dict() for e in entries],
            "confirmedCount": summary.confirmed_employees,
            "totalSlots": summary.total_slots,
            "updatedAt": now.astimezone(UTC).isoformat(),
        }

        def write(tx: Transaction) -> None:
            previous = tx.get(CONFIRMATIONS, doc_id)
            menu_doc = tx.get(WEEKLY_MENUS, week_id)
            before = int(previous.get("confirmedCount") or 0) if previous else 0
            tx.set(CONFIRMATIONS, doc_id, data)
            if menu_doc is not None:
                tx.increment(
                    WEEKLY_MENUS, week_id, "confirmedEmployees", summary.confirmed_employees - before, floor=0
                )

        self.store.transaction(write)
        log.info(
            "confirmations saved week=%s branch=%s confirmed=%d slots=%d",
            week_id,
            branch_id,
            summary.confirmed_employees,
            summary.total_slots,
        )
        return entries, summary

    def history(self, coordinator_id: str, limit: int = 5) -> list[dict[str, Any]]:
        docs = self.store.query(
            CONFIRMATIONS,
            where=[("coordinatorId", "==", coordinator_id)],
            order_by="updatedAt",
            descending=True,
            limit=limit,
        )
        return [
            {
                "id": d.id,
                "weekId": d.get("weekId"),
                "branchId": d.get("branchId"),
                "confirmedCount": d.get("confirmedCount") or 0,
                "totalSlots": d.get("totalSlots") or 0,
                "updatedAt": d.get("updatedAt"),
            }
            for d in docs
        ]

    def admin_overview(self, week_id: str) -> dict[str, Any]:
        week_id = self._week(week_id)
        rows = []
        for branch in self.branches.list():
            entries = self.get_entries(week_id, branch.id)
            summary = self.summarize_entries(entries, branch.employee_count)
            rows.append(
                {
                    "branch_id": branch.id,
                    "branch_name": branch.name,
                    "employee_count": branch.employee_count,
                    "confirmed_employees": summary.confirmed_employees,
                    "total_slots": summary.total_slots,
                    "by_day": summary.by_day,
                    "confirmation_rate": confirmation_rate(summary.confirmed_employees, branch.employee_count),
                    "estimated_savings": summary.estimated_savings,
                }
            )
        return {
            "week_id": week_id,
            "week": format_week_range(week_id),
            "branches": rows,
            "totals": {
                "employee_count": sum(r["employee_count"] for r in rows),
                "confirmed_employees": sum(r["confirmed_employees"] for r in rows),
                "total_slots": sum(r["total_slots"] for r in rows),
                "estimated_savings": sum(r["estimated_savings"] for r in rows),
            },
        }

    def export_rows(self, week_id: str) -> Iterable[list[str]]:
        week_id = self._week(week_id)
        days = confirmable_days(self.working_days_per_week)
        yield ["Semana", "Sucursal", "Empleado", *[d.display for d in days], "Total"]
        for branch in self.branches.list():
            for entry in self.get_entries(week_id, branch.id):
                chosen = entry.valid_days()
                yield [
                    week_id,
                    branch.name,
                    entry.name,
                    *["Sí" if d in chosen else "" for d in days],
                    str(len(chosen & set(days))),
                ]


__all__ = [
    "ConfirmationEditor",
    "ConfirmationPage",
    "ConfirmationService",
    "confirmation_id",
    "upcoming_week_id",
]
