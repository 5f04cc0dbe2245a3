"""Weekly menus.

A menu is keyed by its week's Monday (``YYYY-MM-DD``) in ``weeklyMenus``.
Older documents live under the legacy ``menus`` collection and per-day items
may also be stored as ``weeklyMenus/<weekId>/dailyMenus`` sub-documents; both
are folded into one canonical per-day structure on read.

Lifecycle: ``draft`` -> (publish: window attached) ``in-progress`` ->
``completed`` once the week's Sunday has passed.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any

from .confirmation_window import WindowSettings, default_confirmation_window, parse_timestamp
from .date_utils import (
    format_date,
    format_date_display,
    get_friday,
    get_monday,
    get_sunday,
    is_valid_date_string,
    parse_date,
    week_id as week_id_for,
)
from .documents import (
    BRANCHES,
    DAILY_MENUS,
    LEGACY_MENUS,
    WEEKLY_MENUS,
    DocumentStore,
    subcollection,
)
from .errors import BusinessRuleError, NotFoundError, ValidationError
from .validators import clean_text
from .weekdays import DAY_KEYS, Weekday, confirmable_days, normalize_menu_days

log = logging.getLogger(__name__)

STATUS_TEXT: dict[str, str] = {
    "draft": "Borrador",
    "pending": "Pendiente",
    "in-progress": "En Progreso",
    "published": "Publicado",
    "completed": "Completado",
    "archived": "Archivado",
}
PUBLISHABLE_STATUSES = {"draft", "pending"}
ACTIVE_STATUSES = {"in-progress", "published"}


@dataclass
class WeeklyMenu:
    id: str
    start_date: str
    end_date: str | None = None
    status: str = "draft"
    confirm_start: datetime | None = None
    confirm_end: datetime | None = None
    days: dict[str, dict[str, Any]] = field(default_factory=lambda: normalize_menu_days(None))
    total_employees: int = 0
    confirmed_employees: int = 0
    actual_attendees: int = 0
    waste_reduction: float = 0
    created_by: str | None = None
    created_at: str | None = None
    published_by: str | None = None
    published_at: str | None = None

    @property
    def status_text(self) -> str:
        return STATUS_TEXT.get(self.status, "Desconocido")

    @property
    def has_window(self) -> bool:
        return self.confirm_start is not None and self.confirm_end is not None

    def items_for(self, day: Weekday) -> list[dict[str, Any]]:
        return list(self.days.get(day.key, {}).get("items", []))

    @classmethod
    def from_doc(cls, doc_id: str, data: dict[str, Any], settings: WindowSettings) -> WeeklyMenu:
        raw_days = data.get("days") or data.get("dailyMenus") or {}
        return cls(
            id=doc_id,
            start_date=str(data.get("startDate") or doc_id),
            end_date=data.get("endDate"),
            status=str(data.get("status") or "draft"),
            confirm_start=parse_timestamp(data.get("confirmStartDate"), settings.tz),
            confirm_end=parse_timestamp(data.get("confirmEndDate"), settings.tz),
            days=normalize_menu_days(raw_days),
            total_employees=int(data.get("totalEmployees") or 0),
            confirmed_employees=int(data.get("confirmedEmployees") or 0),
            actual_attendees=int(data.get("actualAttendees") or 0),
            waste_reduction=data.get("wasteReduction") or 0,
            created_by=data.get("createdBy"),
            created_at=data.get("createdAt"),
            published_by=data.get("publishedBy"),
            published_at=data.get("publishedAt"),
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "startDate": self.start_date,
            "endDate": self.end_date,
            "status": self.status,
            "confirmStartDate": self.confirm_start.isoformat() if self.confirm_start else None,
            "confirmEndDate": self.confirm_end.isoformat() if self.confirm_end else None,
            "days": self.days,
            "totalEmployees": self.total_employees,
            "confirmedEmployees": self.confirmed_employees,
            "actualAttendees": self.actual_attendees,
            "wasteReduction": self.waste_reduction,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "publishedBy": self.published_by,
            "publishedAt": self.published_at,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            **self.to_doc(),
            "statusText": self.status_text,
            "dateRange": formatted_date_range(self),
        }


def create_empty_menu(
    monday: date | str,
    settings: WindowSettings,
    created_by: str | None = None,
    created_at: datetime | None = None,
) -> WeeklyMenu:
    """Draft for the week of ``monday`` with the default confirmation window attached."""
    start = get_monday(monday)
    confirm_start, confirm_end = default_confirmation_window(start, settings)
    return WeeklyMenu(
        id=format_date(start),
        start_date=format_date(start),
        end_date=format_date(get_friday(start)),
        status="draft",
        confirm_start=confirm_start,
        confirm_end=confirm_end,
        created_by=created_by,
        created_at=(created_at or datetime.now(UTC)).astimezone(UTC).isoformat(),
    )


def validate_menu(menu: WeeklyMenu, working_days_per_week: int = 5) -> list[str]:
    """Problems preventing publication (empty list when the menu is complete)."""
    problems: list[str] = []
    if not is_valid_date_string(menu.start_date):
        problems.append("La fecha de inicio de la semana no es válida.")
    elif parse_date(menu.start_date).weekday() != 0:
        problems.append("La semana debe iniciar en lunes.")
    for day in confirmable_days(working_days_per_week):
        if day.key not in menu.days:
            problems.append(f"Falta el día {day.display}.")
    if not any(_non_empty(item) for key in DAY_KEYS for item in menu.days.get(key, {}).get("items", [])):
        problems.append("El menú está incompleto. Agregue al menos un platillo.")
    return problems


def can_publish(menu: WeeklyMenu, working_days_per_week: int = 5) -> tuple[bool, str | None]:
    if menu.status not in PUBLISHABLE_STATUSES:
        return False, "El menú ya ha sido publicado."
    problems = validate_menu(menu, working_days_per_week)
    if problems:
        return False, problems[0]
    return True, None


def has_menu_changed(a: WeeklyMenu | None, b: WeeklyMenu | None) -> bool:
    if a is None or b is None:
        return a is not b
    return a.to_doc() != b.to_doc()


def formatted_date_range(menu: WeeklyMenu) -> str:
    if not menu.start_date or not is_valid_date_string(menu.start_date):
        return "Fechas no disponibles"
    end = menu.end_date if menu.end_date and is_valid_date_string(menu.end_date) else get_friday(menu.start_date)
    return f"{format_date_display(menu.start_date)} al {format_date_display(end)}"


def _non_empty(item: Any) -> bool:
    if isinstance(item, dict):
        return bool(clean_text(item.get("name")))
    return bool(clean_text(item))


def _clean_item(item: Any) -> dict[str, str]:
    if isinstance(item, dict):
        return {"name": clean_text(item.get("name")), "description": clean_text(item.get("description"))}
    return {"name": clean_text(item), "description": ""}


def _clean_items(items: Any) -> list[dict[str, str]]:
    if not isinstance(items, list):
        raise ValidationError(
            "Los platillos deben enviarse como lista.", errors=[{"field": "items", "message": "list required"}]
        )
    return [i for i in (_clean_item(item) for item in items) if i["name"]]


def _require_day(day: str) -> Weekday:
    parsed = Weekday.parse(day)
    if parsed is None:
        raise ValidationError(f"Día inválido: {day}", errors=[{"field": "day", "message": day}])
    return parsed


def _require_week_id(week_id: str) -> str:
    if not is_valid_date_string(week_id):
        raise ValidationError("La fecha de la semana no es válida.", errors=[{"field": "week_id", "message": week_id}])
    return format_date(get_monday(week_id))


class MenuService:
    def __init__(
        self,
        store: DocumentStore,
        settings: WindowSettings | None = None,
        working_days_per_week: int = 5,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.settings = settings or WindowSettings()
        self.working_days_per_week = working_days_per_week
        self.clock = clock or (lambda: datetime.now(UTC))

    def _daily_overrides(self, week_id: str) -> dict[str, Any]:
        docs = self.store.query(subcollection(WEEKLY_MENUS, week_id, DAILY_MENUS))
        return {str(d.get("day") or d.id): d.data for d in docs}

    def get_menu(self, week_id: str) -> WeeklyMenu | None:
        week_id = _require_week_id(week_id)
        doc = self.store.get(WEEKLY_MENUS, week_id) or self.store.get(LEGACY_MENUS, week_id)
        if doc is None:
            return None
        menu = WeeklyMenu.from_doc(week_id, doc.data, self.settings)
        overrides = self._daily_overrides(week_id)
        if overrides:
            # inline days win; sub-documents fill days left empty
            daily = normalize_menu_days(overrides)
            for key in DAY_KEYS:
                if not menu.days[key]["items"] and daily[key]["items"]:
                    menu.days[key] = daily[key]
        return menu

    def require(self, week_id: str) -> WeeklyMenu:
        menu = self.get_menu(week_id)
        if menu is None:
            raise NotFoundError(f"menu {week_id} not found", user_message="No hay menú registrado para esta semana.")
        return menu

    def list_menus(self, limit: int | None = None) -> list[WeeklyMenu]:
        docs = self.store.query(WEEKLY_MENUS, order_by="startDate", descending=True, limit=limit)
        return [WeeklyMenu.from_doc(d.id, d.data, self.settings) for d in docs]

    def _save(self, menu: WeeklyMenu) -> WeeklyMenu:
        data = menu.to_doc()
        data["updatedAt"] = self.clock().astimezone(UTC).isoformat()
        self.store.set(WEEKLY_MENUS, menu.id, data)
        return menu

    def create_menu(self, monday: date | str, created_by: str | None = None) -> WeeklyMenu:
        menu = create_empty_menu(monday, self.settings, created_by, self.clock())
        if self.store.get(WEEKLY_MENUS, menu.id) is not None:
            raise BusinessRuleError(
                f"menu {menu.id} exists", user_message="Ya existe un menú para esta semana."
            )
        self._save(menu)
        log.info("menu created week=%s by=%s", menu.id, created_by)
        return menu

    def _editable(self, week_id: str) -> WeeklyMenu:
        menu = self.require(week_id)
        if menu.status in {"completed", "archived"}:
            raise BusinessRuleError(
                f"menu {menu.id} is {menu.status}", user_message="El menú de una semana concluida no se puede modificar."
            )
        return menu

    def set_day_items(self, week_id: str, day: str, items: list[Any]) -> WeeklyMenu:
        return self.set_days(week_id, {day: items})

    def set_days(self, week_id: str, days: Mapping[str, Any]) -> WeeklyMenu:
        """Replace the items of every day in ``days`` with a single write.

        Values are item lists or ``{"items": [...]}`` mappings. Every day is
        checked before the menu is touched, so one bad day stores nothing.
        """
        parsed: dict[str, list[dict[str, str]]] = {}
        for day, value in days.items():
            weekday = _require_day(str(day))
            items = value.get("items", []) if isinstance(value, Mapping) else value
            parsed[weekday.key] = _clean_items(items)
        menu = self._editable(week_id)
        for key, items in parsed.items():
            menu.days[key] = {**menu.days.get(key, {}), "items": items}
        return self._save(menu)

    def add_item(self, week_id: str, day: str, name: str, description: str = "") -> WeeklyMenu:
        item = _clean_item({"name": name, "description": description})
        if not item["name"]:
            raise ValidationError(
                "El nombre del platillo es requerido.", errors=[{"field": "name", "message": "required"}]
            )
        weekday = _require_day(day)
        menu = self._editable(week_id)
        menu.days[weekday.key]["items"].append(item)
        return self._save(menu)

    def remove_item(self, week_id: str, day: str, index: int) -> WeeklyMenu:
        weekday = _require_day(day)
        menu = self._editable(week_id)
        items = menu.days[weekday.key]["items"]
        if index < 0 or index >= len(items):
            raise NotFoundError(f"item {index} not found", user_message="El platillo no existe.")
        items.pop(index)
        return self._save(menu)

    def set_window(self, week_id: str, confirm_start: Any, confirm_end: Any) -> WeeklyMenu:
        try:
            start = parse_timestamp(confirm_start, self.settings.tz)
            end = parse_timestamp(confirm_end, self.settings.tz)
        except (TypeError, ValueError) as exc:
            raise ValidationError("Formato de fecha inválido.") from exc
        if start is None or end is None:
            raise ValidationError("Las fechas del periodo de confirmación son requeridas.")
        if start >= end:
            raise ValidationError("La fecha de inicio debe ser anterior a la fecha de fin.")
        menu = self._editable(week_id)
        menu.confirm_start, menu.confirm_end = start, end
        return self._save(menu)

    def _roster_total(self) -> int:
        return sum(int(d.get("employeeCount") or 0) for d in self.store.query(BRANCHES))

    def publish(self, week_id: str, published_by: str | None = None) -> WeeklyMenu:
        menu = self.require(week_id)
        ok, reason = can_publish(menu, self.working_days_per_week)
        if not ok:
            raise BusinessRuleError(f"menu {menu.id} cannot be published", user_message=reason)
        if not menu.has_window:
            menu.confirm_start, menu.confirm_end = default_confirmation_window(
                parse_date(menu.start_date), self.settings
            )
        menu.status = "in-progress"
        menu.published_by = published_by
        menu.published_at = self.clock().astimezone(UTC).isoformat()
        menu.total_employees = self._roster_total()
        self._save(menu)
        log.info("menu published week=%s by=%s", menu.id, published_by)
        return menu

    def archive_elapsed(self, now: datetime) -> list[str]:
        """Mark menus whose week (through Sunday) has passed as completed."""
        today = now.astimezone(self.settings.tz).date() if now.tzinfo else now.date()
        archived = []
        with self.store.batch() as batch:
            for doc in self.store.query(WEEKLY_MENUS, where=[("status", "in", sorted(ACTIVE_STATUSES | PUBLISHABLE_STATUSES))]):
                start = doc.get("startDate") or doc.id
                if is_valid_date_string(start) and get_sunday(start) < today:
                    batch.update(WEEKLY_MENUS, doc.id, {"status": "completed"})
                    archived.append(doc.id)
        if archived:
            log.info("menus completed %s", archived)
        return archived

    def get_current_menu(self, today: date | datetime) -> WeeklyMenu | None:
        return self.get_menu(week_id_for(today))


__all__ = [
    "STATUS_TEXT",
    "PUBLISHABLE_STATUSES",
    "WeeklyMenu",
    "MenuService",
    "create_empty_menu",
    "validate_menu",
    "can_publish",
    "has_menu_changed",
    "formatted_date_range",
]
