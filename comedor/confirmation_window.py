"""Confirmation window evaluation.

Coordinators may submit attendance confirmations for a week only while the
menu's confirmation window is open. Evaluation is pure: callers decide how to
present the resulting state.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from .date_utils import format_date_display


class WindowState(str, enum.Enum):
    OPEN = "open"
    NOT_YET_OPEN = "not_yet_open"
    CLOSED = "closed"
    UNDEFINED = "undefined"


def _fmt(ts: datetime | None) -> str:
    if ts is None:
        return ""
    return f"{format_date_display(ts)} {ts:%H:%M}"


@dataclass(frozen=True)
class WindowEvaluation:
    state: WindowState
    start: datetime | None
    end: datetime | None
    menu_status: str | None = None
    synthetic: bool = False

    @property
    def can_confirm(self) -> bool:
        return self.state is WindowState.OPEN

    @property
    def message(self) -> str:
        if self.state is WindowState.OPEN:
            return f"Periodo de confirmación abierto hasta el {_fmt(self.end)}."
        if self.state is WindowState.NOT_YET_OPEN:
            return (
                f"El periodo de confirmación inicia el {_fmt(self.start)}. "
                "Por ahora solo puede consultar el menú."
            )
        if self.state is WindowState.CLOSED:
            return "Periodo de confirmación cerrado. Solo puede consultar las confirmaciones enviadas."
        return (
            "No hay un periodo de confirmación configurado para este menú. "
            "Contacte al administrador."
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "can_confirm": self.can_confirm,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
            "menu_status": self.menu_status,
            "synthetic": self.synthetic,
            "message": self.message,
        }


def evaluate_window(
    now: datetime,
    confirm_start: datetime | None,
    confirm_end: datetime | None,
    menu_status: str | None = None,
) -> WindowEvaluation:
    """Bounds are inclusive. ``menu_status`` is carried for messaging only."""
    if confirm_start is None or confirm_end is None:
        state = WindowState.UNDEFINED
    elif now < confirm_start:
        state = WindowState.NOT_YET_OPEN
    elif now > confirm_end:
        state = WindowState.CLOSED
    else:
        state = WindowState.OPEN
    return WindowEvaluation(state, confirm_start, confirm_end, menu_status)


class WindowPolicy(Protocol):
    def evaluate(
        self,
        now: datetime,
        confirm_start: datetime | None,
        confirm_end: datetime | None,
        menu_status: str | None = None,
    ) -> WindowEvaluation: ...


class StrictWindowPolicy:
    """Production policy: the configured window is authoritative."""

    def evaluate(self, now, confirm_start, confirm_end, menu_status=None) -> WindowEvaluation:
        return evaluate_window(now, confirm_start, confirm_end, menu_status)


class DevelopmentWindowPolicy:
    """Substitutes ``[now - 3 days, now + 3 days]`` for a missing window.

    Only wired by the app factory when date validation bypass is enabled for
    local development.
    """

    span = timedelta(days=3)

    def evaluate(self, now, confirm_start, confirm_end, menu_status=None) -> WindowEvaluation:
        if confirm_start is None or confirm_end is None:
            result = evaluate_window(now, now - self.span, now + self.span, menu_status)
            return WindowEvaluation(result.state, result.start, result.end, menu_status, synthetic=True)
        return evaluate_window(now, confirm_start, confirm_end, menu_status)


def window_policy(bypass_date_validation: bool) -> WindowPolicy:
    return DevelopmentWindowPolicy() if bypass_date_validation else StrictWindowPolicy()


def parse_clock(value: str | float | int) -> time:
    """``"16:10"`` or ``16.10`` (hour.minutes) to a ``time``."""
    if isinstance(value, (int, float)):
        hour = int(value)
        minute = int(round((float(value) - hour) * 100))
        return time(hour, minute)
    hour_s, _, minute_s = str(value).strip().partition(":")
    return time(int(hour_s), int(minute_s or 0))


@dataclass(frozen=True)
class WindowSettings:
    start_time: time = time(16, 10)
    end_time: time = time(10, 0)
    start_offset_days: int = 4
    end_offset_days: int = 2
    tz: tzinfo = ZoneInfo("America/Mexico_City")

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> WindowSettings:
        return cls(
            start_time=parse_clock(cfg.get("CONFIRM_START_HOUR", "16:10")),
            end_time=parse_clock(cfg.get("CONFIRM_END_HOUR", "10:00")),
            start_offset_days=int(cfg.get("CONFIRM_START_OFFSET_DAYS", 4)),
            end_offset_days=int(cfg.get("CONFIRM_END_OFFSET_DAYS", 2)),
            tz=ZoneInfo(cfg.get("COMEDOR_TIMEZONE", "America/Mexico_City")),
        )


def default_confirmation_window(monday: date, settings: WindowSettings) -> tuple[datetime, datetime]:
    """Default window for a new menu: preceding Thursday afternoon to Saturday morning."""
    start_day = monday - timedelta(days=settings.start_offset_days)
    end_day = monday - timedelta(days=settings.end_offset_days)
    start = datetime.combine(start_day, settings.start_time, tzinfo=settings.tz)
    end = datetime.combine(end_day, settings.end_time, tzinfo=settings.tz)
    return start, end


def parse_timestamp(value: Any, tz: tzinfo) -> datetime | None:
    """Stored timestamps are ISO strings; naive values are read in ``tz``."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        ts = datetime.combine(value, time.min)
    else:
        ts = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=tz)
    return ts


def time_remaining(now: datetime, confirm_end: datetime | None) -> dict[str, int]:
    if confirm_end is None or now >= confirm_end:
        return {"hours": 0, "minutes": 0, "seconds": 0, "total_seconds": 0}
    total = int((confirm_end - now).total_seconds())
    return {
        "hours": total // 3600,
        "minutes": (total % 3600) // 60,
        "seconds": total % 60,
        "total_seconds": total,
    }


__all__ = [
    "WindowState",
    "WindowEvaluation",
    "WindowPolicy",
    "StrictWindowPolicy",
    "DevelopmentWindowPolicy",
    "WindowSettings",
    "evaluate_window",
    "window_policy",
    "parse_clock",
    "default_confirmation_window",
    "parse_timestamp",
    "time_remaining",
]
