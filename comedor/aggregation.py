"""Confirmation aggregation.

Pure functions folding per-employee day selections into the numbers shown
in the live summary: confirmed employees, confirmed meal slots, per-day
counts and the estimated savings from unconfirmed slots.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from .weekdays import Weekday, confirmable_days


@dataclass
class ConfirmationEntry:
    employee_id: str
    name: str = ""
    days: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConfirmationEntry:
        days = data.get("days") or []
        return cls(
            employee_id=str(data.get("employeeId") or data.get("employee_id") or ""),
            name=str(data.get("name") or ""),
            days=[str(d) for d in days] if isinstance(days, list) else [],
        )

    def to_dict(self) -> dict[str, Any]:
        return {"employeeId": self.employee_id, "name": self.name, "days": list(self.days)}

    def valid_days(self, allowed: Iterable[Weekday] | None = None) -> set[Weekday]:
        """Recognised days; malformed strings are ignored, duplicates collapse.

        With ``allowed`` only those days count (e.g. the working days of the week).
        """
        out: set[Weekday] = set()
        for raw in self.days:
            day = Weekday.from_key(raw) if isinstance(raw, str) else None
            if day is not None:
                out.add(day)
        return out if allowed is None else out & set(allowed)


def confirmed_employee_count(
    entries: Iterable[ConfirmationEntry], days: Iterable[Weekday] | None = None
) -> int:
    allowed = None if days is None else tuple(days)
    return sum(1 for e in entries if e.valid_days(allowed))


def total_confirmed_slots(entries: Iterable[ConfirmationEntry], days: Iterable[Weekday] | None = None) -> int:
    allowed = None if days is None else tuple(days)
    return sum(len(e.valid_days(allowed)) for e in entries)


def per_day_count(entries: Iterable[ConfirmationEntry], day: str | Weekday) -> int:
    target = day if isinstance(day, Weekday) else Weekday.from_key(day)
    if target is None:
        return 0
    return sum(1 for e in entries if target in e.valid_days())


def counts_by_day(
    entries: Sequence[ConfirmationEntry], working_days_per_week: int = 7
) -> dict[str, int]:
    return {d.key: per_day_count(entries, d) for d in confirmable_days(working_days_per_week)}


def estimated_savings(
    total_slots: int, roster_size: int, meal_cost: float, working_days_per_week: int = 5
) -> float:
    """``(roster * days - confirmed slots) * meal_cost``; an empty roster saves nothing."""
    if roster_size <= 0:
        return 0
    return (roster_size * working_days_per_week - total_slots) * meal_cost


def confirmation_rate(confirmed: int, employee_count: int) -> int:
    """Rounded percentage; 0 when the branch has no employees."""
    if employee_count <= 0:
        return 0
    return round(confirmed / employee_count * 100)


def confirmation_accuracy(
    entries: Iterable[ConfirmationEntry],
    attendance: Iterable[Mapping[str, Any]],
    working_days_per_week: int = 5,
) -> float:
    """Percentage of (employee, day) predictions that matched actual attendance.

    ``attendance`` items look like ``{"employeeId": ..., "attended": {"lunes": True, ...}}``.
    Employees without an attendance record are not scored.
    """
    by_employee = {str(a.get("employeeId")): a.get("attended") or {} for a in attendance}
    days = confirmable_days(working_days_per_week)
    correct = 0
    total = 0
    for entry in entries:
        attended = by_employee.get(entry.employee_id)
        if attended is None:
            continue
        confirmed = entry.valid_days()
        attended_days = {d for d in (Weekday.from_key(k) for k, v in attended.items() if v) if d}
        for day in days:
            if (day in confirmed) == (day in attended_days):
                correct += 1
            total += 1
    return correct / total * 100 if total else 0.0


@dataclass(frozen=True)
class ConfirmationSummary:
    roster_size: int
    confirmed_employees: int
    total_slots: int
    by_day: dict[str, int]
    estimated_savings: float
    confirmation_rate: int
    meal_cost: float
    working_days_per_week: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "roster_size": self.roster_size,
            "confirmed_employees": self.confirmed_employees,
            "total_slots": self.total_slots,
            "by_day": dict(self.by_day),
            "estimated_savings": self.estimated_savings,
            "confirmation_rate": self.confirmation_rate,
            "meal_cost": self.meal_cost,
            "working_days_per_week": self.working_days_per_week,
        }


def summarize(
    entries: Sequence[ConfirmationEntry],
    roster_size: int,
    meal_cost: float = 50,
    working_days_per_week: int = 5,
) -> ConfirmationSummary:
    # Selections outside the working days are neither counted nor priced
    days = confirmable_days(working_days_per_week)
    confirmed = confirmed_employee_count(entries, days)
    slots = total_confirmed_slots(entries, days)
    return ConfirmationSummary(
        roster_size=roster_size,
        confirmed_employees=confirmed,
        total_slots=slots,
        by_day=counts_by_day(entries, working_days_per_week),
        estimated_savings=estimated_savings(slots, roster_size, meal_cost, working_days_per_week),
        confirmation_rate=confirmation_rate(confirmed, roster_size),
        meal_cost=meal_cost,
        working_days_per_week=working_days_per_week,
    )


__all__ = [
    "ConfirmationEntry",
    "ConfirmationSummary",
    "confirmed_employee_count",
    "total_confirmed_slots",
    "per_day_count",
    "counts_by_day",
    "estimated_savings",
    "confirmation_rate",
    "confirmation_accuracy",
    "summarize",
]
