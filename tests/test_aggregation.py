from __future__ import annotations

from comedor.aggregation import (
    ConfirmationEntry,
    confirmation_accuracy,
    confirmation_rate,
    confirmed_employee_count,
    counts_by_day,
    estimated_savings,
    per_day_count,
    summarize,
    total_confirmed_slots,
)
from comedor.weekdays import confirmable_days


def _entries():
    return [
        ConfirmationEntry("e1", "Ana", ["lunes", "martes", "miercoles"]),
        ConfirmationEntry("e2", "Beto", ["Lunes", "LUNES", "viernes"]),
        ConfirmationEntry("e3", "Caro", []),
        ConfirmationEntry("e4", "Dani", ["funday", ""]),
    ]


def test_counts_ignore_invalid_and_duplicate_days():
    entries = _entries()
    assert confirmed_employee_count(entries) == 2
    assert total_confirmed_slots(entries) == 5
    assert per_day_count(entries, "lunes") == 2
    assert per_day_count(entries, "Miércoles") == 1
    assert per_day_count(entries, "nope") == 0


def test_counts_by_day_covers_working_days():
    by_day = counts_by_day(_entries(), 5)
    assert by_day == {"lunes": 2, "martes": 1, "miercoles": 1, "jueves": 0, "viernes": 1}


def test_savings_and_rate():
    assert estimated_savings(5, 4, 50, 5) == (4 * 5 - 5) * 50
    assert estimated_savings(0, 0, 50) == 0
    assert confirmation_rate(2, 3) == 67
    assert confirmation_rate(5, 0) == 0


def test_roster_of_ten_with_four_confirming_three_days():
    entries = [ConfirmationEntry(f"c{i}", days=["lunes", "martes", "miercoles"]) for i in range(4)]
    entries += [ConfirmationEntry(f"n{i}") for i in range(6)]
    assert confirmed_employee_count(entries) == 4
    assert total_confirmed_slots(entries) == 12
    assert estimated_savings(12, 10, 50, 5) == (10 * 5 - 12) * 50 == 1900
    summary = summarize(entries, roster_size=10, meal_cost=50, working_days_per_week=5)
    assert summary.estimated_savings == 1900
    assert summary.confirmation_rate == 40


def test_summarize():
    summary = summarize(_entries(), roster_size=4, meal_cost=60)
    assert summary.confirmed_employees == 2
    assert summary.total_slots == 5
    assert summary.estimated_savings == 15 * 60
    assert summary.confirmation_rate == 50
    assert summary.to_dict()["by_day"]["lunes"] == 2


def test_summarize_ignores_days_outside_working_week():
    entries = [ConfirmationEntry("e1", days=["lunes", "sabado", "domingo"])]
    summary = summarize(entries, roster_size=1, meal_cost=50, working_days_per_week=5)
    assert summary.total_slots == 1
    assert summary.total_slots == sum(summary.by_day.values())
    assert summary.estimated_savings == 200
    assert confirmed_employee_count([ConfirmationEntry("e2", days=["domingo"])], confirmable_days(5)) == 0

    seven = summarize(entries, roster_size=1, meal_cost=50, working_days_per_week=7)
    assert seven.total_slots == 3
    assert seven.estimated_savings == 200


def test_from_dict_accepts_both_key_styles():
    a = ConfirmationEntry.from_dict({"employeeId": "x", "days": ["lunes"]})
    b = ConfirmationEntry.from_dict({"employee_id": "x", "days": "lunes"})
    assert a.employee_id == b.employee_id == "x"
    assert b.days == []


def test_confirmation_accuracy():
    entries = [ConfirmationEntry("e1", days=["lunes", "martes"]), ConfirmationEntry("e2", days=["lunes"])]
    attendance = [{"employeeId": "e1", "attended": {"lunes": True, "martes": False}}]
    # e1: lunes ok, martes wrong, miercoles..viernes ok -> 4/5; e2 unscored
    assert confirmation_accuracy(entries, attendance) == 80.0
    assert confirmation_accuracy(entries, []) == 0.0
