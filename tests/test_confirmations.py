from __future__ import annotations

from datetime import timedelta

import pytest

from comedor.confirmation_service import (
    ConfirmationEditor,
    ConfirmationService,
    confirmation_id,
    upcoming_week_id,
)
from comedor.documents import CONFIRMATIONS, WEEKLY_MENUS
from comedor.errors import DatabaseError, ValidationError
from comedor.menu_service import MenuService

from conftest import BRANCH, FRIDAY_NOON, NEXT_WEEK

URL = f"/api/coordinator/confirmations/{NEXT_WEEK}"


def test_upcoming_week_and_ids():
    assert upcoming_week_id(FRIDAY_NOON) == NEXT_WEEK
    assert confirmation_id(NEXT_WEEK, BRANCH) == "2026-10-26_matriz"


def test_editor_toggle_and_live_summary(roster):
    active = [e for e in roster if e.active]
    editor = ConfirmationEditor(active, meal_cost=50)
    assert editor.summary.confirmed_employees == 0
    assert editor.toggle(active[0].id, "Miércoles") is True
    assert editor.toggle(active[0].id, "lunes") is True
    assert editor.days_for(active[0].id) == ["lunes", "miercoles"]
    assert editor.summary.total_slots == 2
    assert editor.toggle(active[0].id, "lunes") is False
    editor.select_all_for_day("viernes")
    assert editor.summary.by_day["viernes"] == 3
    assert editor.summary.confirmed_employees == 3
    editor.select_all()
    assert editor.summary.total_slots == 15
    assert editor.summary.estimated_savings == 0
    editor.clear()
    assert editor.summary.total_slots == 0
    assert editor.summary.estimated_savings == 15 * 50
    with pytest.raises(ValidationError):
        editor.toggle(active[0].id, "sabado")
    with pytest.raises(ValidationError):
        editor.toggle("ghost", "lunes")


def test_editor_drops_unknown_employees_from_saved_entries(roster):
    from comedor.aggregation import ConfirmationEntry

    active = [e for e in roster if e.active]
    editor = ConfirmationEditor(active, [ConfirmationEntry("gone", days=["lunes"]), ConfirmationEntry(active[1].id, days=["martes", "martes", "domingo"])])
    entries = {e.employee_id: e.days for e in editor.entries()}
    assert "gone" not in entries
    assert entries[active[1].id] == ["martes"]


def test_page_context_with_open_window(coordinator_client, roster, published_menu):
    r = coordinator_client.get("/api/coordinator/confirmations")
    assert r.status_code == 200
    body = r.get_json()
    assert body["week_id"] == NEXT_WEEK
    assert body["window"]["state"] == "open"
    assert body["time_remaining"]["total_seconds"] > 0
    assert len(body["roster"]) == 3
    assert all(e["days"] == [] for e in body["entries"])
    assert body["summary"]["roster_size"] == 3
    assert body["notices"] == []


def test_save_end_to_end(app, coordinator_client, admin_client, store, roster, published_menu):
    a, b, c = (e.id for e in roster[:3])
    r = coordinator_client.put(
        URL,
        json={"employees": [{"employeeId": a, "days": ["lunes", "Martes"]}, {"employeeId": b, "days": ["viernes"]}]},
    )
    assert r.status_code == 200, r.get_json()
    body = r.get_json()
    assert body["summary"]["confirmed_employees"] == 2
    assert body["summary"]["total_slots"] == 3
    assert body["summary"]["estimated_savings"] == (3 * 5 - 3) * 50
    assert {e["employeeId"]: e["days"] for e in body["entries"]} == {a: ["lunes", "martes"], b: ["viernes"], c: []}
    doc = store.get(CONFIRMATIONS, confirmation_id(NEXT_WEEK, BRANCH))
    assert doc.get("coordinatorId") == "coord-1"
    assert doc.get("confirmedCount") == 2
    assert store.get(WEEKLY_MENUS, NEXT_WEEK).get("confirmedEmployees") == 2

    # last write wins; the menu counter follows the delta
    r = coordinator_client.put(URL, json={"employees": [{"employeeId": c, "days": ["jueves"]}]})
    assert r.status_code == 200
    assert store.get(WEEKLY_MENUS, NEXT_WEEK).get("confirmedEmployees") == 1
    saved = {e["employeeId"]: e["days"] for e in store.get(CONFIRMATIONS, confirmation_id(NEXT_WEEK, BRANCH)).get("employees")}
    assert saved == {a: [], b: [], c: ["jueves"]}

    history = coordinator_client.get("/api/coordinator/confirmations/history").get_json()["history"]
    assert [h["weekId"] for h in history] == [NEXT_WEEK]

    overview = admin_client.get(f"/api/admin/confirmations?week={NEXT_WEEK}").get_json()
    matriz = next(row for row in overview["branches"] if row["branch_id"] == BRANCH)
    assert matriz["confirmed_employees"] == 1
    assert matriz["confirmation_rate"] == 33
    assert overview["totals"]["total_slots"] == 1

    export = admin_client.get(f"/api/admin/confirmations/export.csv?week={NEXT_WEEK}")
    lines = export.get_data(as_text=True).splitlines()
    assert lines[0] == "Semana,Sucursal,Empleado,Lunes,Martes,Miércoles,Jueves,Viernes,Total"
    assert f"{NEXT_WEEK},Matriz,Fernanda Soto,,,,Sí,,1" in lines


@pytest.mark.parametrize(
    "entry",
    [
        {"employeeId": "ghost", "days": ["lunes"]},
        {"employeeId": None, "days": ["sabado"]},
    ],
)
def test_save_rejects_unknown_employee_or_day(coordinator_client, roster, published_menu, entry):
    if entry["employeeId"] is None:
        entry = {**entry, "employeeId": roster[0].id}
    r = coordinator_client.put(URL, json={"employees": [entry]})
    assert r.status_code == 422


def test_save_rejects_inactive_employee(coordinator_client, roster, published_menu):
    r = coordinator_client.put(URL, json={"employees": [{"employeeId": roster[3].id, "days": ["lunes"]}]})
    assert r.status_code == 422


def test_save_rejects_non_list_payload(coordinator_client, roster, published_menu):
    r = coordinator_client.put(URL, json={"employees": {"a": 1}})
    assert r.status_code == 422


def test_closed_window_blocks_save(clock, coordinator_client, roster, published_menu):
    clock.now = FRIDAY_NOON + timedelta(days=2)
    r = coordinator_client.put(URL, json={"employees": [{"employeeId": roster[0].id, "days": ["lunes"]}]})
    assert r.status_code == 409
    assert r.get_json()["code"] == "window-closed"
    page = coordinator_client.get(f"/api/coordinator/confirmations?week={NEXT_WEEK}").get_json()
    assert page["window"]["state"] == "closed"
    assert page["time_remaining"] is None
    assert page["notices"][0]["type"] == "info"


def test_not_yet_open_window_blocks_save(clock, coordinator_client, roster, published_menu):
    clock.now = FRIDAY_NOON - timedelta(days=2)
    r = coordinator_client.put(URL, json={"employees": []})
    assert r.status_code == 409
    assert "inicia el 22/10/2026 16:10" in r.get_json()["user_message"]


def test_draft_menu_has_undefined_window(app, store, coordinator_client, roster):
    MenuService(store, app.extensions["window_settings"]).create_menu(NEXT_WEEK)
    r = coordinator_client.put(URL, json={"employees": []})
    assert r.status_code == 409
    assert r.get_json()["code"] == "window-undefined"


def test_missing_menu(coordinator_client, roster):
    r = coordinator_client.put(URL, json={"employees": []})
    assert r.status_code == 404
    page = coordinator_client.get("/api/coordinator/confirmations").get_json()
    assert page["menu"] is None
    assert page["window"]["state"] == "undefined"
    assert page["notices"][0]["message"] == "No hay menú registrado para esta semana."


def test_summary_preview_does_not_persist(coordinator_client, store, roster, published_menu):
    r = coordinator_client.post(
        "/api/coordinator/confirmations/summary",
        json={"employees": [{"employeeId": roster[0].id, "days": ["lunes", "lunes", "martes"]}]},
    )
    assert r.get_json()["summary"]["total_slots"] == 2
    assert store.get(CONFIRMATIONS, confirmation_id(NEXT_WEEK, BRANCH)) is None


def test_roster_failure_degrades_to_empty_page(app, store, roster, published_menu, monkeypatch):
    svc = ConfirmationService(store, app.extensions["window_settings"])

    def broken(*a, **kw):
        raise DatabaseError("roster offline", code="unavailable")

    monkeypatch.setattr(svc.employees, "list_for_branch", broken)
    with app.app_context():
        page = svc.load_page(BRANCH, NEXT_WEEK, FRIDAY_NOON)
    assert page.roster == []
    assert page.notices[0]["type"] == "error"
    assert page.notices[0]["message"] == "El servicio no está disponible en este momento. Intente más tarde."


def test_development_bypass_opens_missing_window(clock):
    from comedor import create_app

    from conftest import COORDINATOR, _seed, login_as

    app = create_app({"TESTING": True, "document_backend": "memory", "dev_bypass_date_validation": True, "CLOCK": clock})
    with app.app_context():
        _seed(app)
    client = app.test_client()
    login_as(client, COORDINATOR)
    page = client.get("/api/coordinator/confirmations").get_json()
    assert page["window"]["state"] == "open"
    assert page["window"]["synthetic"] is True


def test_saved_timestamp_follows_app_clock(clock, coordinator_client, store, roster, published_menu):
    payload = {"employees": [{"employeeId": roster[0].id, "days": ["lunes"]}]}
    assert coordinator_client.put(URL, json=payload).status_code == 200
    doc_id = confirmation_id(NEXT_WEEK, BRANCH)
    assert store.get(CONFIRMATIONS, doc_id).get("updatedAt") == "2026-10-23T18:00:00+00:00"
    clock.now = FRIDAY_NOON + timedelta(hours=2)
    assert coordinator_client.put(URL, json=payload).status_code == 200
    assert store.get(CONFIRMATIONS, doc_id).get("updatedAt") == "2026-10-23T20:00:00+00:00"
