import pytest

from comedor.dashboard_service import DASHBOARD_ERROR_MESSAGE, DashboardService, gather
from comedor.errors import AppError

from conftest import NEXT_WEEK


def test_gather_collects_every_result():
    assert gather({"a": lambda: 1, "b": lambda: "dos"}) == {"a": 1, "b": "dos"}


def test_gather_fails_as_a_whole():
    def boom():
        raise RuntimeError("backend down")

    with pytest.raises(AppError) as exc:
        gather({"ok": lambda: 1, "bad": boom})
    assert exc.value.status == 503
    assert exc.value.code == "dashboard-unavailable"
    assert exc.value.user_message == DASHBOARD_ERROR_MESSAGE


def test_coordinator_dashboard(coordinator_client, roster, published_menu):
    r = coordinator_client.get("/api/coordinator/dashboard")
    assert r.status_code == 200
    body = r.get_json()
    assert body["branch_id"] == "matriz"
    assert body["employees"] == {"total": 4, "active": 3, "inactive": 1, "with_restrictions": 1}
    assert body["confirmations"]["week_id"] == NEXT_WEEK
    assert body["confirmations"]["confirmed_employees"] == 0
    assert body["menu"]["exists"] is True
    assert body["menu"]["window"]["state"] == "open"
    assert body["history"] == []


def test_admin_dashboard(admin_client, published_menu):
    body = admin_client.get("/api/admin/dashboard").get_json()
    assert body["users"] == {"admin": 1, "coordinator": 1, "employee": 1}
    assert body["upcoming_menu"]["status"] == "in-progress"
    assert body["current_menu"]["exists"] is False
    assert body["confirmations"]["week_id"] == NEXT_WEEK


def test_failed_read_is_one_generic_error(coordinator_client, monkeypatch):
    def broken(self, branch_id):
        raise RuntimeError("roster unavailable")

    monkeypatch.setattr(DashboardService, "_employee_stats", broken)
    r = coordinator_client.get("/api/coordinator/dashboard")
    assert r.status_code == 503
    body = r.get_json()
    assert body["code"] == "dashboard-unavailable"
    assert body["user_message"] == DASHBOARD_ERROR_MESSAGE
    assert "employees" not in body


def test_error_history_lists_recent_failures(coordinator_client, admin_client, monkeypatch):
    def broken(self):
        raise RuntimeError("users unavailable")

    monkeypatch.setattr(DashboardService, "_user_counts", broken)
    assert admin_client.get("/api/admin/dashboard").status_code == 503
    errors = admin_client.get("/api/admin/errors").get_json()["errors"]
    assert errors
    assert any("dashboard" in e["msg"] for e in errors)
    assert errors[0]["path"] == "/api/admin/dashboard"
    assert coordinator_client.get("/api/admin/errors").status_code == 403
