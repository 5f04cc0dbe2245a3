import os
import sys
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

# Path setup before any project imports to satisfy E402
ROOT = os.path.dirname(__file__)
PARENT = os.path.abspath(os.path.join(ROOT, ".."))
if PARENT not in sys.path:  # pragma: no cover - environment dependent
    sys.path.insert(0, PARENT)

from comedor import create_app  # noqa: E402
from comedor.app_sessions import persist_login  # noqa: E402
from comedor.auth import _RATE_LIMIT_STORE  # noqa: E402
from comedor.branch_service import BranchService  # noqa: E402
from comedor.employee_service import EmployeeService  # noqa: E402
from comedor.logging_setup import clear_error_history  # noqa: E402
from comedor.menu_service import MenuService  # noqa: E402
from comedor.user_service import UserService  # noqa: E402

TZ = ZoneInfo("America/Mexico_City")
# Friday 23/10/2026 noon: the default window for the week of 26/10 is open
FRIDAY_NOON = datetime(2026, 10, 23, 12, 0, tzinfo=TZ)
NEXT_WEEK = "2026-10-26"
THIS_WEEK = "2026-10-19"
BRANCH = "matriz"
PASSWORD = "Secreto123"

ADMIN = {"uid": "admin-1", "name": "Ana Admin", "email": "admin@avika.test", "role": "admin", "branch_id": None}
COORDINATOR = {
    "uid": "coord-1",
    "name": "Carlos Coordinador",
    "email": "coord@avika.test",
    "role": "coordinator",
    "branch_id": BRANCH,
}
EMPLOYEE_USER = {"uid": "emp-1", "name": "Elena Empleada", "email": "elena@avika.test", "role": "employee", "branch_id": BRANCH}

MENU_ITEMS = {
    "lunes": ["Enchiladas"],
    "martes": ["Mole"],
    "miercoles": ["Tacos"],
    "jueves": ["Pescado"],
    "viernes": ["Pozole"],
}


class FakeClock:
    """Mutable clock injected through the ``CLOCK`` config key."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _seed(app) -> None:
    store = app.extensions["document_store"]
    BranchService(store).create("Matriz")
    BranchService(store).create("Delicias")
    users = UserService(store)
    for u in (ADMIN, COORDINATOR, EMPLOYEE_USER):
        users.create(u["name"], u["email"], PASSWORD, u["role"], branch_id=u["branch_id"], uid=u["uid"])


@pytest.fixture(autouse=True)
def _reset_globals():
    _RATE_LIMIT_STORE.clear()
    clear_error_history()
    yield
    _RATE_LIMIT_STORE.clear()


@pytest.fixture
def clock():
    return FakeClock(FRIDAY_NOON)


@pytest.fixture
def app(clock):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "document_backend": "memory",
            "CLOCK": clock,
        }
    )
    with app.app_context():
        _seed(app)
    return app


@pytest.fixture
def sql_app(clock):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "document_backend": "sql",
            "database_url": "sqlite://",
            "CLOCK": clock,
        }
    )
    with app.app_context():
        _seed(app)
    return app


@pytest.fixture
def store(app):
    return app.extensions["document_store"]


def login_as(client, user: dict) -> None:
    with client.session_transaction() as sess:
        persist_login(sess, user["uid"], user["role"], user["branch_id"], user["name"], user["email"])


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_client(app):
    c = app.test_client()
    login_as(c, ADMIN)
    return c


@pytest.fixture
def coordinator_client(app):
    c = app.test_client()
    login_as(c, COORDINATOR)
    return c


@pytest.fixture
def employee_client(app):
    c = app.test_client()
    login_as(c, EMPLOYEE_USER)
    return c


@pytest.fixture
def roster(app, store):
    """Three active employees and one inactive in the coordinator's branch."""
    svc = EmployeeService(store)
    people = [
        {"name": "Beatriz López", "position": "Cajera"},
        {"name": "Diego Ruiz", "position": "Cocinero", "dietary_restrictions": "Vegetariano"},
        {"name": "Fernanda Soto", "position": "Mesera"},
        {"name": "Hugo Vega", "position": "Almacén", "active": False},
    ]
    return [svc.create(p, BRANCH, created_by=COORDINATOR["uid"]) for p in people]


@pytest.fixture
def published_menu(app, store):
    svc = MenuService(store, app.extensions["window_settings"])
    svc.create_menu(NEXT_WEEK, created_by=ADMIN["uid"])
    for day, items in MENU_ITEMS.items():
        svc.set_day_items(NEXT_WEEK, day, items)
    return svc.publish(NEXT_WEEK, published_by=ADMIN["uid"])
