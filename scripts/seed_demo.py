"""Seed demo data: default branches, an admin, one coordinator with a small
roster and a published menu for next week.

Run: python scripts/seed_demo.py

Creates records only if they are absent. Safe for repeats.
"""
from __future__ import annotations

import sys
from datetime import date, timedelta
from pathlib import Path

# Ensure project root (parent of scripts/) is on sys.path when run as a file.
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from comedor.app_factory import create_app
from comedor.branch_service import BranchService
from comedor.date_utils import get_monday
from comedor.documents import current_store
from comedor.employee_service import EmployeeService
from comedor.menu_service import MenuService
from comedor.user_service import UserService

ADMIN_EMAIL = "admin@avika.demo"
COORDINATOR_EMAIL = "coordinador@avika.demo"
DEMO_PASSWORD = "Demo1234"
DEMO_BRANCH = "matriz"

ROSTER = [
    {"name": "Juan Pérez", "position": "Cocinero", "dietary_restrictions": ""},
    {"name": "María Gómez", "position": "Mesera", "dietary_restrictions": "Vegetariana"},
    {"name": "Luis Rodríguez", "position": "Almacén", "dietary_restrictions": "Sin gluten"},
]

MENU = {
    "lunes": ["Enchiladas verdes", "Arroz rojo"],
    "martes": ["Pollo en mole", "Frijoles charros"],
    "miercoles": ["Tacos de guisado"],
    "jueves": ["Pescado empapelado", "Ensalada"],
    "viernes": ["Pozole"],
}


def main() -> None:
    app = create_app()
    with app.app_context():
        store = current_store()
        BranchService(store).ensure_defaults()
        users = UserService(store)
        admin = users.find_by_email(ADMIN_EMAIL) or users.create(
            "Administrador Demo", ADMIN_EMAIL, DEMO_PASSWORD, "admin"
        )
        coordinator = users.find_by_email(COORDINATOR_EMAIL)
        if coordinator is None:
            coordinator = users.create(
                "Coordinador Matriz", COORDINATOR_EMAIL, DEMO_PASSWORD, "coordinator", branch_id=DEMO_BRANCH
            )
            employees = EmployeeService(store)
            for row in ROSTER:
                employees.create(row, DEMO_BRANCH, created_by=coordinator.uid)
        menus = MenuService(store, app.extensions["window_settings"])
        monday = get_monday(date.today() + timedelta(days=7))
        if menus.get_menu(monday.isoformat()) is None:
            menu = menus.create_menu(monday, created_by=admin.uid)
            for day, items in MENU.items():
                menus.set_day_items(menu.id, day, items)
            menus.publish(menu.id, published_by=admin.uid)
        print("Demo seed complete.")
        print(f"Admin: {ADMIN_EMAIL} / {DEMO_PASSWORD}")
        print(f"Coordinator: {COORDINATOR_EMAIL} / {DEMO_PASSWORD}")


if __name__ == "__main__":
    main()
