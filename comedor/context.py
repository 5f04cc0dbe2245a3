from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from flask import current_app

from .branch_service import BranchService
from .confirmation_service import ConfirmationService
from .confirmation_window import WindowPolicy, WindowSettings
from .documents import current_store
from .employee_service import EmployeeService
from .menu_service import MenuService
from .user_service import UserService


def window_settings() -> WindowSettings:
    return current_app.extensions["window_settings"]


def window_policy() -> WindowPolicy:
    return current_app.extensions["window_policy"]


def now() -> datetime:
    """Current time in the cafeteria's timezone (``CLOCK`` config overrides, for tests)."""
    clock: Callable[[], datetime] | None = current_app.config.get("CLOCK")
    if clock is not None:
        return clock()
    return datetime.now(window_settings().tz)


def working_days() -> int:
    return int(current_app.config.get("WORKING_DAYS_PER_WEEK", 5))


def menu_service() -> MenuService:
    return MenuService(current_store(), window_settings(), working_days(), clock=now)


def confirmation_service() -> ConfirmationService:
    return ConfirmationService(
        current_store(),
        window_settings(),
        window_policy(),
        float(current_app.config.get("MEAL_COST", 50)),
        working_days(),
    )


def employee_service() -> EmployeeService:
    return EmployeeService(current_store())


def branch_service() -> BranchService:
    return BranchService(current_store())


def user_service() -> UserService:
    return UserService(current_store())


__all__ = [
    "window_settings",
    "window_policy",
    "now",
    "working_days",
    "menu_service",
    "confirmation_service",
    "employee_service",
    "branch_service",
    "user_service",
]
