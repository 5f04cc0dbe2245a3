"""Role adapter.

CanonicalRole: the three roles used for authorization decisions
ROLE_MAP: aliases found in stored user documents and legacy sessions
"""

from __future__ import annotations

from typing import Literal

CanonicalRole = Literal["admin", "coordinator", "employee"]

CANONICAL_ROLES: tuple[CanonicalRole, ...] = ("admin", "coordinator", "employee")

ROLE_MAP: dict[str, CanonicalRole] = {
    "administrator": "admin",
    "administrador": "admin",
    "coordinador": "coordinator",
    "coordinadora": "coordinator",
    "empleado": "employee",
    "empleada": "employee",
}

LOGIN_PATH = "/"

DASHBOARDS: dict[CanonicalRole, str] = {
    "admin": "/admin/dashboard",
    "coordinator": "/coordinator/dashboard",
    "employee": "/employee/dashboard",
}

DEFAULT_PERMISSIONS: dict[CanonicalRole, list[str]] = {
    "admin": ["manage_users", "manage_menus", "manage_branches", "view_reports"],
    "coordinator": ["manage_employees", "manage_confirmations", "view_menus"],
    "employee": ["view_menus", "confirm_meals"],
}


def to_canonical(role: str | None) -> CanonicalRole | None:
    """Canonical role for ``role``; ``None`` when it is not a known role or alias."""
    if not role:
        return None
    value = str(role).strip().lower()
    if value in CANONICAL_ROLES:
        return value  # type: ignore[return-value]
    return ROLE_MAP.get(value)


def dashboard_for(role: str | None) -> str | None:
    canonical = to_canonical(role)
    return DASHBOARDS[canonical] if canonical else None


__all__ = [
    "CanonicalRole",
    "CANONICAL_ROLES",
    "ROLE_MAP",
    "LOGIN_PATH",
    "DASHBOARDS",
    "DEFAULT_PERMISSIONS",
    "to_canonical",
    "dashboard_for",
]
