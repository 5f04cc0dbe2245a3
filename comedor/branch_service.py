from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from .aggregation import confirmation_rate
from .documents import BRANCHES, EMPLOYEES, DocumentStore, WriteBatch
from .errors import NotFoundError, ValidationError
from .validators import clean_text
from .weekdays import strip_accents

log = logging.getLogger(__name__)

DEFAULT_BRANCHES = [
    "Centro de Operaciones",
    "Ishinoka",
    "Centenario",
    "Delicias",
    "Fuentes",
    "Matriz",
    "Corporativo",
]


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", strip_accents(name).lower()).strip("-")
    return slug or "sucursal"


@dataclass
class Branch:
    id: str
    name: str
    employee_count: int = 0
    coordinator_id: str | None = None
    active: bool = True
    created_at: str | None = None

    @classmethod
    def from_doc(cls, doc_id: str, data: dict[str, Any]) -> Branch:
        return cls(
            id=doc_id,
            name=str(data.get("name") or ""),
            employee_count=max(0, int(data.get("employeeCount") or 0)),
            coordinator_id=data.get("coordinatorId"),
            active=bool(data.get("active", True)),
            created_at=data.get("createdAt"),
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "employeeCount": self.employee_count,
            "coordinatorId": self.coordinator_id,
            "active": self.active,
            "createdAt": self.created_at,
        }

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.to_doc()}

    def validate(self) -> None:
        errors: list[dict[str, str]] = []
        if not clean_text(self.name):
            errors.append({"field": "name", "message": "El nombre de la sucursal es requerido."})
        if self.employee_count < 0:
            errors.append(
                {"field": "employeeCount", "message": "El conteo de empleados no puede ser negativo."}
            )
        if errors:
            raise ValidationError(errors[0]["message"], errors=errors)

    def increment_employee_count(self, n: int = 1) -> None:
        self.employee_count = max(0, self.employee_count + n)

    def decrement_employee_count(self, n: int = 1) -> None:
        self.employee_count = max(0, self.employee_count - n)

    def confirmation_rate(self, confirmed: int) -> int:
        return confirmation_rate(confirmed, self.employee_count)


def sort_by_name(branches: list[Branch]) -> list[Branch]:
    return sorted(branches, key=lambda b: strip_accents(b.name).lower())


def sort_by_employee_count(branches: list[Branch], descending: bool = True) -> list[Branch]:
    return sorted(branches, key=lambda b: b.employee_count, reverse=descending)


def adjust_employee_count(batch: WriteBatch, branch_id: str, delta: int) -> None:
    """Queue a clamped (never below zero) employee counter change on ``batch``."""
    if delta:
        batch.increment(BRANCHES, branch_id, "employeeCount", delta, floor=0)


class BranchService:
    def __init__(self, store: DocumentStore):
        self.store = store

    def list(self, include_inactive: bool = False) -> list[Branch]:
        docs = self.store.query(BRANCHES)
        branches = [Branch.from_doc(d.id, d.data) for d in docs]
        if not include_inactive:
            branches = [b for b in branches if b.active]
        return sort_by_name(branches)

    def get(self, branch_id: str) -> Branch | None:
        doc = self.store.get(BRANCHES, branch_id)
        return Branch.from_doc(doc.id, doc.data) if doc else None

    def require(self, branch_id: str | None) -> Branch:
        branch = self.get(branch_id) if branch_id else None
        if branch is None:
            raise NotFoundError(f"branch {branch_id} not found", user_message="La sucursal no existe.")
        return branch

    def create(self, name: str, branch_id: str | None = None, coordinator_id: str | None = None) -> Branch:
        branch = Branch(
            id=branch_id or slugify(name),
            name=clean_text(name),
            coordinator_id=coordinator_id,
            created_at=datetime.now(UTC).isoformat(),
        )
        branch.validate()
        if self.store.get(BRANCHES, branch.id) is not None:
            raise ValidationError(
                "Ya existe una sucursal con ese nombre.",
                errors=[{"field": "name", "message": "duplicate"}],
            )
        self.store.set(BRANCHES, branch.id, branch.to_doc())
        log.info("branch created id=%s", branch.id)
        return branch

    def update(self, branch_id: str, changes: dict[str, Any]) -> Branch:
        branch = self.require(branch_id)
        if "name" in changes:
            branch.name = clean_text(changes["name"])
        if "coordinator_id" in changes:
            branch.coordinator_id = changes["coordinator_id"] or None
        if "active" in changes:
            branch.active = bool(changes["active"])
        branch.validate()
        self.store.update(
            BRANCHES,
            branch_id,
            {"name": branch.name, "coordinatorId": branch.coordinator_id, "active": branch.active},
        )
        return branch

    def adjust_employee_count(self, branch_id: str, delta: int) -> None:
        self.require(branch_id)
        with self.store.batch() as batch:
            adjust_employee_count(batch, branch_id, delta)

    def recount(self, branch_id: str) -> int:
        """Rebuild the denormalized counter from the active employee documents."""
        self.require(branch_id)
        active = self.store.query(
            EMPLOYEES, where=[("branchId", "==", branch_id), ("active", "==", True)]
        )
        count = len(active)
        self.store.update(BRANCHES, branch_id, {"employeeCount": count})
        return count

    def ensure_defaults(self) -> list[Branch]:
        created = []
        for name in DEFAULT_BRANCHES:
            if self.store.get(BRANCHES, slugify(name)) is None:
                created.append(self.create(name))
        return created


__all__ = [
    "DEFAULT_BRANCHES",
    "Branch",
    "BranchService",
    "adjust_employee_count",
    "slugify",
    "sort_by_name",
    "sort_by_employee_count",
]
