"""Employee roster management.

Each branch keeps a denormalized ``employeeCount`` of its active employees.
Every mutation that changes the active set adjusts that counter in the same
atomic write as the employee document, clamped at zero.
"""
from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from .branch_service import BranchService, adjust_employee_count
from .documents import EMPLOYEES, DocumentStore
from .errors import NotFoundError, PermissionDeniedError, ValidationError
from .validators import clean_text
from .weekdays import strip_accents

log = logging.getLogger(__name__)

_INACTIVE_VALUES = {"no", "false", "falso", "0", "n", "inactivo", "inactive"}
_COORDINATOR_MARKERS = ("coordinador", "coordinator")


def parse_active_status(value: Any, default: bool = True) -> bool:
    """Spreadsheet ``Activo`` column to bool; blank keeps ``default``."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if not text:
        return default
    return text not in _INACTIVE_VALUES


def is_coordinator_position(position: str | None) -> bool:
    text = strip_accents(position or "").lower()
    return any(marker in text for marker in _COORDINATOR_MARKERS)


@dataclass
class Employee:
    id: str | None
    name: str
    branch_id: str
    position: str = ""
    dietary_restrictions: str = ""
    active: bool = True
    role: str | None = None
    created_by: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_doc(cls, doc_id: str, data: dict[str, Any]) -> Employee:
        return cls(
            id=doc_id,
            name=str(data.get("name") or ""),
            branch_id=str(data.get("branchId") or data.get("departmentId") or ""),
            position=str(data.get("position") or ""),
            dietary_restrictions=str(data.get("dietaryRestrictions") or ""),
            active=bool(data.get("active", True)),
            role=data.get("role"),
            created_by=data.get("createdBy"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )

    def to_doc(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "branchId": self.branch_id,
            "position": self.position,
            "dietaryRestrictions": self.dietary_restrictions,
            "active": self.active,
            "role": self.role,
            "createdBy": self.created_by,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.to_doc()}

    def normalize(self) -> Employee:
        self.name = clean_text(self.name)
        self.branch_id = clean_text(self.branch_id)
        self.position = clean_text(self.position)
        self.dietary_restrictions = clean_text(self.dietary_restrictions)
        return self

    def validate(self) -> None:
        errors: list[dict[str, str]] = []
        if not clean_text(self.name):
            errors.append({"field": "name", "message": "El nombre del empleado es requerido."})
        if not clean_text(self.branch_id):
            errors.append({"field": "branch_id", "message": "La sucursal es requerida."})
        if errors:
            raise ValidationError(errors[0]["message"], errors=errors)


def filter_employees(
    employees: Iterable[Employee],
    active_only: bool = False,
    search: str | None = None,
    branch_id: str | None = None,
) -> list[Employee]:
    term = strip_accents(search or "").strip().lower()
    out = []
    for emp in employees:
        if active_only and not emp.active:
            continue
        if branch_id and emp.branch_id != branch_id:
            continue
        if term:
            haystack = strip_accents(
                " ".join([emp.name, emp.position, emp.dietary_restrictions])
            ).lower()
            if term not in haystack:
                continue
        out.append(emp)
    return out


def group_by_branch(employees: Iterable[Employee]) -> dict[str, list[Employee]]:
    groups: dict[str, list[Employee]] = defaultdict(list)
    for emp in employees:
        groups[emp.branch_id].append(emp)
    return dict(groups)


@dataclass
class ImportResult:
    total: int
    active: int
    errors: list[dict[str, Any]]
    ids: list[str]

    @property
    def success(self) -> bool:
        return self.total > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "total": self.total,
            "active": self.active,
            "errors": self.errors,
            "ids": self.ids,
        }


class EmployeeService:
    def __init__(self, store: DocumentStore):
        self.store = store
        self.branches = BranchService(store)

    def get(self, employee_id: str) -> Employee | None:
        doc = self.store.get(EMPLOYEES, employee_id)
        return Employee.from_doc(doc.id, doc.data) if doc else None

    def require(self, employee_id: str, branch_id: str | None = None) -> Employee:
        emp = self.get(employee_id)
        if emp is None:
            raise NotFoundError(f"employee {employee_id} not found", user_message="El empleado no existe.")
        if branch_id is not None and emp.branch_id != branch_id:
            raise PermissionDeniedError("employee belongs to another branch")
        return emp

    def list_for_branch(self, branch_id: str, active_only: bool = False) -> list[Employee]:
        where = [("branchId", "==", branch_id)]
        if active_only:
            where.append(("active", "==", True))
        docs = self.store.query(EMPLOYEES, where=where, order_by="name")
        return [Employee.from_doc(d.id, d.data) for d in docs]

    def create(self, data: dict[str, Any], branch_id: str, created_by: str | None = None) -> Employee:
        now = datetime.now(UTC).isoformat()
        emp = Employee(
            id=None,
            name=data.get("name") or "",
            branch_id=branch_id,
            position=data.get("position") or "",
            dietary_restrictions=data.get("dietary_restrictions") or data.get("dietaryRestrictions") or "",
            active=parse_active_status(data.get("active"), default=True),
            created_by=created_by,
            created_at=now,
            updated_at=now,
        ).normalize()
        emp.validate()
        self.branches.require(branch_id)
        if is_coordinator_position(emp.position):
            emp.role = "coordinator"
        emp.id = _new_id()
        with self.store.batch() as batch:
            batch.set(EMPLOYEES, emp.id, emp.to_doc())
            if emp.active:
                adjust_employee_count(batch, branch_id, +1)
        log.info("employee created id=%s branch=%s active=%s", emp.id, branch_id, emp.active)
        return emp

    def update(self, employee_id: str, changes: dict[str, Any], branch_id: str | None = None) -> Employee:
        emp = self.require(employee_id, branch_id)
        was_active = emp.active
        if "name" in changes:
            emp.name = changes["name"] or ""
        if "position" in changes:
            emp.position = changes["position"] or ""
            emp.role = "coordinator" if is_coordinator_position(emp.position) else emp.role
        for key in ("dietary_restrictions", "dietaryRestrictions"):
            if key in changes:
                emp.dietary_restrictions = changes[key] or ""
        if "active" in changes:
            emp.active = parse_active_status(changes["active"], default=was_active)
        emp.normalize().validate()
        emp.updated_at = datetime.now(UTC).isoformat()
        with self.store.batch() as batch:
            batch.set(EMPLOYEES, employee_id, emp.to_doc())
            if was_active != emp.active:
                adjust_employee_count(batch, emp.branch_id, +1 if emp.active else -1)
        return emp

    def set_active(self, employee_id: str, active: bool, branch_id: str | None = None) -> Employee:
        return self.update(employee_id, {"active": bool(active)}, branch_id)

    def delete(self, employee_id: str, branch_id: str | None = None) -> None:
        emp = self.require(employee_id, branch_id)
        with self.store.batch() as batch:
            batch.delete(EMPLOYEES, employee_id)
            if emp.active:
                adjust_employee_count(batch, emp.branch_id, -1)
        log.info("employee deleted id=%s branch=%s", employee_id, emp.branch_id)

    def import_employees(
        self,
        employees: list[Employee],
        branch_id: str,
        created_by: str | None = None,
        errors: list[dict[str, Any]] | None = None,
    ) -> ImportResult:
        """Write parsed roster rows in one batch; invalid rows are reported, not written."""
        self.branches.require(branch_id)
        errors = list(errors or [])
        now = datetime.now(UTC).isoformat()
        valid: list[Employee] = []
        for idx, emp in enumerate(employees):
            emp.branch_id = branch_id
            emp.created_by = created_by
            emp.created_at = emp.updated_at = now
            emp.normalize()
            try:
                emp.validate()
            except ValidationError as err:
                errors.append({"row": idx + 2, "message": err.detail})
                continue
            if is_coordinator_position(emp.position):
                emp.role = "coordinator"
            valid.append(emp)
        active_count = sum(1 for e in valid if e.active)
        ids = []
        with self.store.batch() as batch:
            for emp in valid:
                emp.id = emp.id or _new_id()
                batch.set(EMPLOYEES, emp.id, emp.to_doc())
                ids.append(emp.id)
            adjust_employee_count(batch, branch_id, active_count)
        log.info("employee import branch=%s total=%d active=%d errors=%d", branch_id, len(valid), active_count, len(errors))
        return ImportResult(total=len(valid), active=active_count, errors=errors, ids=ids)


def _new_id() -> str:
    return uuid.uuid4().hex[:20]


__all__ = [
    "Employee",
    "EmployeeService",
    "ImportResult",
    "filter_employees",
    "group_by_branch",
    "is_coordinator_position",
    "parse_active_status",
]
