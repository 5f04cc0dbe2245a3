from __future__ import annotations

import pytest

from comedor.branch_service import BranchService, slugify, sort_by_employee_count, sort_by_name
from comedor.employee_service import (
    Employee,
    EmployeeService,
    filter_employees,
    is_coordinator_position,
    parse_active_status,
)
from comedor.errors import PermissionDeniedError, ValidationError

from conftest import BRANCH


def _count(store, branch_id=BRANCH):
    return BranchService(store).require(branch_id).employee_count


def test_branch_count_tracks_active_employees(app, store):
    svc = EmployeeService(store)
    a = svc.create({"name": "Ana"}, BRANCH)
    svc.create({"name": "Beto", "active": "No"}, BRANCH)
    assert _count(store) == 1
    svc.set_active(a.id, False)
    assert _count(store) == 0
    svc.set_active(a.id, False)
    assert _count(store) == 0
    svc.set_active(a.id, True)
    assert _count(store) == 1
    svc.delete(a.id)
    assert _count(store) == 0


def test_count_never_negative(app, store):
    BranchService(store).adjust_employee_count(BRANCH, -3)
    assert _count(store) == 0


def test_recount_rebuilds_counter(app, store, roster):
    store.update("branches", BRANCH, {"employeeCount": 42})
    assert BranchService(store).recount(BRANCH) == 3
    assert _count(store) == 3


def test_create_validates_and_detects_coordinator(app, store):
    svc = EmployeeService(store)
    with pytest.raises(ValidationError):
        svc.create({"name": "   "}, BRANCH)
    emp = svc.create({"name": " Rosa ", "position": "Coordinadora de turno"}, BRANCH)
    assert emp.name == "Rosa"
    assert emp.role == "coordinator"


def test_other_branch_is_forbidden(app, store, roster):
    with pytest.raises(PermissionDeniedError):
        EmployeeService(store).update(roster[0].id, {"name": "X"}, branch_id="delicias")


def test_import_writes_batch_and_counts_active(app, store):
    employees = [
        Employee(id=None, name="Uno", branch_id=""),
        Employee(id=None, name="Dos", branch_id="", active=False),
        Employee(id=None, name="  ", branch_id=""),
    ]
    result = EmployeeService(store).import_employees(employees, BRANCH, created_by="coord-1")
    assert result.total == 2
    assert result.active == 1
    assert result.errors == [{"row": 4, "message": "El nombre del empleado es requerido."}]
    assert _count(store) == 1
    assert len(EmployeeService(store).list_for_branch(BRANCH)) == 2


@pytest.mark.parametrize(
    "value,expected",
    [(None, True), ("", True), ("Sí", True), ("si", True), ("No", False), ("FALSO", False), ("0", False), (False, False)],
)
def test_parse_active_status(value, expected):
    assert parse_active_status(value) is expected


def test_filter_employees_search_ignores_accents(roster):
    found = filter_employees(roster, search="lopez")
    assert [e.name for e in found] == ["Beatriz López"]
    assert len(filter_employees(roster, active_only=True)) == 3
    assert [e.name for e in filter_employees(roster, search="vegetariano")] == ["Diego Ruiz"]


def test_branch_helpers(app, store):
    assert slugify("Centro de Operaciones") == "centro-de-operaciones"
    branches = BranchService(store).list()
    assert [b.name for b in sort_by_name(branches)] == ["Delicias", "Matriz"]
    assert is_coordinator_position("Coordinador")
    assert not is_coordinator_position("Cocinero")
    created = BranchService(store).ensure_defaults()
    assert "Matriz" not in [b.name for b in created]
    assert len(BranchService(store).list()) == 7
    assert sort_by_employee_count(BranchService(store).list())[0].employee_count == 0


def test_duplicate_branch_rejected(app, store):
    with pytest.raises(ValidationError):
        BranchService(store).create("Matriz")
