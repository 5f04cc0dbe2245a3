"""Coordinator roster endpoints.

Every endpoint operates on the caller's own branch (session ``branch_id``
after revalidation); employees of other branches answer 403.
"""
from __future__ import annotations

from flask import Blueprint, jsonify, request

from .app_authz import current_identity, require_api_role
from .context import employee_service
from .downloads import csv_response, xlsx_response
from .employee_service import filter_employees, parse_active_status
from .errors import BusinessRuleError, ValidationError
from .importers.roster import csv_rows, employees_to_xlsx, parse_upload, roster_template_xlsx, rows_to_employees
from .notices import make_notice

bp = Blueprint("employee_api", __name__, url_prefix="/api/coordinator/employees")


def _branch_id() -> str:
    branch_id = current_identity()["branch_id"]
    if not branch_id:
        raise BusinessRuleError("coordinator without branch", user_message="No tienes una sucursal asignada.")
    return branch_id


@bp.get("")
@require_api_role("coordinator")
def list_employees():
    branch_id = _branch_id()
    employees = employee_service().list_for_branch(branch_id)
    employees = filter_employees(
        employees,
        active_only=request.args.get("active_only", "0") == "1",
        search=request.args.get("search"),
    )
    return jsonify({"ok": True, "branch_id": branch_id, "employees": [e.to_dict() for e in employees]})


@bp.post("")
@require_api_role("coordinator")
def create_employee():
    data = request.get_json(silent=True) or {}
    emp = employee_service().create(data, _branch_id(), created_by=current_identity()["uid"])
    return (
        jsonify({"ok": True, "employee": emp.to_dict(), "notice": make_notice("success", "Empleado agregado")}),
        201,
    )


@bp.put("/<employee_id>")
@require_api_role("coordinator")
def update_employee(employee_id: str):
    data = request.get_json(silent=True) or {}
    emp = employee_service().update(employee_id, data, branch_id=_branch_id())
    return jsonify({"ok": True, "employee": emp.to_dict(), "notice": make_notice("success", "Empleado actualizado")})


@bp.delete("/<employee_id>")
@require_api_role("coordinator")
def delete_employee(employee_id: str):
    employee_service().delete(employee_id, branch_id=_branch_id())
    return jsonify({"ok": True, "notice": make_notice("success", "Empleado eliminado")})


@bp.post("/<employee_id>/active")
@require_api_role("coordinator")
def set_employee_active(employee_id: str):
    data = request.get_json(silent=True) or {}
    if "active" not in data:
        raise ValidationError("El estado es requerido.", errors=[{"field": "active", "message": "required"}])
    emp = employee_service().set_active(employee_id, parse_active_status(data["active"]), branch_id=_branch_id())
    return jsonify({"ok": True, "employee": emp.to_dict()})


@bp.post("/import")
@require_api_role("coordinator")
def import_employees():
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        raise ValidationError("Seleccione un archivo para importar.")
    branch_id = _branch_id()
    uid = current_identity()["uid"]
    # Unreadable files raise 422 problems with the row errors attached
    sheet = parse_upload(upload.filename, upload.read())
    employees, row_errors = rows_to_employees(sheet.rows, branch_id, created_by=uid, lines=sheet.lines)
    result = employee_service().import_employees(employees, branch_id, created_by=uid, errors=list(row_errors))
    message = f"Se importaron {result.total} empleados ({result.active} activos)."
    return jsonify({"ok": True, **result.to_dict(), "notice": make_notice("success", message)})


@bp.get("/export.csv")
@require_api_role("coordinator")
def export_csv():
    employees = employee_service().list_for_branch(_branch_id())
    return csv_response("empleados", csv_rows(employees))


@bp.get("/export.xlsx")
@require_api_role("coordinator")
def export_xlsx():
    employees = employee_service().list_for_branch(_branch_id())
    return xlsx_response("empleados", employees_to_xlsx(employees))


@bp.get("/template.xlsx")
@require_api_role("coordinator")
def import_template():
    return xlsx_response("plantilla_empleados", roster_template_xlsx())
