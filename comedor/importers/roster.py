"""Employee roster <-> spreadsheet mapping.

Import accepts the four roster columns ``Nombre``, ``Puesto``,
``Restricciones Alimentarias`` and ``Activo`` (case-insensitive, with a few
lower-case / English aliases). Export writes the same four columns so that an
exported file can be edited and imported back.
"""
from __future__ import annotations

import csv
from collections.abc import Iterable, Iterator, Sequence
from io import BytesIO, StringIO
from typing import Any

import openpyxl
from openpyxl.styles import Font

from ..employee_service import Employee, parse_active_status
from .sheet import ParsedSheet, RawRow, RowError, SheetImportError, UnsupportedFormatError, parse_csv, parse_xlsx

__all__ = [
    "ROSTER_HEADERS",
    "parse_upload",
    "rows_to_employees",
    "csv_rows",
    "to_csv",
    "employees_to_xlsx",
    "roster_template_xlsx",
]

ROSTER_HEADERS: tuple[str, str, str, str] = ("Nombre", "Puesto", "Restricciones Alimentarias", "Activo")

# canonical header -> accepted spellings (compared lower-cased)
_ALIASES: dict[str, tuple[str, ...]] = {
    "Nombre": ("nombre", "name"),
    "Puesto": ("puesto", "posicion", "posición", "position"),
    "Restricciones Alimentarias": (
        "restricciones alimentarias",
        "restricciones",
        "dietary restrictions",
        "dietaryrestrictions",
    ),
    "Activo": ("activo", "active"),
}

EMPTY_FILE_MESSAGE = "El archivo está vacío o no tiene datos válidos."
_COLUMN_WIDTHS = {"A": 25, "B": 20, "C": 30, "D": 10}


def _is_roster_header(cells: Sequence[str]) -> bool:
    return any(c.strip().lower() in _ALIASES["Nombre"] for c in cells)


def parse_upload(filename: str, data: bytes) -> ParsedSheet:
    """Dispatch on the file extension; only .xlsx and .csv are accepted."""
    name = (filename or "").lower()
    if name.endswith(".xlsx"):
        return parse_xlsx(data, is_header=_is_roster_header)
    if name.endswith(".csv"):
        return parse_csv(data.decode("utf-8-sig", errors="replace"), is_header=_is_roster_header)
    raise UnsupportedFormatError("Formato no soportado. Use un archivo .xlsx o .csv")


def _resolve_columns(headers: Iterable[str]) -> dict[str, str]:
    lookup = {h.strip().lower(): h for h in headers}
    resolved: dict[str, str] = {}
    for canonical, spellings in _ALIASES.items():
        for spelling in spellings:
            if spelling in lookup:
                resolved[canonical] = lookup[spelling]
                break
    return resolved


def rows_to_employees(
    rows: Sequence[RawRow],
    branch_id: str,
    created_by: str | None = None,
    lines: Sequence[int] | None = None,
) -> tuple[list[Employee], list[RowError]]:
    """Map raw rows to ``Employee`` records.

    Rows without a name are skipped and reported. A file without any data row
    or without the ``Nombre`` column raises ``SheetImportError``.
    ``lines`` are the spreadsheet line numbers of ``rows``; without them the
    header is assumed to be line 1.
    """
    if not rows:
        raise SheetImportError(EMPTY_FILE_MESSAGE)
    columns = _resolve_columns(rows[0].keys())
    missing = [h for h in ROSTER_HEADERS if h not in columns]
    if "Nombre" in missing:
        detail: RowError = {
            "row": 1,
            "column": "Nombre",
            "code": "missing_column",
            "message": f"Faltan columnas requeridas: {', '.join(missing)}",
        }
        raise SheetImportError(detail["message"], [detail])

    line_numbers = list(lines) if lines is not None else list(range(2, len(rows) + 2))
    employees: list[Employee] = []
    errors: list[RowError] = []
    for line, row in zip(line_numbers, rows, strict=True):
        name = (row.get(columns["Nombre"]) or "").strip()
        if not name:
            errors.append({"row": line, "column": "Nombre", "code": "empty_value", "message": "Fila sin nombre"})
            continue
        active_col = columns.get("Activo")
        employees.append(
            Employee(
                id=None,
                name=name,
                branch_id=branch_id,
                position=(row.get(columns.get("Puesto", ""), "") or "").strip(),
                dietary_restrictions=(row.get(columns.get("Restricciones Alimentarias", ""), "") or "").strip(),
                active=parse_active_status(row.get(active_col) if active_col else None, default=True),
                created_by=created_by,
            )
        )
    if not employees:
        raise SheetImportError(EMPTY_FILE_MESSAGE, errors)
    return employees, errors


def _roster_row(emp: Employee) -> list[str]:
    return [emp.name, emp.position, emp.dietary_restrictions, "Sí" if emp.active else "No"]


def csv_rows(employees: Iterable[Employee]) -> Iterator[list[str]]:
    yield list(ROSTER_HEADERS)
    for emp in employees:
        yield _roster_row(emp)


def to_csv(rows: Iterable[Sequence[Any]], sep: str = ",", bom: bool = False) -> str:
    """Render rows as CSV text; embedded separators, quotes and newlines are quoted."""
    buf = StringIO()
    writer = csv.writer(buf, delimiter=sep, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    for row in rows:
        writer.writerow(["" if v is None else v for v in row])
    text = buf.getvalue()
    return "\ufeff" + text if bom else text


def _workbook(rows: Iterable[Sequence[Any]], title: str = "Empleados") -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = title
    for row in rows:
        ws.append(list(row))
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for col, width in _COLUMN_WIDTHS.items():
        ws.column_dimensions[col].width = width
    out = BytesIO()
    wb.save(out)
    return out.getvalue()


def employees_to_xlsx(employees: Iterable[Employee]) -> bytes:
    return _workbook(csv_rows(employees))


def roster_template_xlsx() -> bytes:
    """Blank import template with three sample rows."""
    return _workbook(
        [
            list(ROSTER_HEADERS),
            ["Juan Pérez", "Gerente", "Ninguna", "Sí"],
            ["María Gómez", "Supervisor", "Vegetariana", "Sí"],
            ["Luis Rodríguez", "Operador", "Alergia a lácteos", "No"],
        ]
    )
