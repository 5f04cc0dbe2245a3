from __future__ import annotations

from io import BytesIO

import openpyxl
import pytest

from comedor.errors import ValidationError
from comedor.importers.roster import (
    ROSTER_HEADERS,
    csv_rows,
    employees_to_xlsx,
    parse_upload,
    roster_template_xlsx,
    rows_to_employees,
    to_csv,
)
from comedor.importers.sheet import SheetImportError, UnsupportedFormatError, parse_csv, parse_xlsx


def test_csv_empty_file():
    result = parse_csv("")
    assert result.headers == []
    assert result.rows == []


def test_csv_blank_lines_bom_and_padding():
    text = "\ufeffNombre,Puesto,Activo\r\nAna,Cajera,Sí\r\n\r\n , , \r\nBeto\r\n"
    result = parse_csv(text)
    assert result.headers == ["Nombre", "Puesto", "Activo"]
    assert result.rows == [
        {"Nombre": "Ana", "Puesto": "Cajera", "Activo": "Sí"},
        {"Nombre": "Beto", "Puesto": "", "Activo": ""},
    ]


def test_csv_semicolon_delimiter_is_detected():
    rows = parse_csv("Nombre;Puesto;Activo\nAna;Cajera, turno A;No\n").rows
    assert rows == [{"Nombre": "Ana", "Puesto": "Cajera, turno A", "Activo": "No"}]


def test_rows_to_employees_maps_columns_and_reports_nameless_rows():
    rows = [
        {"nombre": "Ana", "puesto": "Cajera", "restricciones": "Sin gluten", "activo": "Sí"},
        {"nombre": "", "puesto": "Cocinero", "restricciones": "", "activo": ""},
        {"nombre": "Beto", "puesto": "", "restricciones": "", "activo": "falso"},
    ]
    employees, errors = rows_to_employees(rows, "matriz", created_by="coord-1")
    assert [(e.name, e.active, e.dietary_restrictions) for e in employees] == [
        ("Ana", True, "Sin gluten"),
        ("Beto", False, ""),
    ]
    assert errors == [{"row": 3, "column": "Nombre", "code": "empty_value", "message": "Fila sin nombre"}]


def test_rows_to_employees_requires_name_column():
    with pytest.raises(SheetImportError) as exc:
        rows_to_employees([{"Puesto": "Cajera"}], "matriz")
    assert exc.value.errors[0]["code"] == "missing_column"
    assert "Nombre" in str(exc.value)


def test_rows_to_employees_empty_file():
    with pytest.raises(SheetImportError):
        rows_to_employees([], "matriz")
    with pytest.raises(SheetImportError):
        rows_to_employees([{"Nombre": ""}], "matriz")


def test_template_xlsx_imports_back():
    rows = parse_xlsx(roster_template_xlsx()).rows
    employees, errors = rows_to_employees(rows, "matriz")
    assert errors == []
    assert [e.name for e in employees] == ["Juan Pérez", "María Gómez", "Luis Rodríguez"]
    assert [e.active for e in employees] == [True, True, False]


def test_xlsx_cell_conversion():
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.append(["Nombre", "Puesto", "Activo"])
    ws.append(["Ana", 12.0, True])
    ws.append([None, None, None])
    buf = BytesIO()
    wb.save(buf)
    assert parse_xlsx(buf.getvalue()).rows == [{"Nombre": "Ana", "Puesto": "12", "Activo": "Sí"}]


def test_parse_upload_dispatch():
    rows = parse_upload("empleados.CSV", "Nombre\nAna\n".encode("utf-8-sig")).rows
    assert rows == [{"Nombre": "Ana"}]
    with pytest.raises(UnsupportedFormatError):
        parse_upload("empleados.docx", b"")


def test_export_rows_and_csv(roster):
    rows = list(csv_rows(roster))
    assert rows[0] == list(ROSTER_HEADERS)
    assert rows[-1] == ["Hugo Vega", "Almacén", "", "No"]
    text = to_csv([["a,b", 'di"jo', None]], bom=True)
    assert text == '\ufeff"a,b","di""jo",\n'
    assert to_csv([["x", "y"]], sep=";") == "x;y\n"


def test_employees_xlsx_has_bold_header(roster):
    wb = openpyxl.load_workbook(BytesIO(employees_to_xlsx(roster)))
    ws = wb.active
    assert ws.title == "Empleados"
    assert [c.value for c in ws[1]] == list(ROSTER_HEADERS)
    assert ws["A1"].font.bold
    assert ws.max_row == 5


def test_title_rows_above_header_are_skipped():
    text = "Plantilla de empleados,,\nSucursal Matriz,,\nNombre,Puesto,Activo\nAna,Cajera,Sí\n\nBeto,,No\n"
    sheet = parse_upload("empleados.csv", text.encode("utf-8"))
    assert sheet.headers == ["Nombre", "Puesto", "Activo"]
    assert [r["Nombre"] for r in sheet.rows] == ["Ana", "Beto"]
    assert sheet.lines == [4, 6]


def test_row_errors_report_spreadsheet_lines():
    sheet = parse_csv("Nombre,Puesto\nAna,Cajera\n\n,Cocinero\n")
    _, errors = rows_to_employees(sheet.rows, "matriz", lines=sheet.lines)
    assert [e["row"] for e in errors] == [4]


def test_import_errors_are_validation_problems():
    assert issubclass(SheetImportError, ValidationError)
    assert UnsupportedFormatError("x").status == 422
