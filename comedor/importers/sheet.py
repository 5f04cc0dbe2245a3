"""Spreadsheet grids (CSV text or XLSX bytes) to header-keyed rows.

Both formats go through one path: cells become stripped strings, the header
row is located (title rows above it are skipped), blank rows are dropped and
short rows are padded. Every row keeps the spreadsheet line it came from so
row errors point at the line the user sees in Excel.
"""
from __future__ import annotations

import csv
import zipfile
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO, StringIO
from typing import Any, Literal, TypedDict

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import ValidationError

__all__ = [
    "RawRow",
    "RowError",
    "ParsedSheet",
    "SheetImportError",
    "UnsupportedFormatError",
    "parse_csv",
    "parse_xlsx",
]

RawRow = dict[str, str]
Grid = Iterable[tuple[int, list[str]]]
HeaderTest = Callable[[Sequence[str]], bool]

# Title rows tolerated above the header
HEADER_SCAN_ROWS = 5


class RowError(TypedDict):
    row: int
    column: str | None
    code: Literal["missing_column", "empty_value", "invalid_value"]
    message: str


class SheetImportError(ValidationError):
    """The file produced no importable row; ``errors`` holds the row errors."""

    code = "import-invalid"

    def __init__(self, message: str, errors: list[RowError] | None = None):
        super().__init__(message, errors=list(errors or []))


class UnsupportedFormatError(ValidationError):
    code = "import-unsupported-format"


@dataclass(slots=True)
class ParsedSheet:
    headers: list[str]
    rows: list[RawRow] = field(default_factory=list)
    lines: list[int] = field(default_factory=list)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Sí" if value else "No"
    if isinstance(value, datetime | date):
        return value.strftime("%d/%m/%Y")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip().strip("\ufeff")


def _build(grid: Grid, is_header: HeaderTest | None) -> ParsedSheet:
    lines = [(n, cells) for n, cells in grid if any(cells)]
    if not lines:
        return ParsedSheet(headers=[])
    start = 0
    if is_header is not None:
        for i, (_, cells) in enumerate(lines[:HEADER_SCAN_ROWS]):
            if is_header(cells):
                start = i
                break
    headers = lines[start][1]
    width = len(headers)
    sheet = ParsedSheet(headers=headers)
    for line, cells in lines[start + 1 :]:
        values = cells[:width] + [""] * (width - len(cells))
        sheet.rows.append(dict(zip(headers, values, strict=True)))
        sheet.lines.append(line)
    return sheet


def _sniff_delimiter(text: str) -> str:
    # Regional Excel writes ';' separated files
    first = next((ln for ln in text.split("\n") if ln.strip()), "")
    return ";" if first.count(";") > first.count(",") else ","


def _csv_grid(text: str) -> Iterator[tuple[int, list[str]]]:
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    reader = csv.reader(StringIO(normalized), delimiter=_sniff_delimiter(normalized))
    for cells in reader:
        # line_num is the last physical line read (quoted cells may span lines)
        yield reader.line_num, [_cell(c) for c in cells]


def parse_csv(text: str, is_header: HeaderTest | None = None) -> ParsedSheet:
    return _build(_csv_grid(text), is_header)


def parse_xlsx(data: bytes, is_header: HeaderTest | None = None) -> ParsedSheet:
    """First worksheet only; formulas are read as their cached values."""
    try:
        wb = openpyxl.load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError) as exc:
        # not a zip, or a zip without the workbook parts
        raise SheetImportError("El archivo no es un libro de Excel válido.") from exc
    try:
        if not wb.sheetnames:
            return ParsedSheet(headers=[])
        ws = wb[wb.sheetnames[0]]
        grid = [(n, [_cell(c) for c in values]) for n, values in enumerate(ws.iter_rows(values_only=True), start=1)]
    finally:
        wb.close()
    return _build(grid, is_header)
