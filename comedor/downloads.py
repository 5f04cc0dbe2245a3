"""File download responses (CSV streamed row by row, XLSX in one piece)."""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any

from flask import Response, request, stream_with_context

from .importers.roster import to_csv

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _stamp() -> str:
    return datetime.now(UTC).strftime("%Y%m%d_%H%M")


def csv_response(name: str, rows_iterable: Iterable[Sequence[Any]]) -> Response:
    sep = request.args.get("sep") or ","  # allow ?sep=; for regional Excel
    add_bom = request.args.get("bom", "0") == "1"

    def generate():
        first = True
        for row in rows_iterable:
            yield to_csv([row], sep=sep, bom=first and add_bom)
            first = False

    return Response(
        stream_with_context(generate()),
        mimetype="text/csv; charset=utf-8",
        headers={
            "Cache-Control": "no-store",
            "Content-Disposition": f'attachment; filename="{name}_{_stamp()}.csv"',
        },
    )


def xlsx_response(name: str, payload: bytes) -> Response:
    return Response(
        payload,
        mimetype=XLSX_MIMETYPE,
        headers={
            "Cache-Control": "no-store",
            "Content-Disposition": f'attachment; filename="{name}_{_stamp()}.xlsx"',
        },
    )


__all__ = ["csv_response", "xlsx_response", "XLSX_MIMETYPE"]
