from __future__ import annotations

from typing import Any

from flask import Blueprint, current_app

from .documents import BRANCHES, current_store
from .errors import DatabaseError

bp = Blueprint("health_api", __name__)


@bp.get("/healthz")
def healthz() -> tuple[dict[str, Any], int]:
    # Minimal health endpoint for container orchestrators
    return {"status": "ok"}, 200


@bp.get("/readyz")
def readyz() -> tuple[dict[str, Any], int]:
    try:
        current_store().query(BRANCHES, limit=1)
    except DatabaseError as err:
        current_app.logger.warning("readiness check failed: %s", err.detail)
        return {"status": "unavailable", "backend": current_app.config.get("DOCUMENT_BACKEND")}, 503
    return {"status": "ok", "backend": current_app.config.get("DOCUMENT_BACKEND")}, 200
