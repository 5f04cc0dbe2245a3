"""RFC7807 problem+json responses.

Every error response of the service is built here. ``status_problem`` covers
plain statuses from one table; validation, rate-limit, CSRF and internal
errors add their own fields or headers.
"""
from __future__ import annotations

import uuid

from flask import g, jsonify
from werkzeug.http import HTTP_STATUS_CODES
from werkzeug.wrappers.response import Response

PROBLEM_TYPE_BASE = "https://comedor.grupoavika.mx/errors/"

# status -> problem type slug
SLUGS: dict[int, str] = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "validation_error",
    429: "rate_limited",
    500: "internal_error",
    503: "unavailable",
}


def problem(status: int, slug: str, detail: str, **extra: object) -> Response:
    payload: dict[str, object] = {
        "type": PROBLEM_TYPE_BASE + slug,
        "title": HTTP_STATUS_CODES.get(status, "Error"),
        "status": status,
        "detail": detail,
    }
    rid = getattr(g, "request_id", None)
    if rid:
        payload["request_id"] = rid
    payload.update({k: v for k, v in extra.items() if v is not None})
    resp = jsonify(payload)
    resp.status_code = status
    resp.mimetype = "application/problem+json"
    return resp


def status_problem(status: int, detail: str | None = None, **extra: object) -> Response:
    slug = SLUGS.get(status) or ("internal_error" if status >= 500 else "error")
    if status == 500:
        extra.setdefault("incident_id", str(uuid.uuid4()))
    return problem(status, slug, detail or slug, **extra)


def internal_error(incident_id: str | None = None, **extra: object) -> Response:
    return status_problem(500, incident_id=incident_id or str(uuid.uuid4()), **extra)


def validation_problem(errors: object, detail: str = "validation_error", **extra: object) -> Response:
    return problem(422, "validation_error", detail, errors=errors, **extra)


def rate_limited(detail: str = "rate_limited", retry_after: int | None = None, **extra: object) -> Response:
    resp = problem(429, "rate_limited", detail, retry_after=retry_after, **extra)
    if retry_after is not None:
        resp.headers["Retry-After"] = str(int(retry_after))
    return resp


def csrf_missing() -> Response:
    return problem(403, "csrf_missing", "csrf_missing")


def csrf_invalid() -> Response:
    return problem(403, "csrf_invalid", "csrf_invalid")


__all__ = [
    "SLUGS",
    "problem",
    "status_problem",
    "internal_error",
    "validation_problem",
    "rate_limited",
    "csrf_missing",
    "csrf_invalid",
]
