"""CSRF synchronizer token (flag gated).

Design:
- Per-session token stored in session under CSRF_TOKEN (rotated daily, and on login).
- Echoed to the browser through ``GET /auth/csrf`` and a readable cookie.
- Accepted via header X-CSRF-Token or form field csrf_token on POST/PUT/PATCH/DELETE.
- Enforced for /api/ and /auth/ (login exempt: no session exists yet).
- Failing validation returns RFC7807 problem+json using helpers in http_errors.
"""

from __future__ import annotations

import secrets
import time
from flask import g, request, session
from werkzeug.wrappers.response import Response

from .http_errors import csrf_invalid, csrf_missing

CSRF_SESSION_KEY = "CSRF_TOKEN"
CSRF_ISSUED_AT = "CSRF_TOKEN_ISSUED"
CSRF_COOKIE_NAME = "csrf_token"
TOKEN_TTL = 24 * 3600  # rotate daily
HEADER_NAME = "X-CSRF-Token"
FORM_FIELD = "csrf_token"

ENFORCED_PREFIXES = [
    "/api/",
    "/auth/",
]

EXEMPT_PATHS = {
    "/auth/login",
    "/auth/csrf",
}
SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}


def generate_token(force: bool = False) -> str:
    now = int(time.time())
    tok = session.get(CSRF_SESSION_KEY)
    issued = int(session.get(CSRF_ISSUED_AT) or 0)
    if force or not tok or (now - issued) > TOKEN_TTL:
        tok = secrets.token_hex(20)
        session[CSRF_SESSION_KEY] = tok
        session[CSRF_ISSUED_AT] = now
    return str(tok)


def _supplied() -> str | None:
    return request.headers.get(HEADER_NAME) or request.form.get(FORM_FIELD)


def _needs_check() -> bool:
    if request.method.upper() in SAFE_METHODS:
        return False
    path = request.path or "/"
    if path in EXEMPT_PATHS:
        return False
    return any(path.startswith(p) for p in ENFORCED_PREFIXES)


def validate_token() -> bool:
    if not _needs_check():
        return True
    expected = session.get(CSRF_SESSION_KEY)
    supplied = _supplied()
    if not expected or not supplied:
        return False
    return secrets.compare_digest(str(expected), str(supplied))


def _failure() -> Response:
    return csrf_invalid() if _supplied() else csrf_missing()


def before_request() -> Response | None:  # registered only when the strict flag is active
    g.csrf_token = generate_token()
    if not validate_token():
        return _failure()
    return None


__all__ = [
    "CSRF_COOKIE_NAME",
    "generate_token",
    "validate_token",
    "before_request",
]
