"""Response hardening: security headers and the CORS allow-list.

Headers are only set when the view did not set them itself. CORS is answered
for the JSON surface (``/api/`` and ``/auth/``) and only for origins listed in
``CORS_ALLOWED_ORIGINS``; an empty list disables it. Preflight requests are
served by Flask's automatic OPTIONS handling.
"""

from __future__ import annotations

from flask import Flask, request
from werkzeug.wrappers.response import Response

CORS_PREFIXES = ("/api/", "/auth/")

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Content-Security-Policy": "default-src 'self'; object-src 'none'; base-uri 'self'; frame-ancestors 'none'",
}

HSTS = "max-age=63072000; includeSubDomains"


def allowed_origin(app: Flask) -> str | None:
    """The request's Origin when CORS applies to it, else ``None``."""
    origin = request.headers.get("Origin")
    if not origin or not request.path.startswith(CORS_PREFIXES):
        return None
    return origin if origin in (app.config.get("CORS_ALLOWED_ORIGINS") or []) else None


def _add_cors(resp: Response, origin: str) -> None:
    resp.headers["Vary"] = "Origin"
    resp.headers["Access-Control-Allow-Origin"] = origin
    resp.headers["Access-Control-Allow-Credentials"] = "true"
    if request.method == "OPTIONS":
        resp.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        resp.headers["Access-Control-Allow-Headers"] = request.headers.get(
            "Access-Control-Request-Headers", "Content-Type, X-CSRF-Token"
        )
        resp.headers["Access-Control-Max-Age"] = "600"


def init_security(app: Flask) -> Flask:
    @app.after_request
    def _harden(resp: Response) -> Response:
        for name, value in SECURITY_HEADERS.items():
            resp.headers.setdefault(name, value)
        # HSTS would pin local http:// development hosts
        if not app.config.get("TESTING") and not app.config.get("DEBUG"):
            resp.headers.setdefault("Strict-Transport-Security", HSTS)
        origin = allowed_origin(app)
        if origin:
            _add_cors(resp, origin)
        return resp

    return app


__all__ = ["init_security", "allowed_origin", "SECURITY_HEADERS"]
