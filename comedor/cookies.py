"""Cookies set or cleared outside the Flask session.

Only two exist: the readable CSRF cookie handed out on login and by
``GET /auth/csrf``, and leftover auth cookies expired on logout.
"""
from __future__ import annotations

from collections.abc import Iterable

from flask import Response, current_app

from .csrf import CSRF_COOKIE_NAME, TOKEN_TTL

AUTH_COOKIE_MARKERS = ("firebase", "token", "session")


def _secure() -> bool:
    # Plain http:// during local development and tests
    return not (current_app.config.get("DEBUG") or current_app.config.get("TESTING"))


def set_csrf_cookie(resp: Response, token: str) -> None:
    """Readable by page scripts, which echo it back in ``X-CSRF-Token``."""
    resp.set_cookie(
        CSRF_COOKIE_NAME,
        token,
        max_age=TOKEN_TTL,
        secure=_secure(),
        httponly=False,
        samesite="Strict",
        path="/",
    )


def expire_auth_cookies(resp: Response, cookie_names: Iterable[str]) -> list[str]:
    """Expire every cookie whose name looks auth related; returns the names expired.

    The Flask session cookie is left to the session interface, which drops it
    once the session has been cleared.
    """
    session_cookie = current_app.config.get("SESSION_COOKIE_NAME", "session")
    expired = []
    for name in cookie_names:
        if name == session_cookie:
            continue
        if any(marker in name.lower() for marker in AUTH_COOKIE_MARKERS):
            resp.delete_cookie(name, path="/")
            expired.append(name)
    return expired


__all__ = ["set_csrf_cookie", "expire_auth_cookies"]
