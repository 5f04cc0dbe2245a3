"""Session identity helpers.

The signed Flask session carries the identity strings a browser session keeps
(uid, role, branch, name, email). They are a hint only: every access decision
revalidates them against the ``users`` collection (see ``app_authz``).
"""
from __future__ import annotations

from typing import TypedDict

from flask import session as flask_session

from .errors import AuthError

IDENTITY_KEYS = ("uid", "role", "branch_id", "name", "email")


class SessionData(TypedDict):
    uid: str
    role: str
    branch_id: str | None
    name: str
    email: str


def persist_login(sess, uid: str, role: str, branch_id: str | None, name: str, email: str) -> None:
    """Persist minimal identity state for the browser session."""
    sess["uid"] = str(uid)
    sess["role"] = role
    sess["branch_id"] = branch_id
    sess["name"] = name
    sess["email"] = email


def get_session(sess=flask_session) -> SessionData | None:
    if not sess.get("uid") or not sess.get("role"):
        return None
    data: SessionData = {
        "uid": str(sess["uid"]),
        "role": str(sess["role"]),
        "branch_id": sess.get("branch_id"),
        "name": str(sess.get("name") or ""),
        "email": str(sess.get("email") or ""),
    }
    return data


def require_session(sess=flask_session) -> SessionData:
    data = get_session(sess)
    if data is None:
        raise SessionError("authentication required")
    return data


def clear_session(sess=flask_session) -> None:
    """Drop every session key (identity, CSRF token, developer settings)."""
    sess.clear()


class SessionError(AuthError):
    """Signals a 401 unauthorized due to missing/invalid session."""

    def __init__(self, message: str = "authentication required"):
        super().__init__(message)


__all__ = [
    "IDENTITY_KEYS",
    "SessionData",
    "persist_login",
    "get_session",
    "require_session",
    "clear_session",
    "SessionError",
]
