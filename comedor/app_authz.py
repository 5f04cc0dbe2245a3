"""Session/role gate.

Page access goes UNVERIFIED -> REDIRECT_LOGIN | REDIRECT_OWN_DASHBOARD | GRANTED.

``check_auth`` is the quick decision from the session identity alone.
``protect_route`` is the contract every endpoint uses: it runs ``check_auth``
and then always revalidates the identity against the ``users`` collection
(``validate_auth_token``) before granting. Session role strings are a hint,
never the authority.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import wraps
from typing import ParamSpec, TypeVar

from flask import redirect, session as flask_session

from .app_sessions import (
    SessionData,
    SessionError,
    clear_session,
    get_session,
    persist_login,
    require_session,
)
from .documents import current_store
from .errors import AppError, PermissionDeniedError
from .roles import LOGIN_PATH, CanonicalRole, dashboard_for, to_canonical
from .user_service import User, UserService

P = ParamSpec("P")
R = TypeVar("R")

log = logging.getLogger(__name__)


class GateState(str, enum.Enum):
    GRANTED = "granted"
    REDIRECT_LOGIN = "redirect_login"
    REDIRECT_OWN_DASHBOARD = "redirect_own_dashboard"


@dataclass(frozen=True)
class GateDecision:
    state: GateState
    redirect_to: str | None = None
    identity: SessionData | None = None

    @property
    def granted(self) -> bool:
        return self.state is GateState.GRANTED


def _login() -> GateDecision:
    return GateDecision(GateState.REDIRECT_LOGIN, LOGIN_PATH)


def check_auth(required_role: str, sess=flask_session) -> GateDecision:
    """Decide from the session identity alone (no backend round trip)."""
    identity = get_session(sess)
    if identity is None:
        return _login()
    role = to_canonical(identity["role"])
    if role is None:
        # Unknown role: treated as logged out
        clear_session(sess)
        return _login()
    if role != to_canonical(required_role):
        return GateDecision(GateState.REDIRECT_OWN_DASHBOARD, dashboard_for(role), identity)
    return GateDecision(GateState.GRANTED, None, identity)


class AuthzError(PermissionDeniedError):
    """Signals an authorization (403) failure to be caught by centralized handlers."""

    required: CanonicalRole | None

    def __init__(self, message: str = "forbidden", required: CanonicalRole | None = None):
        super().__init__(message, required_role=required)
        self.required = required


def validate_auth_token(users: UserService, sess=flask_session) -> User | None:
    """Revalidate the session identity against the stored user.

    Returns the stored user when the session uid maps to an active user whose
    role matches the session role; otherwise clears the session and returns
    ``None``. Backend failures count as invalid.
    """
    identity = get_session(sess)
    if identity is None:
        return None
    try:
        user = users.get(identity["uid"])
    except AppError as err:
        log.warning("session revalidation failed uid=%s: %s", identity["uid"], err.detail)
        clear_session(sess)
        return None
    if (
        user is None
        or not user.active
        or user.canonical_role is None
        or user.canonical_role != to_canonical(identity["role"])
    ):
        log.warning("session revalidation rejected uid=%s", identity["uid"])
        clear_session(sess)
        return None
    if identity["branch_id"] != user.branch_id or identity["name"] != user.name:
        persist_login(sess, user.uid, user.canonical_role, user.branch_id, user.name, user.email)
    return user


def protect_route(required_role: str, users: UserService, sess=flask_session) -> GateDecision:
    decision = check_auth(required_role, sess)
    if decision.state is GateState.REDIRECT_LOGIN:
        return decision
    if validate_auth_token(users, sess) is None:
        return _login()
    # Role checked again after revalidation; the session may have been refreshed
    return check_auth(required_role, sess)


def require_role(required_role: CanonicalRole) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Page decorator: denied checks become redirects."""

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        @wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[no-untyped-def]
            decision = protect_route(required_role, UserService(current_store()))
            if not decision.granted:
                return redirect(decision.redirect_to or LOGIN_PATH)
            return fn(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def require_api_role(*roles: CanonicalRole) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """JSON endpoint decorator: denied checks raise 401/403 problems."""

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        @wraps(fn)
        def wrapper(*args: P.args, **kwargs: P.kwargs):  # type: ignore[no-untyped-def]
            if get_session() is None:
                raise SessionError("authentication required")
            user = validate_auth_token(UserService(current_store()))
            if user is None:
                raise SessionError("session no longer valid")
            if user.canonical_role not in roles:
                raise AuthzError("forbidden", required=roles[0] if roles else None)
            return fn(*args, **kwargs)

        return wrapper  # type: ignore[return-value]

    return decorator


def current_identity() -> SessionData:
    """Identity of the (already revalidated) caller."""
    return require_session()


__all__ = [
    "GateState",
    "GateDecision",
    "AuthzError",
    "check_auth",
    "validate_auth_token",
    "protect_route",
    "require_role",
    "require_api_role",
    "current_identity",
]
