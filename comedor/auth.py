from __future__ import annotations

import logging
import time
from datetime import UTC

from flask import Blueprint, current_app, jsonify, make_response, redirect, request, session

from .app_authz import require_api_role
from .app_sessions import clear_session, get_session, persist_login, require_session
from .context import now
from .cookies import expire_auth_cookies, set_csrf_cookie
from .csrf import generate_token
from .documents import USERS, current_store
from .errors import (
    LOGIN_FAILED_MESSAGE,
    AppError,
    AuthError,
    RateLimitedError,
    ValidationError,
    handle_error,
)
from .notices import make_notice
from .roles import LOGIN_PATH, dashboard_for
from .user_service import UserService

bp = Blueprint("auth", __name__, url_prefix="/auth")

log = logging.getLogger(__name__)

# In-memory rate limit store: key -> {failures:int, first:ts, lock_until:ts?}
_RATE_LIMIT_STORE: dict[str, dict[str, float | int]] = {}

_CREDENTIAL_FAILURES = {"auth/user-not-found", "auth/wrong-password"}


def _rate_limit_record(email: str) -> tuple[str, dict[str, float | int], dict[str, int]]:
    rl_cfg = current_app.config.get(
        "AUTH_RATE_LIMIT", {"window_sec": 300, "max_failures": 5, "lock_sec": 600}
    )
    ts = time.time()
    key = f"{email}:{request.remote_addr or 'na'}"
    rec = _RATE_LIMIT_STORE.get(key)
    if rec:
        lock_until = rec.get("lock_until")
        if lock_until and lock_until > ts:
            raise RateLimitedError(int(lock_until - ts) or 1)
        # slide window
        if ts - rec["first"] > rl_cfg.get("window_sec", 300):
            rec["first"] = ts
            rec["failures"] = 0
            rec.pop("lock_until", None)
    else:
        rec = {"failures": 0, "first": ts}
        _RATE_LIMIT_STORE[key] = rec
    return key, rec, rl_cfg


@bp.post("/login")
def login():
    data = request.get_json(silent=True) or request.form or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        raise ValidationError("Por favor, complete todos los campos.")
    key, rec, rl_cfg = _rate_limit_record(email)
    users = UserService(current_store())
    try:
        user = users.verify_credentials(email, password)
    except AuthError as err:
        if err.code in _CREDENTIAL_FAILURES:
            rec["failures"] = int(rec["failures"]) + 1
            if rec["failures"] >= rl_cfg.get("max_failures", 5):
                lock_sec = int(rl_cfg.get("lock_sec", 600))
                rec["lock_until"] = time.time() + lock_sec
                log.warning("login locked email=%s", email)
                raise RateLimitedError(lock_sec) from err
        raise
    except AppError as err:
        raise AuthError(err.detail, code="auth/login-failed", user_message=LOGIN_FAILED_MESSAGE) from err
    _RATE_LIMIT_STORE.pop(key, None)
    role = user.canonical_role
    if role is None:
        raise AuthError("invalid role", code="auth/invalid-role", user_message="Error: Rol de usuario no válido.")
    clear_session()
    persist_login(session, user.uid, role, user.branch_id, user.name, user.email)
    token = generate_token(force=True)
    try:
        users.record_login(user.uid)
    except AppError as err:
        handle_error(err, "No se pudo registrar el último acceso")
    resp = make_response(
        jsonify(
            {
                "ok": True,
                "role": role,
                "redirect": dashboard_for(role),
                "user": user.to_dict(),
                "csrf_token": token,
                "notice": make_notice("success", f"Bienvenido, {user.name}"),
            }
        )
    )
    set_csrf_cookie(resp, token)
    return resp


def _sign_out() -> None:
    identity = get_session()
    if identity is not None:
        current_store().update(USERS, identity["uid"], {"lastLogout": now().astimezone(UTC).isoformat()})


def _logout_response(resp):
    expired = expire_auth_cookies(resp, list(request.cookies.keys()))
    if expired:
        log.info("logout expired cookies %s", expired)
    return resp


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    # The session is always cleared and the client always sent back to login,
    # even if recording the sign-out fails.
    try:
        _sign_out()
    except Exception as exc:  # noqa: BLE001
        handle_error(exc, "Error al cerrar sesión")
    finally:
        clear_session()
    if request.method == "GET":
        return _logout_response(redirect(LOGIN_PATH))
    return _logout_response(make_response(jsonify({"ok": True, "redirect": LOGIN_PATH})))


@bp.get("/me")
@require_api_role("admin", "coordinator", "employee")
def me():
    identity = require_session()
    return jsonify({"ok": True, **identity, "redirect": dashboard_for(identity["role"])})


@bp.get("/csrf")
def csrf_token():
    token = generate_token()
    resp = make_response(jsonify({"csrf_token": token}))
    set_csrf_cookie(resp, token)
    return resp


@bp.post("/password-reset")
@require_api_role("admin")
def password_reset():
    data = request.get_json(silent=True) or {}
    uid = (data.get("uid") or "").strip()
    password = data.get("password") or ""
    if not uid or not password:
        raise ValidationError("Datos incompletos")
    UserService(current_store()).reset_password(uid, password)
    return jsonify({"ok": True, "notice": make_notice("success", "Contraseña restablecida exitosamente")})


__all__ = ["bp"]
