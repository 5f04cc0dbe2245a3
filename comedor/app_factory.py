"""Flask application factory.

Provides:
 - App factory with configuration override
 - Document store wiring (SQL backend or in-memory development backend)
 - Confirmation window settings and policy (strict or development bypass)
 - RFC7807 error handlers and the recent-error ring buffer
 - Request id / timing middleware, security headers, optional strict CSRF
 - Blueprint registration (auth, admin, coordinator, dashboards, pages, health)
"""

from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Any

from dotenv import load_dotenv
from flask import Flask, g, request
from werkzeug.wrappers.response import Response

from .auth import bp as auth_bp
from .branch_api import bp as branch_api_bp
from .config import Config
from .confirmation_api import bp as confirmation_api_bp
from .confirmation_window import WindowSettings, window_policy
from .dashboard_api import bp as dashboard_api_bp
from .db import create_all, init_engine
from .documents import DocumentStore
from .employee_api import bp as employee_api_bp
from .errors import AppError, register_error_handlers
from .health_api import bp as health_bp
from .logging_setup import configure_logging
from .memory_store import MemoryDocumentStore
from .menu_api import bp as menu_api_bp
from .pages import bp as pages_bp
from .security import init_security
from .sql_store import SqlDocumentStore
from .user_service import UserService
from .users_api import bp as users_api_bp


def _build_store(app: Flask, cfg: Config) -> DocumentStore:
    if cfg.document_backend == "memory":
        app.logger.info("Document backend: memory")
        return MemoryDocumentStore()
    # Tests build one app per case; each gets a fresh engine
    init_engine(cfg.database_url, force=bool(app.config.get("TESTING")))
    if cfg.database_url.startswith("sqlite") or os.getenv("DEV_CREATE_ALL", "0") == "1":
        create_all()
    app.logger.info("Document backend: sql (%s)", cfg.database_url.split("@")[-1])
    return SqlDocumentStore()


def ensure_bootstrap_admin(store: DocumentStore, log: logging.Logger) -> None:
    """Create the first administrator when ``BOOTSTRAP_ADMIN_EMAIL``/``_PASSWORD`` are set.

    Existing accounts are left untouched.
    """
    email = os.getenv("BOOTSTRAP_ADMIN_EMAIL")
    password = os.getenv("BOOTSTRAP_ADMIN_PASSWORD")
    if not email or not password:
        return
    users = UserService(store)
    if users.find_by_email(email) is not None:
        return
    try:
        users.create(os.getenv("BOOTSTRAP_ADMIN_NAME", "Administrador"), email, password, "admin")
    except AppError as exc:
        log.warning("Bootstrap admin not created: %s", exc.detail)


def create_app(config_override: dict[str, Any] | None = None) -> Flask:
    load_dotenv()
    app = Flask(__name__)
    # --- Configuration ---
    cfg = Config.from_env()
    if config_override:
        known = {k: v for k, v in config_override.items() if hasattr(cfg, k)}
        if known:
            cfg.override(known)
        for k, v in config_override.items():  # also allow direct Flask config keys
            if k.isupper():
                app.config[k] = v
    app.config.update(cfg.to_flask_dict())

    # --- Logging ---
    log = configure_logging(logging.DEBUG if app.debug else logging.INFO)

    # --- Document store + confirmation window ---
    store = _build_store(app, cfg)
    app.extensions["document_store"] = store
    app.extensions["window_settings"] = WindowSettings.from_config(app.config)
    app.extensions["window_policy"] = window_policy(bool(app.config["DEV_BYPASS_DATE_VALIDATION"]))
    if app.config["DEV_BYPASS_DATE_VALIDATION"]:
        app.logger.warning("Confirmation window validation is bypassed (development mode)")
    ensure_bootstrap_admin(store, log)

    # --- Error handlers ---
    register_error_handlers(app)

    # --- Security middleware (CORS, headers) ---
    init_security(app)

    # --- Request id / timing middleware ---
    @app.before_request
    def _before_req() -> Response | None:
        g._t0 = time.perf_counter()
        g.request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        if app.config.get("COMEDOR_STRICT_CSRF"):
            from .csrf import before_request as _csrf_before

            return _csrf_before()
        return None

    @app.after_request
    def _after_req(resp: Response) -> Response:
        dur_ms = int((time.perf_counter() - getattr(g, "_t0", time.perf_counter())) * 1000)
        rid = getattr(g, "request_id", str(uuid.uuid4()))
        resp.headers["X-Request-Id"] = rid
        resp.headers["X-Request-Duration-ms"] = str(dur_ms)
        if "Cache-Control" not in resp.headers:
            resp.headers["Cache-Control"] = "no-store"
        log.info(
            {
                "request_id": rid,
                "method": request.method,
                "path": request.path,
                "status": resp.status_code,
                "duration_ms": dur_ms,
            }
        )
        return resp

    # --- Blueprints ---
    app.register_blueprint(auth_bp)
    app.register_blueprint(branch_api_bp)
    app.register_blueprint(users_api_bp)
    app.register_blueprint(employee_api_bp)
    app.register_blueprint(menu_api_bp)
    app.register_blueprint(confirmation_api_bp)
    app.register_blueprint(dashboard_api_bp)
    app.register_blueprint(health_bp)
    app.register_blueprint(pages_bp)

    return app


__all__ = ["create_app", "ensure_bootstrap_admin"]
