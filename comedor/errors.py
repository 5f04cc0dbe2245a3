"""Error taxonomy + RFC7807 handler registration.

Every failure surfaced to a user is an ``AppError`` carrying an ``ErrorType``
and ``ErrorSeverity``. Provider-style error codes (``permission-denied``,
``auth/wrong-password`` ...) are translated to Spanish user messages in one
place (``translate``). Handlers render problem+json with the translated
message and a toast ``notice`` block.
"""
from __future__ import annotations

import enum
import logging
import traceback
import uuid
from typing import Any

from flask import request
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.wrappers.response import Response

from .http_errors import internal_error, rate_limited, status_problem, validation_problem
from .notices import make_notice

_log = logging.getLogger(__name__)


class ErrorType(str, enum.Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    AUTH = "auth"
    PERMISSION = "permission"
    DATABASE = "database"
    UI = "ui"
    BUSINESS = "business"
    UNKNOWN = "unknown"


class ErrorSeverity(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}

GENERIC_MESSAGE = "Ha ocurrido un error inesperado. Intente nuevamente."
LOGIN_FAILED_MESSAGE = "Error al iniciar sesión. Intente nuevamente."

FRIENDLY_MESSAGES: dict[str, str] = {
    # document store
    "permission-denied": "No tienes permisos para realizar esta operación",
    "not-found": "No se encontró el recurso solicitado",
    "invalid-argument": "Datos inválidos. Verifique la información ingresada.",
    "resource-exhausted": "Se ha excedido el límite de operaciones. Intente más tarde.",
    "failed-precondition": (
        "Se requiere una configuración adicional en la base de datos. "
        "Por favor, contacta al administrador."
    ),
    "unavailable": "El servicio no está disponible en este momento. Intente más tarde.",
    "database-error": "Error en la operación con la base de datos",
    "network-request-failed": "Error de conexión. Verifique su conexión a internet.",
    # authentication
    "unauthenticated": "Su sesión ha expirado. Inicie sesión nuevamente.",
    "auth/user-not-found": "Correo electrónico o contraseña incorrectos.",
    "auth/wrong-password": "Correo electrónico o contraseña incorrectos.",
    "auth/invalid-email": "El formato del correo electrónico no es válido.",
    "auth/user-disabled": "Este usuario ha sido deshabilitado. Contacte al administrador.",
    "auth/too-many-requests": "Demasiados intentos fallidos. Intente más tarde.",
    "auth/weak-password": "La contraseña es demasiado débil. Use al menos 6 caracteres.",
    "auth/email-already-in-use": "El correo electrónico ya está registrado.",
    # domain
    "window-closed": "El periodo de confirmación está cerrado.",
    "window-undefined": (
        "No hay un periodo de confirmación configurado para este menú. "
        "Contacte al administrador."
    ),
    "menu-incomplete": "El menú está incompleto. Agregue al menos un platillo.",
}

_TYPE_DEFAULTS: dict[ErrorType, str] = {
    ErrorType.VALIDATION: FRIENDLY_MESSAGES["invalid-argument"],
    ErrorType.NETWORK: FRIENDLY_MESSAGES["network-request-failed"],
    ErrorType.AUTH: FRIENDLY_MESSAGES["unauthenticated"],
    ErrorType.PERMISSION: FRIENDLY_MESSAGES["permission-denied"],
    ErrorType.DATABASE: FRIENDLY_MESSAGES["database-error"],
}


def translate(code: str | None, default: str | None = None) -> str:
    """Map a provider/domain error code to the Spanish message shown to users."""
    if code and code in FRIENDLY_MESSAGES:
        return FRIENDLY_MESSAGES[code]
    return default or GENERIC_MESSAGE


class AppError(Exception):
    status: int = 500
    code: str = "unknown"
    error_type: ErrorType = ErrorType.UNKNOWN
    severity: ErrorSeverity = ErrorSeverity.ERROR

    def __init__(
        self,
        detail: str | None = None,
        *,
        code: str | None = None,
        status: int | None = None,
        error_type: ErrorType | None = None,
        severity: ErrorSeverity | None = None,
        user_message: str | None = None,
        **extra: Any,
    ):
        if code:
            self.code = code
        if status:
            self.status = status
        if error_type is not None:
            self.error_type = error_type
        if severity is not None:
            self.severity = severity
        self.detail = detail or self.code
        if user_message is None:
            if self.code in FRIENDLY_MESSAGES:
                user_message = FRIENDLY_MESSAGES[self.code]
            elif detail:
                user_message = detail
            else:
                user_message = _TYPE_DEFAULTS.get(self.error_type, GENERIC_MESSAGE)
        self.user_message = user_message
        self.extra = extra
        super().__init__(self.detail)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "error_type": self.error_type.value,
            "severity": self.severity.value,
            "user_message": self.user_message,
        }


class ValidationError(AppError):
    status = 422
    code = "invalid-argument"
    error_type = ErrorType.VALIDATION
    severity = ErrorSeverity.WARNING

    def __init__(self, detail: str | None = None, errors: Any = None, **kwargs: Any):
        # A single human message doubles as the user message for form validation
        kwargs.setdefault("user_message", detail)
        super().__init__(detail or "validation_error", **kwargs)
        self.errors = errors if errors is not None else []


class AuthError(AppError):
    status = 401
    code = "unauthenticated"
    error_type = ErrorType.AUTH
    severity = ErrorSeverity.WARNING


class PermissionDeniedError(AppError):
    status = 403
    code = "permission-denied"
    error_type = ErrorType.PERMISSION
    severity = ErrorSeverity.WARNING


class NotFoundError(AppError):
    status = 404
    code = "not-found"
    error_type = ErrorType.DATABASE
    severity = ErrorSeverity.WARNING


class BusinessRuleError(AppError):
    status = 409
    code = "business-rule"
    error_type = ErrorType.BUSINESS
    severity = ErrorSeverity.WARNING


class RateLimitedError(AppError):
    status = 429
    code = "auth/too-many-requests"
    error_type = ErrorType.AUTH
    severity = ErrorSeverity.WARNING

    def __init__(self, retry_after: int, **kwargs: Any):
        super().__init__("rate_limited", retry_after=retry_after, **kwargs)
        self.retry_after = retry_after


class DatabaseError(AppError):
    status = 503
    code = "database-error"
    error_type = ErrorType.DATABASE
    severity = ErrorSeverity.ERROR


class NetworkError(AppError):
    status = 503
    code = "network-request-failed"
    error_type = ErrorType.NETWORK
    severity = ErrorSeverity.ERROR


def to_app_error(
    exc: BaseException,
    message: str | None = None,
    error_type: ErrorType | None = None,
    severity: ErrorSeverity | None = None,
) -> AppError:
    if isinstance(exc, AppError):
        return exc
    if isinstance(exc, SQLAlchemyError):
        return DatabaseError(str(exc), user_message=message, severity=severity)
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return NetworkError(str(exc), user_message=message, severity=severity)
    return AppError(
        str(exc) or exc.__class__.__name__,
        error_type=error_type,
        severity=severity,
        user_message=message or GENERIC_MESSAGE,
    )


def handle_error(
    exc: BaseException,
    message: str | None = None,
    error_type: ErrorType | None = None,
    severity: ErrorSeverity | None = None,
    *,
    logger: logging.Logger | None = None,
) -> AppError:
    """Translate ``exc`` into an ``AppError`` and log it at its severity.

    Call sites decide afterwards whether to re-raise the returned error or to
    degrade to an empty result.
    """
    err = to_app_error(exc, message, error_type, severity)
    (logger or _log).log(
        _LOG_LEVELS[err.severity],
        "[%s/%s] %s: %s",
        err.error_type.value,
        err.code,
        message or err.user_message,
        err.detail,
        exc_info=not isinstance(exc, AppError),
    )
    return err


def problem_for(err: AppError) -> Response:
    fields: dict[str, Any] = {
        **err.extra,
        **err.to_dict(),
        "notice": make_notice("error", err.user_message),
    }
    if err.status == 422:
        return validation_problem(getattr(err, "errors", []), detail=err.detail, **fields)
    if err.status == 429:
        fields.pop("retry_after", None)
        return rate_limited(detail=err.detail, retry_after=getattr(err, "retry_after", None), **fields)
    return status_problem(err.status, err.detail, **fields)


def register_error_handlers(app: Any) -> None:  # pragma: no cover - integration path
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(AppError)
    def _h_app(err: AppError) -> Response:
        app.logger.log(
            _LOG_LEVELS[err.severity],
            "AppError %s status=%s path=%s detail=%s",
            err.code,
            err.status,
            request.path,
            err.detail,
        )
        return problem_for(err)

    @app.errorhandler(HTTPException)
    def _h_http(ex: HTTPException) -> Response:
        status = ex.code or 500
        return status_problem(status, None if status >= 500 else ex.description)

    @app.errorhandler(Exception)
    def _h_exception(ex: Exception) -> Response:
        incident_id = str(uuid.uuid4())
        app.logger.error(
            "Unhandled exception incident_id=%s path=%s\n%s",
            incident_id,
            request.path,
            traceback.format_exc(),
        )
        return internal_error(
            incident_id=incident_id,
            error_type=ErrorType.UNKNOWN.value,
            severity=ErrorSeverity.CRITICAL.value,
            user_message=GENERIC_MESSAGE,
            notice=make_notice("error", GENERIC_MESSAGE),
        )


__all__ = [
    "ErrorType",
    "ErrorSeverity",
    "FRIENDLY_MESSAGES",
    "GENERIC_MESSAGE",
    "LOGIN_FAILED_MESSAGE",
    "translate",
    "AppError",
    "ValidationError",
    "AuthError",
    "PermissionDeniedError",
    "NotFoundError",
    "BusinessRuleError",
    "RateLimitedError",
    "DatabaseError",
    "NetworkError",
    "to_app_error",
    "handle_error",
    "problem_for",
    "register_error_handlers",
]
