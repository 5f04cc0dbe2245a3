"""Logging for the comedor service.

``configure_logging`` gives the ``comedor`` logger a stream handler once per
process. Warnings and errors from any logger are also kept in a small history
(``ErrorHistoryHandler``) that administrators read through
``GET /api/admin/errors``.
"""

from __future__ import annotations

import collections
import logging
import time

from flask import g, has_request_context, request

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
ERROR_HISTORY_SIZE = 50

_history: collections.deque[dict] = collections.deque(maxlen=ERROR_HISTORY_SIZE)


def _request_fields() -> tuple[str, str]:
    if not has_request_context():
        return "-", "-"
    return getattr(g, "request_id", "-"), request.path


class ErrorHistoryHandler(logging.Handler):
    """Keeps the newest warnings in memory, tagged with the request they came from."""

    def __init__(self, level: int = logging.WARNING) -> None:
        super().__init__(level)
        self.setFormatter(logging.Formatter("%(message)s"))

    def emit(self, record: logging.LogRecord) -> None:  # type: ignore[override]
        request_id, path = _request_fields()
        _history.append(
            {
                "ts": time.time(),
                "level": record.levelname,
                "logger": record.name,
                "msg": self.format(record),
                "request_id": request_id,
                "path": path,
            }
        )


def configure_logging(level: int = logging.INFO) -> logging.Logger:
    log = logging.getLogger("comedor")
    if not log.handlers:
        stream = logging.StreamHandler()
        stream.setFormatter(logging.Formatter(LOG_FORMAT))
        log.addHandler(stream)
    log.setLevel(level)
    root = logging.getLogger()
    # Factories run once per test; attach the history handler a single time
    if not any(isinstance(h, ErrorHistoryHandler) for h in root.handlers):
        root.addHandler(ErrorHistoryHandler())
    return log


def recent_errors(limit: int | None = None) -> list[dict]:
    """Newest first."""
    entries = list(reversed(_history))
    return entries[:limit] if limit else entries


def clear_error_history() -> None:
    _history.clear()


__all__ = [
    "ERROR_HISTORY_SIZE",
    "ErrorHistoryHandler",
    "configure_logging",
    "recent_errors",
    "clear_error_history",
]
