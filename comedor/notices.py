"""Toast payloads returned alongside JSON responses.

The browser shows ``message`` in a non-blocking alert for ``duration_ms``.
"""
from __future__ import annotations

from typing import Literal, TypedDict

from flask import current_app, has_app_context

NoticeKind = Literal["error", "success", "info", "warning"]

DEFAULT_DURATIONS_MS: dict[str, int] = {
    "error": 5000,
    "success": 3000,
    "info": 4000,
    "warning": 4000,
}


class Notice(TypedDict):
    type: NoticeKind
    message: str
    duration_ms: int


def make_notice(kind: NoticeKind, message: str) -> Notice:
    durations = DEFAULT_DURATIONS_MS
    if has_app_context():
        durations = current_app.config.get("NOTICE_DURATIONS_MS") or DEFAULT_DURATIONS_MS
    return {
        "type": kind,
        "message": message,
        "duration_ms": int(durations.get(kind, DEFAULT_DURATIONS_MS["info"])),
    }


__all__ = ["Notice", "NoticeKind", "DEFAULT_DURATIONS_MS", "make_notice"]
