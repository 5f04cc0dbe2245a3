"""Form field validation shared by user, employee and branch services."""
from __future__ import annotations

import re

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# At least 8 characters with an upper-case letter, a lower-case letter and a digit
PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{8,}$")

PASSWORD_RULES_MESSAGE = (
    "La contraseña debe tener al menos 8 caracteres, una mayúscula, una minúscula y un número"
)


def is_valid_email(value: object) -> bool:
    return isinstance(value, str) and bool(EMAIL_RE.match(value.strip()))


def is_strong_password(value: object) -> bool:
    return isinstance(value, str) and bool(PASSWORD_RE.match(value))


def clean_text(value: object) -> str:
    return str(value).strip() if value is not None else ""


__all__ = ["EMAIL_RE", "PASSWORD_RE", "PASSWORD_RULES_MESSAGE", "is_valid_email", "is_strong_password", "clean_text"]
