"""Weekday model and menu/day normalization.

Day names arrive with unpredictable casing and accents ("Miércoles",
"miercoles", "MIÉRCOLES"). They are normalized once at the boundary to the
canonical key (unaccented lowercase Spanish: ``lunes`` .. ``domingo``) and
represented internally by ``Weekday``.
"""
from __future__ import annotations

import enum
import unicodedata
from collections.abc import Mapping
from typing import Any


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_day_key(name: str) -> str:
    return strip_accents(str(name)).strip().lower()


class Weekday(enum.Enum):
    LUNES = ("lunes", "Lunes", "monday")
    MARTES = ("martes", "Martes", "tuesday")
    MIERCOLES = ("miercoles", "Miércoles", "wednesday")
    JUEVES = ("jueves", "Jueves", "thursday")
    VIERNES = ("viernes", "Viernes", "friday")
    SABADO = ("sabado", "Sábado", "saturday")
    DOMINGO = ("domingo", "Domingo", "sunday")

    def __init__(self, key: str, display: str, english: str):
        self.key = key
        self.display = display
        self.english = english

    @property
    def iso(self) -> int:
        return list(Weekday).index(self) + 1

    @classmethod
    def from_key(cls, name: str) -> Weekday | None:
        """Resolve a Spanish day name in any casing/accenting; ``None`` if unknown."""
        return _BY_KEY.get(normalize_day_key(name))

    @classmethod
    def parse(cls, name: str) -> Weekday | None:
        """Like ``from_key`` but also accepts the English names used by admin exports."""
        key = normalize_day_key(name)
        return _BY_KEY.get(key) or _BY_ENGLISH.get(key)

    @classmethod
    def from_iso(cls, iso_weekday: int) -> Weekday:
        return list(cls)[iso_weekday - 1]


_BY_KEY: dict[str, Weekday] = {d.key: d for d in Weekday}
_BY_ENGLISH: dict[str, Weekday] = {d.english: d for d in Weekday}

DAY_KEYS: tuple[str, ...] = tuple(d.key for d in Weekday)


def confirmable_days(working_days_per_week: int = 5) -> tuple[Weekday, ...]:
    if working_days_per_week not in (5, 7):
        raise ValueError("working_days_per_week must be 5 or 7")
    return tuple(Weekday)[:working_days_per_week]


def are_days_equal(a: str, b: str) -> bool:
    return normalize_day_key(a) == normalize_day_key(b)


def format_day_name(key: str) -> str:
    """Display form of a day key; unknown keys come back unchanged."""
    day = Weekday.from_key(key)
    return day.display if day is not None else key


def _items_of(value: Any) -> list:
    if isinstance(value, Mapping):
        items = value.get("items")
        return list(items) if isinstance(items, list) else []
    if isinstance(value, list):
        return list(value)
    return []


def normalize_menu_days(data: Mapping[str, Any] | None) -> dict[str, dict[str, Any]]:
    """Canonical per-day structure: every day key present with at least ``{"items": []}``.

    When the same canonical day appears under several source keys the first
    non-empty ``items`` list wins. Unknown keys are dropped. Never raises.
    """
    out: dict[str, dict[str, Any]] = {}
    if isinstance(data, Mapping):
        for raw_key, value in data.items():
            day = Weekday.from_key(str(raw_key))
            if day is None:
                continue
            items = _items_of(value)
            slot = out.get(day.key)
            if slot is None:
                extra = dict(value) if isinstance(value, Mapping) else {}
                extra["items"] = items
                out[day.key] = extra
            elif not slot["items"] and items:
                slot["items"] = items
    for key in DAY_KEYS:
        out.setdefault(key, {"items": []})
    return {key: out[key] for key in DAY_KEYS}


__all__ = [
    "Weekday",
    "DAY_KEYS",
    "strip_accents",
    "normalize_day_key",
    "confirmable_days",
    "are_days_equal",
    "format_day_name",
    "normalize_menu_days",
]
