"""Date helpers shared by menus, confirmations and exports."""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import TypedDict

from .weekdays import Weekday

_ISO_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DISPLAY_RE = re.compile(r"^\d{2}/\d{2}/\d{4}$")

DateLike = date | datetime | str


def _as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if _ISO_RE.match(value):
        return parse_date(value)
    if _DISPLAY_RE.match(value):
        return parse_display_date(value)
    return datetime.fromisoformat(value).date()


def get_monday(d: DateLike) -> date:
    """Monday of ``d``'s ISO week (a Sunday belongs to the week that started six days earlier)."""
    day = _as_date(d)
    return day - timedelta(days=day.weekday())


def get_friday(d: DateLike) -> date:
    return get_monday(d) + timedelta(days=4)


def get_sunday(d: DateLike) -> date:
    return get_monday(d) + timedelta(days=6)


def add_days(d: DateLike, days: int) -> date:
    return _as_date(d) + timedelta(days=days)


def format_date(d: DateLike) -> str:
    if isinstance(d, str) and _ISO_RE.match(d):
        return d
    return _as_date(d).strftime("%Y-%m-%d")


def format_date_display(d: DateLike) -> str:
    if isinstance(d, str) and _ISO_RE.match(d):
        year, month, day = d.split("-")
        return f"{day}/{month}/{year}"
    return _as_date(d).strftime("%d/%m/%Y")


def format_date_for_file(d: DateLike) -> str:
    return _as_date(d).strftime("%Y%m%d")


def parse_date(s: str) -> date:
    if not is_valid_date_string(s):
        raise ValueError(f"invalid date {s!r}; expected YYYY-MM-DD")
    return date.fromisoformat(s)


def parse_display_date(s: str) -> date:
    if not isinstance(s, str) or not _DISPLAY_RE.match(s):
        raise ValueError(f"invalid date {s!r}; expected DD/MM/YYYY")
    day, month, year = (int(p) for p in s.split("/"))
    return date(year, month, day)


def is_valid_date_string(s: object) -> bool:
    if not isinstance(s, str) or not _ISO_RE.match(s):
        return False
    year, month, day = (int(p) for p in s.split("-"))
    try:
        date(year, month, day)
    except ValueError:
        return False
    return True


def get_day_of_week(d: DateLike) -> str:
    return Weekday.from_iso(_as_date(d).isoweekday()).display


def day_for_date(d: DateLike) -> Weekday:
    return Weekday.from_iso(_as_date(d).isoweekday())


class WeekRange(TypedDict):
    start_formatted: str
    end_formatted: str
    start_iso: str
    end_iso: str
    display_text: str


def format_week_range(start: DateLike) -> WeekRange:
    monday = _as_date(start)
    friday = monday + timedelta(days=4)
    return {
        "start_formatted": format_date_display(monday),
        "end_formatted": format_date_display(friday),
        "start_iso": format_date(monday),
        "end_iso": format_date(friday),
        "display_text": f"Semana del {format_date_display(monday)} al {format_date_display(friday)}",
    }


def is_same_day(a: DateLike, b: DateLike) -> bool:
    return _as_date(a) == _as_date(b)


def week_id(d: DateLike) -> str:
    return format_date(get_monday(d))


def date_of_weekday(monday: DateLike, day: Weekday) -> date:
    return _as_date(monday) + timedelta(days=day.iso - 1)


__all__ = [
    "get_monday",
    "get_friday",
    "get_sunday",
    "add_days",
    "format_date",
    "format_date_display",
    "format_date_for_file",
    "parse_date",
    "parse_display_date",
    "is_valid_date_string",
    "get_day_of_week",
    "day_for_date",
    "format_week_range",
    "is_same_day",
    "week_id",
    "date_of_weekday",
    "WeekRange",
]
