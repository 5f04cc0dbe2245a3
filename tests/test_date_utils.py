from __future__ import annotations

from datetime import date, datetime

import pytest

from comedor.date_utils import (
    add_days,
    date_of_weekday,
    day_for_date,
    format_date,
    format_date_display,
    format_date_for_file,
    format_week_range,
    get_day_of_week,
    get_friday,
    get_monday,
    get_sunday,
    is_same_day,
    is_valid_date_string,
    parse_date,
    parse_display_date,
    week_id,
)
from comedor.weekdays import Weekday


@pytest.mark.parametrize(
    "value,monday",
    [
        (date(2026, 10, 19), date(2026, 10, 19)),
        (date(2026, 10, 23), date(2026, 10, 19)),
        # Sunday belongs to the week that started six days earlier
        (date(2026, 10, 25), date(2026, 10, 19)),
        ("2026-10-26", date(2026, 10, 26)),
        (datetime(2026, 1, 1, 23, 59), date(2025, 12, 29)),
    ],
)
def test_get_monday(value, monday):
    assert get_monday(value) == monday
    assert get_monday(value).weekday() == 0


def test_friday_and_sunday():
    assert get_friday("2026-10-21") == date(2026, 10, 23)
    assert get_sunday("2026-10-21") == date(2026, 10, 25)


def test_formatting():
    assert format_date(date(2026, 3, 5)) == "2026-03-05"
    assert format_date("2026-03-05") == "2026-03-05"
    assert format_date_display("2026-03-05") == "05/03/2026"
    assert format_date_display(date(2026, 3, 5)) == "05/03/2026"
    assert format_date_for_file("2026-03-05") == "20260305"


def test_parse_round_trip_and_errors():
    assert parse_date("2026-02-28") == date(2026, 2, 28)
    assert parse_display_date("28/02/2026") == date(2026, 2, 28)
    with pytest.raises(ValueError):
        parse_date("28/02/2026")
    with pytest.raises(ValueError):
        parse_date("2026-02-30")
    with pytest.raises(ValueError):
        parse_display_date("2026-02-28")


@pytest.mark.parametrize(
    "value,ok",
    [("2026-02-28", True), ("2024-02-29", True), ("2026-02-29", False), ("2026-2-28", False), (None, False), (20260228, False)],
)
def test_is_valid_date_string(value, ok):
    assert is_valid_date_string(value) is ok


def test_week_range():
    rng = format_week_range("2026-10-26")
    assert rng["start_iso"] == "2026-10-26"
    assert rng["end_iso"] == "2026-10-30"
    assert rng["display_text"] == "Semana del 26/10/2026 al 30/10/2026"


def test_day_helpers():
    assert get_day_of_week("2026-10-21") == "Miércoles"
    assert day_for_date("2026-10-25") is Weekday.DOMINGO
    assert date_of_weekday("2026-10-26", Weekday.VIERNES) == date(2026, 10, 30)
    assert add_days("2026-10-30", 3) == date(2026, 11, 2)
    assert is_same_day("2026-10-26", datetime(2026, 10, 26, 18, 30))
    assert week_id("2026-10-25") == "2026-10-19"
