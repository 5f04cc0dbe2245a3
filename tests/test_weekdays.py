from __future__ import annotations

import pytest

from comedor.weekdays import (
    DAY_KEYS,
    Weekday,
    are_days_equal,
    confirmable_days,
    format_day_name,
    normalize_day_key,
    normalize_menu_days,
    strip_accents,
)


def test_strip_accents_and_normalize_key():
    assert strip_accents("Miércoles Sábado") == "Miercoles Sabado"
    assert normalize_day_key("  MIÉRCOLES ") == "miercoles"


@pytest.mark.parametrize("raw", ["miercoles", "Miércoles", "MIÉRCOLES", " miércoles "])
def test_spanish_variants_resolve_to_same_day(raw):
    assert Weekday.from_key(raw) is Weekday.MIERCOLES


def test_english_names_only_through_parse():
    assert Weekday.from_key("wednesday") is None
    assert Weekday.parse("Wednesday") is Weekday.MIERCOLES
    assert Weekday.parse("domingo") is Weekday.DOMINGO
    assert Weekday.parse("funday") is None


def test_weekday_attributes():
    assert Weekday.SABADO.display == "Sábado"
    assert Weekday.LUNES.iso == 1
    assert Weekday.DOMINGO.iso == 7
    assert Weekday.from_iso(3) is Weekday.MIERCOLES


def test_are_days_equal_and_format():
    assert are_days_equal("Miércoles", "miercoles")
    assert not are_days_equal("lunes", "martes")
    assert format_day_name("miercoles") == "Miércoles"
    assert format_day_name("holiday") == "holiday"


def test_confirmable_days():
    assert [d.key for d in confirmable_days(5)] == ["lunes", "martes", "miercoles", "jueves", "viernes"]
    assert len(confirmable_days(7)) == 7
    with pytest.raises(ValueError):
        confirmable_days(6)


@pytest.mark.parametrize("data", [None, {}, "garbage", 42])
def test_normalize_menu_days_empty_input(data):
    days = normalize_menu_days(data)
    assert list(days) == list(DAY_KEYS)
    assert all(v == {"items": []} for v in days.values())


def test_normalize_menu_days_merges_variants_first_non_empty_wins():
    days = normalize_menu_days(
        {
            "Miércoles": {"items": []},
            "miercoles": {"items": [{"name": "Tacos"}]},
            "MIÉRCOLES": {"items": [{"name": "Sopa"}]},
            "lunes": {"items": [{"name": "Mole"}], "note": "sin picante"},
            "holiday": {"items": [{"name": "Pastel"}]},
        }
    )
    assert days["miercoles"]["items"] == [{"name": "Tacos"}]
    assert days["lunes"] == {"items": [{"name": "Mole"}], "note": "sin picante"}
    assert "holiday" not in days
    assert days["domingo"] == {"items": []}


def test_normalize_menu_days_is_idempotent():
    once = normalize_menu_days({"Martes": {"items": ["Pollo"]}, "viernes": ["Pozole"]})
    assert normalize_menu_days(once) == once
    assert once["viernes"]["items"] == ["Pozole"]
