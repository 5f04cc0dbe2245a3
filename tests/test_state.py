from __future__ import annotations

from comedor.state import StateStore


def test_set_notifies_with_new_and_old_values():
    state: StateStore[str] = StateStore({"count": 1})
    seen = []
    state.subscribe("count", lambda new, old: seen.append((new, old)))
    assert state.set("count", 2) is True
    assert seen == [(2, 1)]


def test_equal_primitive_does_not_notify():
    state: StateStore[str] = StateStore()
    seen = []
    state.subscribe("name", lambda new, old: seen.append(new))
    state.set("name", "Ana")
    assert state.set("name", "Ana") is False
    assert seen == ["Ana"]


def test_new_container_with_equal_content_notifies():
    state: StateStore[str] = StateStore({"items": [1]})
    seen = []
    state.subscribe("items", lambda new, old: seen.append(new))
    state.set("items", [1])
    assert seen == [[1]]


def test_unsubscribe_and_update():
    state: StateStore[str] = StateStore()
    seen = []
    unsubscribe = state.subscribe("a", lambda new, old: seen.append(("a", new)))
    state.subscribe("b", lambda new, old: seen.append(("b", new)))
    state.update({"a": 1, "b": 2})
    unsubscribe()
    state.set("a", 3)
    assert seen == [("a", 1), ("b", 2)]
    assert state.snapshot() == {"a": 3, "b": 2}
    state.clear()
    assert state.get("a", "missing") == "missing"
