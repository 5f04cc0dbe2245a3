"""Typed live-state container with synchronous change notification.

Replaces the stringly-typed namespace/key pub/sub store: each container is
created for one page/editor and passed explicitly. Last write wins; setting
a value identical (or primitive-equal) to the current one notifies nobody.
Multi-key updates notify key by key.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

K = TypeVar("K")

Listener = Callable[[Any, Any], None]  # (new_value, old_value)

_MISSING = object()


def _same(a: Any, b: Any) -> bool:
    if a is b:
        return True
    if isinstance(a, (str, int, float, bool, bytes)) and type(a) is type(b):
        return a == b
    return False


class StateStore(Generic[K]):
    def __init__(self, initial: Mapping[K, Any] | None = None):
        self._values: dict[K, Any] = dict(initial or {})
        self._listeners: dict[K, list[Listener]] = {}

    def get(self, key: K, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: K, value: Any) -> bool:
        """Store ``value``; returns ``False`` when nothing changed."""
        old = self._values.get(key, _MISSING)
        if old is not _MISSING and _same(old, value):
            return False
        self._values[key] = value
        previous = None if old is _MISSING else old
        for listener in list(self._listeners.get(key, ())):
            listener(value, previous)
        return True

    def update(self, values: Mapping[K, Any]) -> None:
        for key, value in values.items():
            self.set(key, value)

    def subscribe(self, key: K, listener: Listener) -> Callable[[], None]:
        self._listeners.setdefault(key, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(key)
            if listeners and listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        self._values.clear()

    def snapshot(self) -> dict[K, Any]:
        return dict(self._values)


__all__ = ["StateStore", "Listener"]
