"""Document access layer.

A single interface over the document database: ``get``/``set``/``add``/
``update``/``delete``/``query`` keyed by collection name and document id, plus
atomic ``batch()`` and ``transaction(fn)`` primitives and a clamped counter
``increment``. Sub-collections are addressed by path, e.g.
``weeklyMenus/2025-03-10/dailyMenus``.

Two backends implement it: ``SqlDocumentStore`` (production, SQLAlchemy) and
``MemoryDocumentStore`` (development and tests).
"""
from __future__ import annotations

import abc
import copy
import uuid
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal, TypeVar

from flask import current_app

from .errors import DatabaseError, NotFoundError, ValidationError

T = TypeVar("T")

# Collection names
USERS = "users"
EMPLOYEES = "employees"
BRANCHES = "branches"
CONFIRMATIONS = "confirmations"
WEEKLY_MENUS = "weeklyMenus"
LEGACY_MENUS = "menus"
DAILY_MENUS = "dailyMenus"

Operator = Literal["==", "!=", "<", "<=", ">", ">=", "in", "not-in", "array-contains"]
Filter = tuple[str, Operator, Any]

_OPERATORS: set[str] = {"==", "!=", "<", "<=", ">", ">=", "in", "not-in", "array-contains"}


def subcollection(collection: str, doc_id: str, name: str) -> str:
    return f"{collection}/{doc_id}/{name}"


@dataclass(frozen=True)
class Document:
    id: str
    data: dict[str, Any]

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, **self.data}


@dataclass(frozen=True)
class WriteOp:
    kind: Literal["set", "update", "delete", "increment"]
    collection: str
    doc_id: str
    data: dict[str, Any] = field(default_factory=dict)
    merge: bool = False
    field_name: str | None = None
    delta: float = 0
    floor: float | None = None


def apply_op(current: dict[str, Any] | None, op: WriteOp) -> dict[str, Any] | None:
    """Return the document content after ``op``; ``None`` means deleted."""
    if op.kind == "delete":
        return None
    if op.kind == "set":
        if op.merge and current is not None:
            return {**current, **copy.deepcopy(op.data)}
        return copy.deepcopy(op.data)
    if current is None:
        raise NotFoundError(f"{op.collection}/{op.doc_id} does not exist")
    if op.kind == "update":
        return {**current, **copy.deepcopy(op.data)}
    # increment
    assert op.field_name is not None
    value = current.get(op.field_name) or 0
    value = value + op.delta
    if op.floor is not None and value < op.floor:
        value = op.floor
    return {**current, op.field_name: value}


def _field_value(data: dict[str, Any], path: str) -> Any:
    value: Any = data
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(data: dict[str, Any], flt: Filter) -> bool:
    name, op, expected = flt
    actual = _field_value(data, name)
    try:
        if op == "==":
            return actual == expected
        if op == "!=":
            return actual != expected
        if op == "in":
            return actual in expected
        if op == "not-in":
            return actual not in expected
        if op == "array-contains":
            return isinstance(actual, list) and expected in actual
        if actual is None:
            return False
        if op == "<":
            return actual < expected
        if op == "<=":
            return actual <= expected
        if op == ">":
            return actual > expected
        if op == ">=":
            return actual >= expected
    except TypeError:
        # Mixed types never match, as in the hosted document stores
        return False
    return False


def filter_documents(
    docs: Iterable[Document],
    where: Sequence[Filter] | None = None,
    order_by: str | None = None,
    descending: bool = False,
    limit: int | None = None,
) -> list[Document]:
    for flt in where or ():
        if flt[1] not in _OPERATORS:
            raise ValidationError(f"unsupported operator {flt[1]!r}", code="invalid-argument")
    out = [d for d in docs if all(_matches(d.data, flt) for flt in where or ())]
    if order_by:
        present = [d for d in out if _field_value(d.data, order_by) is not None]
        present.sort(key=lambda d: _field_value(d.data, order_by), reverse=descending)
        out = present
    if limit is not None:
        out = out[: max(0, int(limit))]
    return out


class WriteBatch:
    """Collects writes and applies them atomically when the ``with`` block exits."""

    def __init__(self, store: DocumentStore):
        self._store = store
        self.ops: list[WriteOp] = []

    def set(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> WriteBatch:
        self.ops.append(WriteOp("set", collection, doc_id, data=dict(data), merge=merge))
        return self

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> WriteBatch:
        self.ops.append(WriteOp("update", collection, doc_id, data=dict(data)))
        return self

    def delete(self, collection: str, doc_id: str) -> WriteBatch:
        self.ops.append(WriteOp("delete", collection, doc_id))
        return self

    def increment(
        self, collection: str, doc_id: str, field_name: str, delta: float, floor: float | None = 0
    ) -> WriteBatch:
        self.ops.append(
            WriteOp("increment", collection, doc_id, field_name=field_name, delta=delta, floor=floor)
        )
        return self

    def commit(self) -> None:
        if self.ops:
            self._store._apply(self.ops)
        self.ops = []

    def __enter__(self) -> WriteBatch:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.commit()


class Transaction(WriteBatch):
    """Reads go through ``reader``; writes are buffered until the function returns."""

    def __init__(self, store: DocumentStore, reader: Callable[[str, str], Document | None]):
        super().__init__(store)
        self._reader = reader

    def get(self, collection: str, doc_id: str) -> Document | None:
        if self.ops:
            raise DatabaseError(
                "transactions require all reads to happen before writes",
                code="failed-precondition",
            )
        return self._reader(collection, doc_id)


class DocumentStore(abc.ABC):
    @abc.abstractmethod
    def get(self, collection: str, doc_id: str) -> Document | None: ...

    @abc.abstractmethod
    def _documents(self, collection: str) -> Iterator[Document]: ...

    @abc.abstractmethod
    def _apply(self, ops: list[WriteOp]) -> None:
        """Apply all ``ops`` atomically: either every write lands or none does."""

    @abc.abstractmethod
    def transaction(self, fn: Callable[[Transaction], T]) -> T: ...

    def require(self, collection: str, doc_id: str) -> Document:
        doc = self.get(collection, doc_id)
        if doc is None:
            raise NotFoundError(f"{collection}/{doc_id} does not exist")
        return doc

    def set(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        self._apply([WriteOp("set", collection, doc_id, data=dict(data), merge=merge)])

    def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex[:20]
        self.set(collection, doc_id, data)
        return doc_id

    def update(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._apply([WriteOp("update", collection, doc_id, data=dict(data))])

    def delete(self, collection: str, doc_id: str) -> None:
        self._apply([WriteOp("delete", collection, doc_id)])

    def increment(
        self, collection: str, doc_id: str, field_name: str, delta: float, floor: float | None = 0
    ) -> None:
        self._apply(
            [WriteOp("increment", collection, doc_id, field_name=field_name, delta=delta, floor=floor)]
        )

    def query(
        self,
        collection: str,
        where: Sequence[Filter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        return filter_documents(self._documents(collection), where, order_by, descending, limit)

    def batch(self) -> WriteBatch:
        return WriteBatch(self)


def current_store() -> DocumentStore:
    return current_app.extensions["document_store"]


__all__ = [
    "USERS",
    "EMPLOYEES",
    "BRANCHES",
    "CONFIRMATIONS",
    "WEEKLY_MENUS",
    "LEGACY_MENUS",
    "DAILY_MENUS",
    "Document",
    "DocumentStore",
    "Filter",
    "Transaction",
    "WriteBatch",
    "WriteOp",
    "apply_op",
    "current_store",
    "filter_documents",
    "subcollection",
]
