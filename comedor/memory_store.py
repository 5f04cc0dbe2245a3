"""In-memory document store for development and tests.

Selected with ``DOCUMENT_BACKEND=memory``. It holds plain dicts behind a lock
and hands out deep copies, so callers never share state with the store.
``fail_with`` makes every call raise ``DatabaseError`` to exercise the
degraded paths of the services and pages.
"""
from __future__ import annotations

import copy
import threading
from collections.abc import Callable, Iterator
from typing import Any, TypeVar

from .documents import Document, DocumentStore, Transaction, WriteOp, apply_op
from .errors import DatabaseError

T = TypeVar("T")

_Data = dict[str, dict[str, dict[str, Any]]]


class MemoryDocumentStore(DocumentStore):
    def __init__(self, initial: _Data | None = None):
        self._lock = threading.RLock()
        self._data: _Data = copy.deepcopy(initial) if initial else {}
        # Set to a provider code to make every call fail (exercises degrade paths)
        self.fail_with: str | None = None

    def _check(self) -> None:
        if self.fail_with:
            raise DatabaseError("simulated backend failure", code=self.fail_with)

    def get(self, collection: str, doc_id: str) -> Document | None:
        self._check()
        with self._lock:
            data = self._data.get(collection, {}).get(doc_id)
            return Document(id=doc_id, data=copy.deepcopy(data)) if data is not None else None

    def _documents(self, collection: str) -> Iterator[Document]:
        self._check()
        with self._lock:
            items = [
                Document(id=doc_id, data=copy.deepcopy(data))
                for doc_id, data in self._data.get(collection, {}).items()
            ]
        return iter(items)

    @staticmethod
    def _apply_to(data: _Data, ops: list[WriteOp]) -> None:
        for op in ops:
            coll = data.setdefault(op.collection, {})
            new_data = apply_op(coll.get(op.doc_id), op)
            if new_data is None:
                coll.pop(op.doc_id, None)
            else:
                coll[op.doc_id] = new_data

    def _apply(self, ops: list[WriteOp]) -> None:
        self._check()
        with self._lock:
            staged = copy.deepcopy(self._data)
            self._apply_to(staged, ops)
            self._data = staged

    def transaction(self, fn: Callable[[Transaction], T]) -> T:
        self._check()
        with self._lock:
            staged = copy.deepcopy(self._data)

            def reader(collection: str, doc_id: str) -> Document | None:
                data = staged.get(collection, {}).get(doc_id)
                return Document(id=doc_id, data=copy.deepcopy(data)) if data is not None else None

            tx = Transaction(self, reader)
            result = fn(tx)
            self._apply_to(staged, tx.ops)
            self._data = staged
            return result

    def dump(self) -> _Data:
        with self._lock:
            return copy.deepcopy(self._data)


__all__ = ["MemoryDocumentStore"]
