"""SQLAlchemy-backed document store (one ``documents`` table, JSON payloads)."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from typing import TypeVar

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .db import get_new_session
from .documents import Document, DocumentStore, Transaction, WriteOp, apply_op
from .errors import DatabaseError
from .models import DocumentRecord

T = TypeVar("T")

log = logging.getLogger(__name__)


def _load(db: Session, collection: str, doc_id: str) -> DocumentRecord | None:
    return db.execute(
        select(DocumentRecord).where(
            DocumentRecord.collection == collection, DocumentRecord.doc_id == doc_id
        )
    ).scalar_one_or_none()


def _apply_in(db: Session, ops: list[WriteOp]) -> None:
    for op in ops:
        rec = _load(db, op.collection, op.doc_id)
        new_data = apply_op(rec.data if rec is not None else None, op)
        if new_data is None:
            if rec is not None:
                db.delete(rec)
        elif rec is None:
            db.add(DocumentRecord(collection=op.collection, doc_id=op.doc_id, data=new_data))
        else:
            # Reassign (never mutate) so the JSON column is flagged dirty
            rec.data = new_data
        db.flush()


class SqlDocumentStore(DocumentStore):
    def get(self, collection: str, doc_id: str) -> Document | None:
        db = get_new_session()
        try:
            rec = _load(db, collection, doc_id)
            if rec is None:
                return None
            return Document(id=rec.doc_id, data=dict(rec.data or {}))
        except SQLAlchemyError as exc:
            log.error("document read failed %s/%s: %s", collection, doc_id, exc)
            raise DatabaseError(str(exc), code="unavailable") from exc
        finally:
            db.close()

    def _documents(self, collection: str) -> Iterator[Document]:
        db = get_new_session()
        try:
            rows = db.execute(
                select(DocumentRecord)
                .where(DocumentRecord.collection == collection)
                .order_by(DocumentRecord.id.asc())
            ).scalars().all()
            docs = [Document(id=r.doc_id, data=dict(r.data or {})) for r in rows]
        except SQLAlchemyError as exc:
            log.error("document query failed %s: %s", collection, exc)
            raise DatabaseError(str(exc), code="unavailable") from exc
        finally:
            db.close()
        return iter(docs)

    def _apply(self, ops: list[WriteOp]) -> None:
        db = get_new_session()
        try:
            _apply_in(db, ops)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            log.error("document write failed (%d ops): %s", len(ops), exc)
            raise DatabaseError(str(exc), code="unavailable") from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def transaction(self, fn: Callable[[Transaction], T]) -> T:
        db = get_new_session()

        def reader(collection: str, doc_id: str) -> Document | None:
            rec = _load(db, collection, doc_id)
            return Document(id=rec.doc_id, data=dict(rec.data or {})) if rec is not None else None

        try:
            tx = Transaction(self, reader)
            result = fn(tx)
            _apply_in(db, tx.ops)
            db.commit()
            return result
        except SQLAlchemyError as exc:
            db.rollback()
            log.error("document transaction failed: %s", exc)
            raise DatabaseError(str(exc), code="unavailable") from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


__all__ = ["SqlDocumentStore"]
