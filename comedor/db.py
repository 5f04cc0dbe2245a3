"""SQLAlchemy engine and session factory behind the SQL document store."""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

_engine: Engine | None = None
_factory: sessionmaker[Session] | None = None

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def normalize_url(url: str) -> str:
    # Hosted Postgres still hands out the legacy scheme
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://") :]
    return url


def _make_engine(database_url: str) -> Engine:
    url = normalize_url(database_url)
    if url in IN_MEMORY_URLS:
        # A single shared connection, otherwise every session gets an empty database
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, pool_pre_ping=True)


def init_engine(database_url: str, force: bool = False) -> Engine:
    """Create the process-wide engine; ``force`` disposes and replaces an existing one."""
    global _engine, _factory
    if _engine is not None and not force:
        return _engine
    if _engine is not None:
        _engine.dispose()
    _engine = _make_engine(database_url)
    _factory = sessionmaker(bind=_engine, autoflush=False, expire_on_commit=False)
    return _engine


def get_new_session() -> Session:
    """A fresh session; the caller commits or rolls back and closes it."""
    if _factory is None:
        raise RuntimeError("DB not initialized; call init_engine first")
    return _factory()


def create_all() -> None:
    """Create tables directly. Only for throwaway SQLite databases; Alembic owns real schemas."""
    if _engine is None:
        raise RuntimeError("Engine not initialized")
    Base.metadata.create_all(_engine)


__all__ = ["normalize_url", "init_engine", "get_new_session", "create_all"]
