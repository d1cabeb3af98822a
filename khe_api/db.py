# khe_api/db.py
"""
SQLAlchemy engine + session plumbing.

- One engine per process, built from DATABASE_URL
- `get_session` is the FastAPI dependency used by every route
- SQLite in-memory URLs share a single connection (StaticPool) so the
  schema survives across requests (tests rely on this)
"""

from __future__ import annotations

import logging
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from khe_api.config import DATABASE_URL

logger = logging.getLogger("khe-api.db")


class Base(DeclarativeBase):
    pass


def _build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


engine = _build_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db() -> None:
    """Create missing tables. Imports the table module so every model is registered."""
    from khe_api.data_client import tables  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready ({engine.url.get_backend_name()})")


def get_session() -> Iterator[Session]:
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
