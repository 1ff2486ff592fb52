from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool


def create_db_engine(db_url: str) -> Engine:
    """
    Build the engine for ``db_url``.

    SQLite needs ``check_same_thread=False`` because FastAPI runs sync
    handlers in a threadpool; an in-memory SQLite database also needs a
    single shared connection or every checkout would see an empty database.
    """

    if not db_url.startswith("sqlite"):
        return create_engine(db_url)

    kwargs: dict[str, object] = {"connect_args": {"check_same_thread": False}}
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return create_engine(db_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, class_=Session)


def get_db(request: Request) -> Generator[Session, None, None]:
    """Per-request session for plain reads (users, admin listings)."""

    factory = getattr(request.app.state, "session_factory", None)
    if factory is None:
        raise RuntimeError("Database not initialized. Did app startup run?")

    db = factory()
    try:
        yield db
    finally:
        db.close()
