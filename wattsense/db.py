"""Database engine, session factory, and base model."""

from __future__ import annotations

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all WattSense models."""
    pass


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Build an engine with pool settings suited to the backend."""
    engine_kwargs: dict = {"echo": echo}
    if url.startswith("sqlite"):
        engine_kwargs["connect_args"] = {"check_same_thread": False}
    else:
        # Postgres connection pool settings
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 10
        engine_kwargs["pool_pre_ping"] = True
    return create_engine(url, **engine_kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db(request: Request):
    """FastAPI dependency — yields a DB session from the app context, auto-closes."""
    db = request.app.state.context.session()
    try:
        yield db
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """Create all tables (for development — use Alembic in production)."""
    from . import models  # noqa: F401 — register all tables on Base.metadata

    Base.metadata.create_all(bind=engine)
