"""Database session configuration."""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from datahub_review.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base shared by all ORM models."""


# Ensure model modules are imported so that metadata is populated when create_all runs.
import datahub_review.models  # noqa: E402,F401


def build_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine with the store timeouts applied to every connection."""
    connect_args: dict[str, object] = {}
    if url.startswith("sqlite"):
        # Bulk operations touch the store from worker threads.
        connect_args = {
            "check_same_thread": False,
            "timeout": settings.store_timeout_seconds,
        }

    built = create_engine(url, pool_pre_ping=True, echo=echo, connect_args=connect_args)

    if built.dialect.name == "postgresql":

        @event.listens_for(built, "connect")
        def _set_statement_timeout(dbapi_connection, _record) -> None:  # pragma: no cover
            cursor = dbapi_connection.cursor()
            cursor.execute(f"SET statement_timeout = {int(settings.store_statement_timeout_ms)}")
            cursor.close()

    return built


engine = build_engine(settings.effective_database_url, echo=settings.sql_debug)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker[Session]:
    """Return the factory bulk operations use to open one session per item."""
    return SessionLocal


def create_tables() -> None:
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


def drop_tables() -> None:
    """Drop all database tables."""
    Base.metadata.drop_all(bind=engine)
