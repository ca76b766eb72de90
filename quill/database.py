"""SQLAlchemy engines and session helpers.

The post store runs on the async engine. The sync engine serves Alembic
and test fixtures.
"""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase, sessionmaker


class Base(DeclarativeBase):
    """Declarative base class for ORM models."""


def _engine_kwargs(url: URL, echo: bool) -> dict[str, object]:
    engine_kwargs: dict[str, object] = {"echo": echo, "pool_pre_ping": True}
    if url.get_backend_name() == "sqlite":
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return engine_kwargs


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """Create a sync engine, making sure a SQLite file's directory exists."""
    url = make_url(database_url)
    return create_engine(database_url, **_engine_kwargs(url, echo))


def build_async_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    url = make_url(database_url)
    return create_async_engine(database_url, **_engine_kwargs(url, echo))


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def build_async_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


def init_database(engine: Engine) -> None:
    # Import for metadata registration
    from quill.models import post  # noqa: F401

    Base.metadata.create_all(bind=engine)


async def init_async_database(engine: AsyncEngine) -> None:
    from quill.models import post  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
