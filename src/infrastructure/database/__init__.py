"""
Database Infrastructure
=======================

Engine and session lifecycle for the alert store.

One process-wide async engine is created at startup. Each unit of work
(an evaluation, an acknowledgment, a configuration change) runs in its own
session via ``session_scope`` and is committed or rolled back as a whole.

PostgreSQL (asyncpg) is the production backend; SQLite (aiosqlite) serves
local runs and tests.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from config import settings


class Base(DeclarativeBase):
    """Declarative base shared by every alerting table."""


_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None


def normalize_database_url(url: str) -> str:
    """asyncpg takes ``ssl=`` where libpq-style URLs carry ``sslmode=``."""
    return url.replace("sslmode=", "ssl=")


def engine_options(url: str) -> Dict[str, Any]:
    """
    Keyword arguments for ``create_async_engine`` on the given backend.

    SQLite gets no pool sizing; server backends get a pre-pinged pool sized
    from settings.
    """
    options: Dict[str, Any] = {"echo": settings.debug}
    if make_url(url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )
    return options


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory used by the engine and the test suite.

    Objects stay usable after commit and nothing is flushed implicitly;
    repositories flush when they need generated values.
    """
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def init_database(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create the process-wide engine.

    Args:
        database_url: Overrides ``settings.database_url``
    """
    global _engine, _session_factory

    url = normalize_database_url(database_url or settings.database_url)
    _engine = create_async_engine(url, **engine_options(url))
    _session_factory = create_session_maker(_engine)
    return _engine


def get_engine() -> AsyncEngine:
    """
    Raises:
        RuntimeError: If ``init_database`` has not run
    """
    if _engine is None:
        raise RuntimeError("Database engine not initialized. Call init_database() first.")
    return _engine


async def close_database() -> None:
    """Dispose of pooled connections. Safe to call when never initialized."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """
    One transaction per block.

    Commits when the block exits normally and rolls back when it raises,
    so the store mutations of one unit of work land together or not at all.

    Usage:
        async with session_scope() as session:
            repository = SQLAlchemyAlertEventRepository(session)
            await repository.record(organization_id, triggered)
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_schema() -> None:
    """
    Create the alerting tables if they do not exist.

    Meant for development and tests; deployed databases are migrated.
    """
    import alerting.infrastructure.models  # noqa: F401  registers the tables

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
