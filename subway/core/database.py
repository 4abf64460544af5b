"""Database engines and sessions.

Deployments run on PostgreSQL through asyncpg; tests and local runs use SQLite
through aiosqlite. Section and favorite rows rely on foreign keys (CASCADE from
their owner, RESTRICT on stations), which SQLite only enforces when asked on
every connection.
"""

import threading
from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from subway.core.config import settings

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None
_lock = threading.Lock()


def is_sqlite_url(database_url: str) -> bool:
    """Whether the URL points at a SQLite database."""
    return make_url(database_url).get_backend_name() == "sqlite"


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_engine_for_url(database_url: str, *, pooled: bool = True) -> AsyncEngine:
    """
    Create an async engine for the backend named by ``database_url``.

    SQLite engines use NullPool and switch foreign keys on for each connection.
    PostgreSQL engines use the configured pool, or NullPool when ``pooled`` is
    False.

    Args:
        database_url: Async database URL (postgresql+asyncpg:// or sqlite+aiosqlite://)
        pooled: Keep a connection pool (ignored for SQLite)

    Returns:
        AsyncEngine: SQLAlchemy async engine
    """
    if is_sqlite_url(database_url):
        engine = create_async_engine(database_url, echo=settings.DATABASE_ECHO, poolclass=NullPool)
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    if not pooled:
        return create_async_engine(database_url, echo=settings.DATABASE_ECHO, poolclass=NullPool)

    return create_async_engine(
        database_url,
        echo=settings.DATABASE_ECHO,
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """
    Session factory used by requests, the CLI and tests.

    Objects stay readable after commit so services can return what they just
    wrote; nothing is flushed until a service commits.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


def get_engine() -> AsyncEngine:
    """
    Get or create the process-wide engine for ``settings.DATABASE_URL``.

    Created on first use so forked uvicorn workers do not inherit an engine
    bound to the parent's event loop. DEBUG runs skip the pool.
    """
    global _engine  # noqa: PLW0603
    if _engine is None:
        with _lock:
            if _engine is None:
                _engine = create_engine_for_url(settings.DATABASE_URL, pooled=not settings.DEBUG)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory bound to ``get_engine()``."""
    global _session_factory  # noqa: PLW0603
    if _session_factory is None:
        engine = get_engine()
        with _lock:
            if _session_factory is None:
                _session_factory = create_session_factory(engine)
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency: one session, and so one transaction, per request.

    Yields:
        AsyncSession: Database session
    """
    async with get_session_factory()() as session:
        yield session
