"""Async SQLAlchemy engine lifecycle and request-scoped transactions."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

# Module-level engine and session factory, created by init_db
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_db(
    database_url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
) -> None:
    """Create the engine and session factory used by get_db_session.

    PostgreSQL (asyncpg) gets a sized connection pool. SQLite (aiosqlite,
    used by tests and local runs) keeps its default pool and has foreign
    keys switched on for every connection.

    Args:
        database_url: postgresql+asyncpg://... or sqlite+aiosqlite://...
        pool_size: Connections kept open (PostgreSQL only)
        max_overflow: Extra connections allowed under load (PostgreSQL only)
        echo: Log every SQL statement
    """
    global _engine, _session_factory

    is_sqlite = make_url(database_url).get_backend_name() == "sqlite"

    options: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
    if not is_sqlite:
        options.update(pool_size=pool_size, max_overflow=max_overflow)

    _engine = create_async_engine(database_url, **options)
    if is_sqlite:
        event.listen(_engine.sync_engine, "connect", _enable_sqlite_foreign_keys)

    _session_factory = async_sessionmaker(
        bind=_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Get the database engine."""
    if _engine is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory."""
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Open a session that is a single transaction.

    Everything written through the session is committed together when the
    block exits normally and rolled back together on any exception, so a
    file record and its usage update land or fail as one.

    Usage:
        async with get_db_session() as session:
            await repository_using(session)
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_dialect_name(session: AsyncSession) -> str:
    """Name of the SQL dialect the session is bound to (defaults to postgresql)."""
    return session.bind.dialect.name if session.bind else "postgresql"


async def close_db() -> None:
    """Dispose of the engine's pool and forget the engine."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
