"""
Async engine and session helpers shared by the catalog and the query executor.

Dataset rows live in SQLite locally and in PostgreSQL elsewhere; both are
reached through the async drivers (aiosqlite, asyncpg).
"""

import json
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from .base import Base


def _is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite")


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    # Row and column records rely on ON DELETE CASCADE.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_async_engine_for_url(
    database_url: str,
    echo: bool = False,
    *,
    pool_size: int | None = None,
    max_overflow: int | None = None,
) -> AsyncEngine:
    """Create the async engine; JSON columns round-trip through ``json`` with ``default=str``."""
    options: dict[str, Any] = {
        "echo": echo,
        "pool_pre_ping": True,
        "json_serializer": lambda value: json.dumps(value, default=str),
        "json_deserializer": json.loads,
    }
    if _is_sqlite(database_url):
        options["poolclass"] = NullPool
        options["connect_args"] = {"check_same_thread": False}
    else:
        if pool_size is not None:
            options["pool_size"] = pool_size
        if max_overflow is not None:
            options["max_overflow"] = max_overflow

    engine = create_async_engine(database_url, **options)
    if _is_sqlite(database_url):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def create_async_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@asynccontextmanager
async def async_session_scope(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    read_only: bool = False,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Open a session for one unit of work.

    A ``read_only`` scope marks the transaction read-only where the backend
    supports it (PostgreSQL) and always rolls back on exit.
    """
    session = session_factory()
    try:
        if read_only and session.get_bind().dialect.name == "postgresql":
            await session.execute(text("SET TRANSACTION READ ONLY"))
        yield session
        if read_only:
            await session.rollback()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()


async def initialize_database(engine: AsyncEngine) -> None:
    """Create missing tables; used for local SQLite databases."""
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.create_all)


__all__ = [
    "async_session_scope",
    "create_async_engine_for_url",
    "create_async_session_factory",
    "initialize_database",
]
