"""SQLAlchemy declarative base and engine helpers."""

from typing import Tuple

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


def create_engine_and_sessions(
    database_url: str,
    busy_timeout_ms: int = 5000,
) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """Create an async engine and a session factory bound to it.

    SQLite connections are switched to WAL so readers never block on the
    single writer, and wait up to ``busy_timeout_ms`` for a lock held by
    another process sharing the same file.

    Args:
        database_url: SQLAlchemy async URL
        busy_timeout_ms: SQLite lock wait in milliseconds

    Returns:
        Tuple of (engine, session factory)
    """
    engine = create_async_engine(database_url, future=True)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
            cursor.close()

    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    return engine, session_maker


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
