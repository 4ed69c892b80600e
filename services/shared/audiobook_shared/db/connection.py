"""Async engine and session management.

Production runs against MySQL through aiomysql; development and tests use a
SQLite file through aiosqlite. The API holds two ``DatabaseConnection``
instances, one per credential set, each with its own pool.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .models import Base

POOL_TIMEOUT_SECONDS = 30
POOL_RECYCLE_SECONDS = 1800  # below MySQL's default wait_timeout


def is_sqlite_url(url: str) -> bool:
    return make_url(url).get_backend_name() == "sqlite"


def _sqlite_on_connect(dbapi_connection: Any, connection_record: Any) -> None:
    # Foreign keys, and with them ON DELETE CASCADE / SET NULL, are off by default
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def build_engine(
    url: str,
    pool_size: int = 5,
    max_overflow: int = 10,
    echo: bool = False,
) -> AsyncEngine:
    """Create an engine for ``url`` with settings suited to its backend.

    SQLite gets per-connection pragmas and its default pool; server databases
    get a bounded, pre-pinged, periodically recycled pool.
    """
    if is_sqlite_url(url):
        engine = create_async_engine(url, echo=echo)
        event.listen(engine.sync_engine, "connect", _sqlite_on_connect)
        return engine

    return create_async_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=POOL_TIMEOUT_SECONDS,
        pool_recycle=POOL_RECYCLE_SECONDS,
        pool_pre_ping=True,
    )


class DatabaseConnection:
    """Lazily built engine plus session factory for one database URL.

    Usage::

        db = DatabaseConnection(settings.database.url)
        async with db.session() as session:
            await session.execute(...)
            await session.commit()
    """

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        echo: bool = False,
    ):
        self.url = url
        self._engine_options = {"pool_size": pool_size, "max_overflow": max_overflow, "echo": echo}
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = build_engine(self.url, **self._engine_options)
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is None:
            self._sessions = async_sessionmaker(
                self.engine,
                expire_on_commit=False,
                autoflush=False,
            )
        return self._sessions

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session scoped to the block.

        Nothing is committed implicitly; callers commit their own writes and
        anything left pending when the block raises is rolled back.
        """
        async with self.session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> None:
        """Round-trip a trivial query; raises if the database is unreachable."""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def create_tables(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        """Dispose of the pool. The connection can be reused afterwards."""
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessions = None
