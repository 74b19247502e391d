from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import MetaData
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    """Declarative base for every table the services own."""


def normalize_postgres_dsn(dsn: str) -> str:
    if dsn.startswith("postgresql://"):
        return dsn.replace("postgresql://", "postgresql+psycopg://", 1)
    return dsn


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, OperationalError):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


class SqlDatabase:
    """Engine opened on first use; owned tables are created before the first unit of work.

    ``run`` executes one transaction and replays it on a fresh engine when the
    connection dropped underneath it.
    """

    def __init__(
        self,
        dsn: str,
        *,
        metadata: MetaData = Base.metadata,
        max_attempts: int = 3,
        retry_delay_seconds: float = 0.2,
    ) -> None:
        self._dsn = normalize_postgres_dsn(dsn)
        self._metadata = metadata
        self._max_attempts = max_attempts
        self._retry_delay_seconds = retry_delay_seconds
        self._engine: AsyncEngine | None = None
        self._sessions: async_sessionmaker[AsyncSession] | None = None
        self._open_lock = asyncio.Lock()

    async def run(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        attempt = 1
        while True:
            sessions = await self._open()
            try:
                async with sessions() as session, session.begin():
                    return await work(session)
            except Exception as exc:
                if attempt >= self._max_attempts or not _is_transient(exc):
                    raise
                logger.warning("db_transient_error", extra={"component": "usm_kit", "attempt": attempt})
                await self.dispose()
                await asyncio.sleep(self._retry_delay_seconds * attempt)
                attempt += 1

    async def dispose(self) -> None:
        engine, self._engine, self._sessions = self._engine, None, None
        if engine is not None:
            await engine.dispose()

    async def _open(self) -> async_sessionmaker[AsyncSession]:
        if self._sessions is not None:
            return self._sessions
        async with self._open_lock:
            if self._sessions is None:
                engine = create_async_engine(self._dsn, pool_pre_ping=True)
                async with engine.begin() as conn:
                    await conn.run_sync(self._metadata.create_all)
                self._engine = engine
                self._sessions = async_sessionmaker(engine, expire_on_commit=False)
        return self._sessions
