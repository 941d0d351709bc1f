"""
DatabaseService: async SQLAlchemy engine and transaction management.

Purpose
-------
Own the async engine and session factory and hand out sessions to the
repository layer. There is no module-level singleton: the service container
builds one instance and injects it wherever storage is needed.

Responsibilities
----------------
- Build the async engine from a URL (PostgreSQL via asyncpg in production,
  SQLite via aiosqlite in tests).
- Provide `session()` for reads and `transaction()` for every mutation.
- Translate storage failures into the domain taxonomy after rollback:
  `OperationalError` / `DBAPIError` -> `WorldAccessError`,
  `IntegrityError` -> `ConflictError`.
- Create/drop the schema for tests and first boot.

Usage
-----
>>> async with database.transaction() as session:
...     row = await session.get(PlayerRow, player_id, with_for_update=True)
...     row.energy -= 10
...     # commit on exit, rollback on exception

Notes
-----
- Never call `session.commit()` / `session.rollback()` inside a
  `transaction()` block.
- Keep transactions short; they hold row locks.
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from nexium.core.config.config import Config
from nexium.core.database.base import Base
from nexium.core.exceptions import DatabaseNotInitializedError
from nexium.core.logging.logger import get_logger
from nexium.domain.exceptions import ConflictError, WorldAccessError

logger = get_logger(__name__)


class DatabaseService:
    """
    Async database access for one process.

    Parameters
    ----------
    url:
        SQLAlchemy async URL. Defaults to `Config.DATABASE_URL`.
    echo:
        Log SQL statements. Defaults to `Config.DATABASE_ECHO`.
    """

    def __init__(self, url: Optional[str] = None, *, echo: Optional[bool] = None) -> None:
        self.url = url or Config.DATABASE_URL
        self.echo = Config.DATABASE_ECHO if echo is None else echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._stats: Dict[str, int] = {"committed": 0, "rolled_back": 0}

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotInitializedError()
        return self._engine

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def initialize(self) -> None:
        if self._engine is not None:
            return
        if not self.url:
            raise DatabaseNotInitializedError()

        engine_kwargs: Dict[str, Any] = {"echo": self.echo, "future": True}
        if not self.is_sqlite:
            engine_kwargs.update(
                pool_size=Config.DATABASE_POOL_SIZE,
                max_overflow=Config.DATABASE_MAX_OVERFLOW,
                pool_pre_ping=True,
            )

        self._engine = create_async_engine(self.url, **engine_kwargs)
        if self.is_sqlite:
            self._configure_sqlite(self._engine)

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info(
            "DatabaseService initialized",
            extra={"scheme": self.url.split("://", 1)[0], "echo": self.echo},
        )

    @staticmethod
    def _configure_sqlite(engine: AsyncEngine) -> None:
        # pysqlite's implicit BEGIN breaks SAVEPOINT; emit our own, taking the
        # write lock up front so concurrent writers queue instead of deadlocking
        @event.listens_for(engine.sync_engine, "connect")
        def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(connection: Any) -> None:
            connection.exec_driver_sql("BEGIN IMMEDIATE")

    async def shutdown(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("DatabaseService shut down", extra=dict(self._stats))

    async def create_schema(self) -> None:
        # importing the package registers every row class on Base.metadata
        import nexium.database.models  # noqa: F401

        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
        logger.info("Database schema created", extra={"tables": sorted(Base.metadata.tables)})

    async def drop_schema(self) -> None:
        import nexium.database.models  # noqa: F401

        async with self.engine.begin() as connection:
            await connection.run_sync(Base.metadata.drop_all)

    async def health_check(self) -> bool:
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except WorldAccessError:
            return False

    # ------------------------------------------------------------------ #
    # Sessions
    # ------------------------------------------------------------------ #

    def _factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            raise DatabaseNotInitializedError()
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Read-only session. Anything written is discarded on exit."""
        async with self._factory()() as session:
            try:
                yield session
            except (OperationalError, DBAPIError) as exc:
                logger.error(
                    "Database error in read session",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                )
                raise WorldAccessError("read", exc) from exc
            finally:
                await session.rollback()

    @asynccontextmanager
    async def transaction(self, operation: str = "transaction") -> AsyncGenerator[AsyncSession, None]:
        """
        Session wrapped in one atomic transaction.

        Commits on success. On any exception rolls back and re-raises, after
        mapping storage errors onto the domain taxonomy.
        """
        start = time.perf_counter()
        async with self._factory()() as session:
            try:
                async with session.begin():
                    yield session
            except IntegrityError as exc:
                self._stats["rolled_back"] += 1
                logger.warning(
                    "Integrity conflict; transaction rolled back",
                    extra={"operation": operation, "error": str(exc.orig)},
                )
                raise ConflictError(
                    "Another action changed this first, please try again",
                    details={"operation": operation},
                    error_code="WRITE_CONFLICT",
                ) from exc
            except (OperationalError, DBAPIError) as exc:
                self._stats["rolled_back"] += 1
                logger.error(
                    "Database error; transaction rolled back",
                    extra={
                        "operation": operation,
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                    },
                    exc_info=True,
                )
                raise WorldAccessError(operation, exc) from exc
            except Exception:
                self._stats["rolled_back"] += 1
                raise

        self._stats["committed"] += 1
        logger.debug(
            "Transaction committed",
            extra={
                "operation": operation,
                "duration_ms": round((time.perf_counter() - start) * 1000.0, 2),
            },
        )

    def stats(self) -> Dict[str, int]:
        return dict(self._stats)
