"""Async database engine and session management.

Provides:
    - get_engine: The SQLAlchemy async engine (lazy singleton).
    - get_session_factory: A sessionmaker bound to the engine.
    - get_async_session: FastAPI dependency that yields a session per request.
    - init_db / close_db: Lifecycle hooks for FastAPI's lifespan.

Services commit each completed operation themselves; the request
dependency commits whatever is left and rolls back on any error, so a
failed operation never leaves partial state behind.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from escrow_ledger.config import get_settings
from escrow_ledger.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

logger = get_logger(__name__)

# Module-level singletons (initialized lazily)
_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    """Get or create the async engine (lazy singleton)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        if settings.uses_sqlite:
            # SQLite has no connection pool sizing
            _engine = create_async_engine(settings.database_url, echo=settings.db_echo_sql)
        else:
            _engine = create_async_engine(
                settings.database_url,
                pool_size=settings.db_pool_size,
                max_overflow=settings.db_max_overflow,
                pool_timeout=settings.db_pool_timeout,
                pool_pre_ping=True,
                echo=settings.db_echo_sql,
            )
        logger.info("database.engine_created", dialect=_engine.dialect.name)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get or create the session factory (lazy singleton)."""
    global _session_factory
    if _session_factory is None:
        _session_factory = make_session_factory(get_engine())
    return _session_factory


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields an async database session.

    The session is automatically committed on success or rolled back on error.
    """
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_schema(engine: AsyncEngine, default_fee_rate_percent: int) -> None:
    """Create all tables and seed the ledger_state row."""
    from escrow_ledger.infrastructure.database.orm_models import Base
    from escrow_ledger.infrastructure.database.repositories import LedgerStateRepository

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with make_session_factory(engine)() as session:
        await LedgerStateRepository(session).ensure(default_fee_rate_percent)
        await session.commit()


async def init_db() -> None:
    """Initialize the database engine and seed the ledger state.

    Tables are only created automatically in development; other
    environments are expected to have the schema provisioned already.
    """
    from escrow_ledger.infrastructure.database.repositories import LedgerStateRepository

    engine = get_engine()
    settings = get_settings()

    if settings.is_development:
        await create_schema(engine, settings.default_fee_rate_percent)
        logger.info("database.tables_created")
    else:
        async with get_session_factory()() as session:
            await LedgerStateRepository(session).ensure(settings.default_fee_rate_percent)
            await session.commit()
        logger.info("database.skipping_create_all", reason="not in development mode")


async def close_db() -> None:
    """Dispose of the database engine. Called during FastAPI's lifespan shutdown."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("database.engine_disposed")
        _engine = None
        _session_factory = None
