"""
Database engine lifecycle and units of work.

The engine is created in the application lifespan. Repositories take a
``SessionFactory``; the default, ``get_db_session``, gives each repository
call its own transaction.
"""

from collections.abc import AsyncGenerator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from figma_for_jira.config import Settings, settings
from figma_for_jira.logging_config import get_logger

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def create_engine(config: Settings) -> AsyncEngine:
    return create_async_engine(
        str(config.database_url),
        echo=config.debug,
        pool_pre_ping=True,
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
        pool_timeout=config.database.pool_timeout_seconds,
    )


async def init_db(config: Settings = settings) -> None:
    """Create the engine and check that the database answers."""
    global _engine, _sessionmaker  # noqa: PLW0603
    logger.info("Connecting to database", pool_size=config.database.pool_size)

    _engine = create_engine(config)
    _sessionmaker = async_sessionmaker(_engine, expire_on_commit=False, autoflush=False)

    async with _engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Database connection established")


async def close_db() -> None:
    global _engine, _sessionmaker  # noqa: PLW0603
    if _engine is None:
        return
    logger.info("Disposing database engine")
    await _engine.dispose()
    _engine = None
    _sessionmaker = None


@asynccontextmanager
async def get_db_session() -> AsyncGenerator[AsyncSession]:
    """One transaction: committed when the block exits cleanly, rolled back otherwise."""
    if _sessionmaker is None:
        raise RuntimeError("Database not initialized, call init_db() first")

    async with _sessionmaker() as session, session.begin():
        yield session


async def get_db_health() -> bool:
    """Readiness check. Never raises."""
    if _engine is None:
        return False
    try:
        async with _engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error("Database health check failed", error=str(e))
        return False
    return True
