"""Async database engine and session management for SQLAlchemy 2.0+.

PostgreSQL (asyncpg) in production, SQLite (aiosqlite) for local runs and
tests. The engine is created by the application factory and disposed in the
lifespan shutdown.
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from blogapi.app.core.config import Settings
from blogapi.app.core.logging import get_logger
from blogapi.app.db.models import Base


def create_engine_from_settings(
    settings: Settings,
    database_url: Optional[str] = None,
    logger: Optional[logging.Logger] = None,
) -> AsyncEngine:
    """Create the async database engine.

    Args:
        settings: Application settings (pool configuration)
        database_url: Optional database URL. Uses settings if not provided.
        logger: Logger to report the engine configuration to

    Returns:
        AsyncEngine instance
    """
    logger = logger or get_logger(__name__)
    url = database_url or settings.database_url

    if "sqlite" in url.lower():
        # SQLite: let SQLAlchemy pick its default pool for the dialect
        engine = create_async_engine(url, echo=False)
        logger.info("Created SQLite async engine")
        return engine

    engine = create_async_engine(
        url,
        echo=False,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
    )
    logger.info(
        f"Created async engine (pool_size={settings.db_pool_size}, "
        f"max_overflow={settings.db_max_overflow})"
    )
    return engine


def create_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def init_models(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
