"""Async database engine, session factory and schema bootstrap."""

from collections.abc import AsyncGenerator
from functools import lru_cache

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from urlfetcher.config.settings import get_settings
from urlfetcher.models.database import UrlFetch

logger = structlog.get_logger(__name__)

_TRIGRAM_DDL = (
    "CREATE EXTENSION IF NOT EXISTS pg_trgm",
    "CREATE INDEX IF NOT EXISTS idx_url_trgm ON url_fetches USING gin (url gin_trgm_ops)",
)


@lru_cache
def get_engine() -> AsyncEngine:
    """Return a cached async database engine (singleton per process)."""
    settings = get_settings()
    if settings.database_url.startswith("sqlite"):
        return create_async_engine(settings.database_url, echo=settings.debug)
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=3600,
    )


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session."""
    engine = get_engine()
    async with AsyncSession(engine) as session:
        yield session


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create the url_fetches table and its indexes if missing.

    Safe to run on every process start. The trigram index only exists on
    PostgreSQL.
    """
    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all, tables=[UrlFetch.__table__])
        if conn.dialect.name == "postgresql":
            for statement in _TRIGRAM_DDL:
                await conn.execute(text(statement))
    logger.info("database_initialized", dialect=engine.dialect.name)
