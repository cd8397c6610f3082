"""Async SQLAlchemy engine and session factory."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from novel_ingest.db.models import Base


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create the async engine for ``url``.

    Pool sizing only applies to server databases; SQLite URLs use the
    driver's default pool.
    """
    if not url.startswith("sqlite"):
        kwargs.setdefault("pool_size", 5)
        kwargs.setdefault("max_overflow", 10)
        kwargs.setdefault("pool_pre_ping", True)
    return create_async_engine(url, echo=False, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_tables(engine: AsyncEngine) -> None:
    """Create all tables if they don't exist (idempotent)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_engine(engine: AsyncEngine) -> None:
    """Dispose the engine and release connection pool."""
    await engine.dispose()
