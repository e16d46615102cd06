"""Async SQLAlchemy session factory."""
from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.config import get_settings
from services.graph_store import GraphStore, SqlGraphStore


settings = get_settings()

engine = create_async_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    # asyncpg: per-statement timeout so a stuck query cannot hold the request
    connect_args={"command_timeout": settings.db_command_timeout},
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield an async database session.

    Uses unit-of-work pattern: services use flush() for refreshing objects,
    commit happens once here at request end. If anything fails, all changes
    are rolled back, except follow-edge writes, which SqlGraphStore commits
    as it makes them.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_graph_store(
    db: AsyncSession = Depends(get_async_session),
) -> GraphStore:
    """GraphStore bound to the request session."""
    return SqlGraphStore(db)
