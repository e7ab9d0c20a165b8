import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncGenerator, AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
    AsyncSession,
)

from usermgmt.config import get_settings

logger = logging.getLogger(__name__)


# The engine is created lazily (on first use) rather than at import time so that
# importing models/repositories never requires a reachable database or a complete environment.
@lru_cache()
def get_engine() -> AsyncEngine:
    settings = get_settings()
    engine = create_async_engine(
        settings.DATABASE_URL,
        echo=settings.SQLALCHEMY_ECHO,    # Set to False in production
        pool_pre_ping=True,               # Enables connection health checks
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
    )
    logger.info("db.engine.created", extra={"dialect": engine.dialect.name})
    return engine


@lru_cache()
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False keeps returned rows readable after the unit of work commits
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,
    )


# Dependency to get DB session
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency. Yields a session and ensures it's closed after the request.

    Usage:
        async def endpoint(db: AsyncSession = Depends(get_async_session)):
            await db.execute(...)
    """
    async with get_sessionmaker()() as session:
        yield session


@asynccontextmanager
async def transaction(session: AsyncSession) -> AsyncIterator[AsyncSession]:
    """
    Unit of work for service-level writes.

    Everything executed inside the block is committed together when the block exits
    normally, and rolled back when it raises, so readers never observe a partial write.

    Usage:
        async with transaction(self.session):
            if await self.repository.exists_by_username(name):
                raise DuplicateUsernameError(name)
            user = await self.repository.create(name)
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise


async def dispose_engine() -> None:
    """Close pooled connections (application shutdown)."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        get_sessionmaker.cache_clear()
        get_engine.cache_clear()
