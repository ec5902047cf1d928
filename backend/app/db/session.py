from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings

# asyncpg rejects sslmode/channel_binding, so always connect with the cleaned URL.
DATABASE_URL_ASYNC = settings.DATABASE_URL_ASYNC_CLEAN
IS_SQLITE = DATABASE_URL_ASYNC.startswith("sqlite")

_engine_kwargs: dict = {"echo": False, "future": True}
if not IS_SQLITE:
    # Pool tuning only applies to server databases.
    _engine_kwargs.update(pool_pre_ping=True, pool_recycle=300)

engine: AsyncEngine = create_async_engine(DATABASE_URL_ASYNC, **_engine_kwargs)

# expire_on_commit=False: handlers read attributes of committed rows without
# another round trip (and without lazy IO in async code).
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One AsyncSession per request. Anything left uncommitted when the request
    ends is rolled back by close().
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()
