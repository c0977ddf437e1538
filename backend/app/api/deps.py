from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession
from backend.app.core.database import async_session
from backend.app.services.cache import CacheService
from backend.app.services.notifications import NotificationDispatcher, get_dispatcher as _default_dispatcher


# Database session per request
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async with async_session() as session:
        yield session


# Redis-backed cache per request
async def get_cache() -> AsyncGenerator[CacheService, None]:
    redis = await CacheService.get_redis()
    yield CacheService(redis)


# Process-wide side-effect dispatcher (printer + live order feed)
def get_dispatcher() -> NotificationDispatcher:
    return _default_dispatcher()
