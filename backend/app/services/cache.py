"""
Redis cache for delivery-zone reference data.

Zone resolution runs on every checkout and every "do you deliver here?"
lookup, so the active-zone snapshot is served from Redis and rebuilt from
the database after any admin write.
"""
import json
from typing import Optional, Any, List
from redis.asyncio import Redis

from backend.app.core.settings import get_settings


class CacheService:
    """Service for caching operations using Redis."""

    _redis: Optional[Redis] = None

    TTL_DEFAULT = 300

    KEY_ACTIVE_ZONES = "zones:active"

    @classmethod
    async def get_redis(cls) -> Redis:
        """Get or create Redis connection."""
        if cls._redis is None:
            settings = get_settings()
            cls._redis = Redis(
                host=settings.REDIS_HOST,
                port=settings.REDIS_PORT,
                db=settings.REDIS_DB,
                decode_responses=True
            )
        return cls._redis

    @classmethod
    async def close(cls):
        """Close Redis connection."""
        if cls._redis:
            await cls._redis.close()
            cls._redis = None

    def __init__(self, redis: Redis):
        self.redis = redis

    async def get(self, key: str) -> Optional[Any]:
        data = await self.redis.get(key)
        if data:
            return json.loads(data)
        return None

    async def set(self, key: str, value: Any, ttl: int = TTL_DEFAULT):
        await self.redis.set(key, json.dumps(value, ensure_ascii=False), ex=ttl)

    async def delete(self, key: str):
        await self.redis.delete(key)

    # ----- Delivery zones -----

    async def get_active_zones(self) -> Optional[List[dict]]:
        """Cached list of active zones (dicts), or None on a miss."""
        return await self.get(self.KEY_ACTIVE_ZONES)

    async def set_active_zones(self, zones: List[dict], ttl: Optional[int] = None):
        if ttl is None:
            ttl = get_settings().ZONE_CACHE_TTL
        await self.set(self.KEY_ACTIVE_ZONES, zones, ttl)

    async def invalidate_zones(self):
        await self.delete(self.KEY_ACTIVE_ZONES)
