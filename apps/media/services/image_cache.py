import logging
from typing import Optional

from redis import asyncio as aioredis

logger = logging.getLogger("mediastore.cache")


class ImageCache:
    """
    Redis-backed key/value cache with expiry.
    Used as a positive-existence hint for derived thumbnails, so any Redis
    failure is logged and reported as a miss rather than raised.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379", prefix: str = "media:"):
        self.redis_url = redis_url
        self.prefix = prefix
        self.redis = None

    async def connect(self):
        if not self.redis:
            try:
                self.redis = await aioredis.from_url(self.redis_url, socket_timeout=2.0)
            except Exception as e:
                logger.error(f"Failed to connect to Redis: {e}")
                self.redis = None

    async def has(self, key: str) -> bool:
        try:
            await self.connect()
            if not self.redis:
                return False
            return bool(await self.redis.exists(self.prefix + key))
        except Exception as e:
            logger.warning(f"Redis lookup failed: {e}")
            return False

    async def get(self, key: str) -> Optional[str]:
        try:
            await self.connect()
            if not self.redis:
                return None
            value = await self.redis.get(self.prefix + key)
            if isinstance(value, bytes):
                value = value.decode("utf-8")
            return value
        except Exception as e:
            logger.warning(f"Redis lookup failed: {e}")
            return None

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        try:
            await self.connect()
            if not self.redis:
                return
            await self.redis.setex(self.prefix + key, ttl_seconds, value)
        except Exception as e:
            logger.warning(f"Redis store failed: {e}")

    async def close(self):
        if self.redis:
            await self.redis.close()
            self.redis = None
