"""
Health Store - Async Redis-based durable cache for dependency health.

Simple key/value contract:
- get(key) -> Optional[str]
- set(key, value)
Values are JSON-serialized ServiceHealth records keyed serverHealth:<dependency>,
so the monitor can restore its last known verdicts after a restart.
"""
import redis.asyncio as redis
from typing import Optional

from config import REDIS_HOST, REDIS_PORT, REDIS_DB
from logs.logging_config import get_health_logger

logger = get_health_logger()


class HealthStore:
    """
    Async Redis-based store for health records.

    Keys never expire; each probe overwrites the previous record.
    """

    def __init__(
        self,
        host: str = REDIS_HOST,
        port: int = REDIS_PORT,
        db: int = REDIS_DB
    ):
        self._redis: Optional[redis.Redis] = None
        self._host = host
        self._port = port
        self._db = db

    async def _get_redis(self) -> redis.Redis:
        """Get or create async Redis connection."""
        if self._redis is None:
            self._redis = redis.Redis(
                host=self._host,
                port=self._port,
                db=self._db,
                decode_responses=True
            )
            logger.info(f"[HEALTH_STORE] Initialized | host={self._host}:{self._port} | db={self._db}")
        return self._redis

    async def close(self):
        """Close Redis connection."""
        if self._redis:
            await self._redis.close()
            self._redis = None

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value or None if absent."""
        r = await self._get_redis()
        value = await r.get(key)
        logger.debug(f"[HEALTH_STORE] Get | key={key} | found={value is not None}")
        return value

    async def set(self, key: str, value: str) -> None:
        """Overwrite the stored value."""
        r = await self._get_redis()
        await r.set(key, value)
        logger.debug(f"[HEALTH_STORE] Set | key={key}")
