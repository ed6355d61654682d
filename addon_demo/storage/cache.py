"""Cache implementations."""

import json
from typing import Any

from loguru import logger
from redis import asyncio as aioredis
from redis.exceptions import RedisError

from ..retry import with_connect_retry

COUNTER_KEY = "test:counter"
TOTAL_VIEWS_KEY = "stats:total_views"
SUMMARY_KEY = "daily:summary"


class RedisCache:
    """Redis cache implementation.

    Every operation degrades to a no-op result when Redis is unreachable:
    ``get`` returns None, ``set``/``delete`` return False, ``increment`` returns 0.
    """

    def __init__(self, redis_url: str, connect_attempts: int = 10, retry_step: float = 0.1):
        """Initialize Redis cache.

        Args:
            redis_url: Redis connection URL.
            connect_attempts: Connection attempts before giving up.
            retry_step: Wait increment between attempts, in seconds.
        """
        self.redis_url = redis_url
        self.connect_attempts = connect_attempts
        self.retry_step = retry_step
        self.redis = None

    @property
    def is_ready(self) -> bool:
        """Whether a connection has been established."""
        return self.redis is not None

    def _client_options(self) -> dict[str, Any]:
        options: dict[str, Any] = {"decode_responses": True}
        # Managed Redis serves TLS with a self-signed certificate
        if self.redis_url.startswith("rediss://"):
            options["ssl_cert_reqs"] = None
        return options

    async def startup(self) -> None:
        """Initialize Redis connection."""
        client = aioredis.from_url(self.redis_url, **self._client_options())

        @with_connect_retry(
            "Redis",
            max_attempts=self.connect_attempts,
            exceptions=(RedisError, OSError),
            step=self.retry_step,
        )
        async def ping() -> None:
            await client.ping()

        try:
            await ping()
        except (RedisError, OSError) as e:
            logger.error(
                f"Redis connection failed after {self.connect_attempts} attempts: {e}. "
                "Cache disabled."
            )
            await client.aclose()
            return

        self.redis = client
        logger.info("Redis cache connected")

    async def shutdown(self) -> None:
        """Close Redis connection."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            logger.info("Redis connection closed")

    async def get(self, key: str) -> Any | None:
        """Get cached value.

        Args:
            key: Cache key.

        Returns:
            Decoded value if found, None otherwise.
        """
        if not self.redis:
            return None

        try:
            data = await self.redis.get(key)
            return json.loads(data) if data else None
        except (json.JSONDecodeError, RedisError) as e:
            logger.error(f"Error getting key {key} from Redis: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Set cached value with TTL.

        Args:
            key: Cache key.
            value: JSON-serialisable data to cache.
            ttl: Time to live in seconds.

        Returns:
            True if the value was stored.
        """
        if not self.redis:
            return False

        try:
            await self.redis.setex(key, ttl, json.dumps(value))
        except (TypeError, ValueError, RedisError) as e:
            logger.error(f"Error setting key {key} in Redis: {e}")
            return False
        return True

    async def delete(self, key: str) -> bool:
        """Delete a cached value."""
        if not self.redis:
            return False

        try:
            await self.redis.delete(key)
        except RedisError as e:
            logger.error(f"Error deleting key {key} from Redis: {e}")
            return False
        return True

    async def increment(self, key: str) -> int:
        """Increment an integer counter, returning the new value."""
        if not self.redis:
            return 0

        try:
            return int(await self.redis.incr(key))
        except RedisError as e:
            logger.error(f"Error incrementing key {key} in Redis: {e}")
            return 0

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        if not self.redis:
            return False
        try:
            return bool(await self.redis.ping())
        except RedisError:
            logger.exception("Redis health check failed")
            return False


class NoOpCache:
    """No-op cache implementation when REDIS_URL is not set."""

    is_ready = False

    def __init__(self) -> None:
        """Warn once that caching is off."""
        logger.warning("REDIS_URL not set - Redis caching disabled")

    async def startup(self) -> None:
        """No initialization needed."""
        pass

    async def shutdown(self) -> None:
        """No cleanup needed."""
        pass

    async def get(self, key: str) -> Any | None:
        """Always returns None (no caching)."""
        return None

    async def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        """Does nothing (no caching)."""
        return False

    async def delete(self, key: str) -> bool:
        """Does nothing (no caching)."""
        return False

    async def increment(self, key: str) -> int:
        """Does nothing (no caching)."""
        return 0

    async def health_check(self) -> bool:
        """An absent cache is never healthy."""
        return False
