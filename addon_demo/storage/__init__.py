"""Storage module with factories for the repository and cache add-ons."""

from loguru import logger

from ..config import Settings, settings
from .cache import COUNTER_KEY, SUMMARY_KEY, TOTAL_VIEWS_KEY, NoOpCache, RedisCache
from .database import NoOpRepository, PageViewRepository
from .protocols import Cache, Repository


def create_repository(config: Settings | None = None) -> Repository:
    """Create repository instance based on DATABASE_URL.

    Args:
        config: Settings to read. Uses the global settings if not provided.

    Returns:
        Repository instance.
    """
    config = config or settings
    if not config.database_url:
        return NoOpRepository()

    logger.info("Creating PostgreSQL repository")
    return PageViewRepository(
        config.database_url,
        require_ssl=config.database_requires_ssl,
        connect_attempts=config.connect_attempts,
    )


def create_cache(config: Settings | None = None) -> Cache:
    """Create cache instance based on REDIS_URL.

    Args:
        config: Settings to read. Uses the global settings if not provided.

    Returns:
        Cache instance.
    """
    config = config or settings
    if not config.redis_url:
        return NoOpCache()

    logger.info("Creating Redis cache")
    return RedisCache(config.redis_url, connect_attempts=config.connect_attempts)


__all__ = [
    "COUNTER_KEY",
    "SUMMARY_KEY",
    "TOTAL_VIEWS_KEY",
    "Cache",
    "NoOpCache",
    "NoOpRepository",
    "PageViewRepository",
    "RedisCache",
    "Repository",
    "create_cache",
    "create_repository",
]
