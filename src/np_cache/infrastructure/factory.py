"""Backend selection — decided once at startup from settings.

REDIS_URL present  → RedisCacheBackend over a freshly built client
REDIS_URL absent   → MemoryCacheBackend bounded by CACHE_MAX_ITEMS
"""

import logging

from redis.asyncio import Redis

from config.settings import Settings
from src.np_cache.domain.backend import CacheBackendProtocol
from src.np_cache.infrastructure.memory_backend import MemoryCacheBackend
from src.np_cache.infrastructure.redis_backend import RedisCacheBackend
from src.np_common.redis_client import create_redis_client

logger = logging.getLogger(__name__)


def build_cache_backend(
    settings: Settings,
    redis_client: Redis | None = None,
) -> CacheBackendProtocol:
    default_ttl_ms = settings.CACHE_TTL * 1000
    if redis_client is None and settings.REDIS_URL:
        redis_client = create_redis_client(settings.REDIS_URL)
    if redis_client is not None:
        logger.info("Preferences cache: redis backend (default ttl %ss)", settings.CACHE_TTL)
        return RedisCacheBackend(redis_client, default_ttl_ms=default_ttl_ms)

    logger.info(
        "Preferences cache: in-memory backend (max %d entries, default ttl %ss)",
        settings.CACHE_MAX_ITEMS,
        settings.CACHE_TTL,
    )
    return MemoryCacheBackend(
        max_entries=settings.CACHE_MAX_ITEMS,
        default_ttl_ms=default_ttl_ms,
    )
