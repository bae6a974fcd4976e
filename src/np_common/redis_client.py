"""Redis client factory — used only by the preferences cache backend.

The client is built once in the app lifespan, handed to the Redis cache
backend by reference, and closed on shutdown. There is no module-level pool.
"""

import redis.asyncio as aioredis


def create_redis_client(url: str) -> aioredis.Redis:
    """Build a connection-pooled async client; no connection is opened yet."""
    return aioredis.from_url(url, decode_responses=True)


async def close_redis_client(client: aioredis.Redis) -> None:
    """Close the client and release its pool."""
    await client.aclose()
