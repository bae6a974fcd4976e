"""Redis cache backend.

Wraps an injected ``redis.asyncio.Redis`` client. Every transport or server
error is re-raised as CacheBackendError so callers see a single failure type.
Nothing is retried here; the client's own socket timeouts apply.

Bulk clear is not offered: FLUSHDB would wipe keys this service does not own,
and SCAN+DEL over a shared instance is too expensive for a debug helper.
"""

from redis.asyncio import Redis
from redis.exceptions import RedisError

from src.np_common.enums import CacheBackendKind
from src.np_common.errors import CacheBackendError, CacheOperationUnsupportedError
from src.np_common.redis_client import close_redis_client


class RedisCacheBackend:
    kind = CacheBackendKind.REDIS
    supports_clear = False

    def __init__(self, client: Redis, default_ttl_ms: int = 0) -> None:
        self._client = client
        self._default_ttl_ms = default_ttl_ms

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as exc:
            raise CacheBackendError("get", str(exc)) from exc

    async def set(self, key: str, value: str, ttl_ms: int | None = None) -> None:
        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        try:
            if ttl > 0:
                await self._client.set(key, value, px=ttl)
            else:
                await self._client.set(key, value)
        except RedisError as exc:
            raise CacheBackendError("set", str(exc)) from exc

    async def delete(self, key: str) -> None:
        try:
            await self._client.delete(key)
        except RedisError as exc:
            raise CacheBackendError("delete", str(exc)) from exc

    async def clear(self) -> None:
        raise CacheOperationUnsupportedError("clear", self.kind.value)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await close_redis_client(self._client)
