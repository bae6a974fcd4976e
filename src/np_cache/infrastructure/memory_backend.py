"""In-process cache backend — bounded LRU with per-entry TTL.

Used when no REDIS_URL is configured (local dev, tests, single-instance
deploys). Entries live in a cachetools TLRUCache: once ``max_entries`` is
reached the least recently used entry is evicted, and every entry expires
individually at its own deadline.
"""

import math
import time
from collections.abc import Callable

from cachetools import TLRUCache

from src.np_common.enums import CacheBackendKind


def _expires_at(_key: str, value: tuple[str, int], now: float) -> float:
    _, ttl_ms = value
    if ttl_ms <= 0:
        return math.inf
    return now + ttl_ms / 1000


class MemoryCacheBackend:
    kind = CacheBackendKind.MEMORY
    supports_clear = True

    def __init__(
        self,
        max_entries: int = 100,
        default_ttl_ms: int = 0,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._default_ttl_ms = default_ttl_ms
        self._store: TLRUCache[str, tuple[str, int]] = TLRUCache(
            maxsize=max_entries, ttu=_expires_at, timer=timer
        )

    def __len__(self) -> int:
        self._store.expire()
        return len(self._store)

    async def get(self, key: str) -> str | None:
        entry = self._store.get(key)
        return entry[0] if entry is not None else None

    async def set(self, key: str, value: str, ttl_ms: int | None = None) -> None:
        ttl = self._default_ttl_ms if ttl_ms is None else ttl_ms
        self._store[key] = (value, ttl)

    async def delete(self, key: str) -> None:
        self._store.pop(key, None)

    async def clear(self) -> None:
        self._store.clear()

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._store.clear()
