"""PreferencesCache — domain-scoped read-through cache over a key-value backend.

Key policy:
    user:preferences:{user_id}     one entry per user, whole-record values

Single-key operations (get/set/invalidate) surface backend failures as
CacheBackendError; they are never retried here. Batch operations fan out one
single-key call per distinct id with asyncio.gather and settle every call
before returning:

    get_batch / get_batch_detailed   failed lookups count as misses
    set_batch / invalidate_batch     failed ids are returned, siblings kept

clear_all is a debug helper. Backends without bulk clear (Redis) make it a
logged no-op returning ClearResult.UNSUPPORTED.
"""

import asyncio
import logging
from collections.abc import Awaitable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from src.np_cache.domain.backend import CacheBackendProtocol
from src.np_cache.domain.codec import CodecProtocol
from src.np_common.enums import CacheBackendKind, ClearResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_PREFIX = "user:preferences:"


def preferences_cache_key(user_id: str) -> str:
    return f"{KEY_PREFIX}{user_id}"


@dataclass
class BatchLookup(Generic[T]):
    """Outcome of a batch lookup: cached records plus ids whose lookup errored."""

    hits: dict[str, T] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.failed)


class PreferencesCache(Generic[T]):
    def __init__(
        self,
        backend: CacheBackendProtocol,
        codec: CodecProtocol[T],
        default_ttl_seconds: int,
    ) -> None:
        if default_ttl_seconds < 0:
            raise ValueError("default_ttl_seconds must be >= 0")
        self._backend = backend
        self._codec = codec
        self._default_ttl_seconds = default_ttl_seconds

    @property
    def default_ttl_seconds(self) -> int:
        return self._default_ttl_seconds

    @property
    def backend_kind(self) -> CacheBackendKind:
        return self._backend.kind

    def _ttl_ms(self, ttl_seconds: int | None) -> int:
        # 0 / None fall back to the default
        if not ttl_seconds:
            ttl_seconds = self._default_ttl_seconds
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        return ttl_seconds * 1000

    # ------------------------------------------------------------------ #
    # Single user
    # ------------------------------------------------------------------ #

    async def get(self, user_id: str) -> T | None:
        key = preferences_cache_key(user_id)
        raw = await self._backend.get(key)
        if raw is None:
            logger.debug("Preferences cache miss: %s", user_id)
            return None
        try:
            value = self._codec.loads(raw)
        except ValueError as exc:
            # Undecodable entry (e.g. written by an older payload schema)
            logger.warning("Discarding undecodable cache entry %s: %s", key, exc)
            return None
        logger.debug("Preferences cache hit: %s", user_id)
        return value

    async def set(self, user_id: str, record: T, ttl_seconds: int | None = None) -> None:
        ttl_ms = self._ttl_ms(ttl_seconds)
        await self._backend.set(preferences_cache_key(user_id), self._codec.dumps(record), ttl_ms)

    async def invalidate(self, user_id: str) -> None:
        await self._backend.delete(preferences_cache_key(user_id))

    # ------------------------------------------------------------------ #
    # Batch
    # ------------------------------------------------------------------ #

    async def get_batch(self, user_ids: Iterable[str]) -> dict[str, T]:
        lookup = await self.get_batch_detailed(user_ids)
        return lookup.hits

    async def get_batch_detailed(self, user_ids: Iterable[str]) -> BatchLookup[T]:
        ids = list(dict.fromkeys(user_ids))
        outcomes = await asyncio.gather(*(self.get(uid) for uid in ids), return_exceptions=True)

        lookup: BatchLookup[T] = BatchLookup()
        for user_id, outcome in zip(ids, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Preferences cache lookup failed for %s: %s", user_id, outcome)
                lookup.failed.append(user_id)
            elif isinstance(outcome, BaseException):
                raise outcome
            elif outcome is not None:
                lookup.hits[user_id] = outcome
        return lookup

    async def set_batch(
        self, records: Mapping[str, T], ttl_seconds: int | None = None
    ) -> list[str]:
        self._ttl_ms(ttl_seconds)  # reject a bad TTL before dispatching anything
        ids = list(records)
        return await self._settle(
            "set", ids, (self.set(uid, records[uid], ttl_seconds) for uid in ids)
        )

    async def invalidate_batch(self, user_ids: Iterable[str]) -> list[str]:
        ids = list(dict.fromkeys(user_ids))
        return await self._settle(
            "invalidate", ids, (self.invalidate(uid) for uid in ids)
        )

    async def _settle(
        self, operation: str, ids: list[str], calls: Iterable[Awaitable[None]]
    ) -> list[str]:
        """Run every call, wait for all of them, return ids of the ones that failed."""
        outcomes = await asyncio.gather(*calls, return_exceptions=True)
        failed: list[str] = []
        for user_id, outcome in zip(ids, outcomes):
            if isinstance(outcome, Exception):
                logger.warning("Preferences cache %s failed for %s: %s", operation, user_id, outcome)
                failed.append(user_id)
            elif isinstance(outcome, BaseException):
                raise outcome
        return failed

    # ------------------------------------------------------------------ #
    # Whole cache
    # ------------------------------------------------------------------ #

    async def clear_all(self) -> ClearResult:
        if not self._backend.supports_clear:
            logger.warning(
                "Cache backend '%s' does not support clear; leaving entries in place",
                self._backend.kind.value,
            )
            return ClearResult.UNSUPPORTED
        await self._backend.clear()
        logger.info("Preferences cache cleared (%s backend)", self._backend.kind.value)
        return ClearResult.CLEARED

    async def ping(self) -> bool:
        return await self._backend.ping()

    async def close(self) -> None:
        await self._backend.close()
