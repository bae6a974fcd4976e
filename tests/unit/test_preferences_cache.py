"""Unit tests for PreferencesCache over the in-memory and Redis backends."""

import fakeredis.aioredis
import pytest

from src.np_cache.application.preferences_cache import (
    KEY_PREFIX,
    PreferencesCache,
    preferences_cache_key,
)
from src.np_cache.domain.codec import JsonCodec, PydanticCodec
from src.np_cache.infrastructure.memory_backend import MemoryCacheBackend
from src.np_cache.infrastructure.redis_backend import RedisCacheBackend
from src.np_common.enums import CacheBackendKind, ClearResult
from src.np_common.errors import CacheBackendError
from src.np_preferences.application.schemas import (
    DigestOut,
    PreferencesOut,
    UserPreferencesResponse,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FlakyBackend(MemoryCacheBackend):
    """Memory backend whose operations fail for a chosen set of keys."""

    def __init__(self, failing_keys: set[str]) -> None:
        super().__init__(max_entries=100)
        self.failing_keys = failing_keys

    def _check(self, op: str, key: str) -> None:
        if key in self.failing_keys:
            raise CacheBackendError(op, "connection reset")

    async def get(self, key: str) -> str | None:
        self._check("get", key)
        return await super().get(key)

    async def set(self, key: str, value: str, ttl_ms: int | None = None) -> None:
        self._check("set", key)
        await super().set(key, value, ttl_ms)

    async def delete(self, key: str) -> None:
        self._check("delete", key)
        await super().delete(key)


def _record(user_id: str, marketing: bool = False) -> dict:
    return {"user_id": user_id, "marketing": marketing, "language": "en"}


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> PreferencesCache[dict]:
    backend = MemoryCacheBackend(max_entries=100, timer=clock)
    return PreferencesCache(backend, JsonCodec(), default_ttl_seconds=3600)


class TestCacheKey:
    def test_key_shape(self) -> None:
        assert preferences_cache_key("usr_ab12cd34") == "user:preferences:usr_ab12cd34"

    def test_prefix_constant(self) -> None:
        assert KEY_PREFIX == "user:preferences:"


class TestConstruction:
    def test_negative_default_ttl_rejected(self) -> None:
        with pytest.raises(ValueError):
            PreferencesCache(MemoryCacheBackend(), JsonCodec(), default_ttl_seconds=-1)

    def test_exposes_backend_kind(self, cache: PreferencesCache[dict]) -> None:
        assert cache.backend_kind == CacheBackendKind.MEMORY
        assert cache.default_ttl_seconds == 3600


class TestSingleUser:
    async def test_miss_returns_none(self, cache: PreferencesCache[dict]) -> None:
        assert await cache.get("usr_missing0") is None

    async def test_write_then_read(self, cache: PreferencesCache[dict]) -> None:
        await cache.set("usr_a", _record("usr_a", marketing=True))
        assert await cache.get("usr_a") == _record("usr_a", marketing=True)

    async def test_overwrite_last_write_wins(self, cache: PreferencesCache[dict]) -> None:
        await cache.set("usr_a", _record("usr_a", marketing=False))
        await cache.set("usr_a", _record("usr_a", marketing=True))
        assert await cache.get("usr_a") == _record("usr_a", marketing=True)

    async def test_invalidate_removes(self, cache: PreferencesCache[dict]) -> None:
        await cache.set("usr_a", _record("usr_a"))
        await cache.invalidate("usr_a")
        assert await cache.get("usr_a") is None

    async def test_invalidate_is_idempotent(self, cache: PreferencesCache[dict]) -> None:
        await cache.invalidate("usr_never")
        await cache.set("usr_a", _record("usr_a"))
        await cache.invalidate("usr_a")
        await cache.invalidate("usr_a")
        assert await cache.get("usr_a") is None

    async def test_prefix_and_suffix_ids_are_isolated(self, cache: PreferencesCache[dict]) -> None:
        await cache.set("usr_a", _record("usr_a"))
        await cache.set("usr_ab", _record("usr_ab"))
        await cache.set("xusr_a", _record("xusr_a"))

        await cache.invalidate("usr_ab")

        assert await cache.get("usr_a") == _record("usr_a")
        assert await cache.get("xusr_a") == _record("xusr_a")
        assert await cache.get("usr_ab") is None

    async def test_undecodable_entry_is_a_miss(self, clock: FakeClock) -> None:
        backend = MemoryCacheBackend(timer=clock)
        cache = PreferencesCache(backend, JsonCodec(), default_ttl_seconds=60)
        await backend.set(preferences_cache_key("usr_a"), "{not json")
        assert await cache.get("usr_a") is None

    async def test_backend_failure_propagates(self) -> None:
        backend = FlakyBackend({preferences_cache_key("usr_bad")})
        cache = PreferencesCache(backend, JsonCodec(), default_ttl_seconds=60)
        with pytest.raises(CacheBackendError):
            await cache.get("usr_bad")
        with pytest.raises(CacheBackendError):
            await cache.set("usr_bad", _record("usr_bad"))
        with pytest.raises(CacheBackendError):
            await cache.invalidate("usr_bad")


class TestTtl:
    async def test_entry_expires_after_override(
        self, cache: PreferencesCache[dict], clock: FakeClock
    ) -> None:
        await cache.set("usr_a", _record("usr_a"), ttl_seconds=1)
        clock.advance(0.5)
        assert await cache.get("usr_a") == _record("usr_a")
        clock.advance(1.0)
        assert await cache.get("usr_a") is None

    async def test_default_ttl_applies(self, cache: PreferencesCache[dict], clock: FakeClock) -> None:
        await cache.set("usr_a", _record("usr_a"))
        clock.advance(3599)
        assert await cache.get("usr_a") is not None
        clock.advance(2)
        assert await cache.get("usr_a") is None

    async def test_zero_ttl_means_default(self, cache: PreferencesCache[dict], clock: FakeClock) -> None:
        await cache.set("usr_a", _record("usr_a"), ttl_seconds=0)
        clock.advance(10)
        assert await cache.get("usr_a") is not None

    async def test_negative_ttl_rejected(self, cache: PreferencesCache[dict]) -> None:
        with pytest.raises(ValueError):
            await cache.set("usr_a", _record("usr_a"), ttl_seconds=-5)


class TestBatch:
    async def test_get_batch_returns_subset_of_requested(self, cache: PreferencesCache[dict]) -> None:
        await cache.set("usr_a", _record("usr_a"))
        await cache.set("usr_c", _record("usr_c"))
        await cache.set("usr_z", _record("usr_z"))

        hits = await cache.get_batch(["usr_a", "usr_b", "usr_c"])

        assert set(hits) == {"usr_a", "usr_c"}
        assert hits["usr_a"] == _record("usr_a")

    async def test_get_batch_deduplicates(self, cache: PreferencesCache[dict]) -> None:
        await cache.set("usr_a", _record("usr_a"))
        hits = await cache.get_batch(["usr_a", "usr_a"])
        assert hits == {"usr_a": _record("usr_a")}

    async def test_get_batch_empty_input(self, cache: PreferencesCache[dict]) -> None:
        assert await cache.get_batch([]) == {}

    async def test_set_batch_writes_every_entry(self, cache: PreferencesCache[dict]) -> None:
        failed = await cache.set_batch({"usr_a": _record("usr_a"), "usr_b": _record("usr_b")})
        assert failed == []
        assert await cache.get_batch(["usr_a", "usr_b"]) == {
            "usr_a": _record("usr_a"),
            "usr_b": _record("usr_b"),
        }

    async def test_set_batch_shares_ttl(self, cache: PreferencesCache[dict], clock: FakeClock) -> None:
        await cache.set_batch({"usr_a": _record("usr_a"), "usr_b": _record("usr_b")}, ttl_seconds=1)
        clock.advance(2)
        assert await cache.get_batch(["usr_a", "usr_b"]) == {}

    async def test_set_batch_rejects_negative_ttl_before_writing(
        self, cache: PreferencesCache[dict]
    ) -> None:
        with pytest.raises(ValueError):
            await cache.set_batch({"usr_a": _record("usr_a")}, ttl_seconds=-1)
        assert await cache.get("usr_a") is None

    async def test_invalidate_batch(self, cache: PreferencesCache[dict]) -> None:
        await cache.set_batch({"usr_a": _record("usr_a"), "usr_b": _record("usr_b")})
        failed = await cache.invalidate_batch(["usr_a", "usr_b", "usr_missing"])
        assert failed == []
        assert await cache.get_batch(["usr_a", "usr_b"]) == {}


class TestBatchIndependence:
    async def test_failing_lookup_counts_as_miss(self) -> None:
        backend = FlakyBackend({preferences_cache_key("usr_bad")})
        cache = PreferencesCache(backend, JsonCodec(), default_ttl_seconds=60)
        await cache.set("usr_ok", _record("usr_ok"))

        hits = await cache.get_batch(["usr_ok", "usr_bad"])

        assert hits == {"usr_ok": _record("usr_ok")}

    async def test_detailed_lookup_reports_failures(self) -> None:
        backend = FlakyBackend({preferences_cache_key("usr_bad")})
        cache = PreferencesCache(backend, JsonCodec(), default_ttl_seconds=60)
        await cache.set("usr_ok", _record("usr_ok"))

        lookup = await cache.get_batch_detailed(["usr_ok", "usr_bad", "usr_miss"])

        assert lookup.hits == {"usr_ok": _record("usr_ok")}
        assert lookup.failed == ["usr_bad"]
        assert lookup.degraded is True

    async def test_set_batch_siblings_survive_a_failure(self) -> None:
        backend = FlakyBackend({preferences_cache_key("usr_bad")})
        cache = PreferencesCache(backend, JsonCodec(), default_ttl_seconds=60)

        failed = await cache.set_batch({"usr_ok": _record("usr_ok"), "usr_bad": _record("usr_bad")})

        assert failed == ["usr_bad"]
        assert await cache.get("usr_ok") == _record("usr_ok")

    async def test_invalidate_batch_siblings_survive_a_failure(self) -> None:
        backend = FlakyBackend(set())
        cache = PreferencesCache(backend, JsonCodec(), default_ttl_seconds=60)
        await cache.set_batch({"usr_ok": _record("usr_ok"), "usr_bad": _record("usr_bad")})
        backend.failing_keys.add(preferences_cache_key("usr_bad"))

        failed = await cache.invalidate_batch(["usr_ok", "usr_bad"])

        assert failed == ["usr_bad"]
        assert await cache.get("usr_ok") is None
        backend.failing_keys.clear()
        assert await cache.get("usr_bad") == _record("usr_bad")


class TestClearAll:
    async def test_memory_backend_clears(self, cache: PreferencesCache[dict]) -> None:
        await cache.set_batch({"usr_a": _record("usr_a"), "usr_b": _record("usr_b")})
        assert await cache.clear_all() is ClearResult.CLEARED
        assert await cache.get_batch(["usr_a", "usr_b"]) == {}

    async def test_redis_backend_leaves_entries(self) -> None:
        fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
        cache = PreferencesCache(RedisCacheBackend(fake), JsonCodec(), default_ttl_seconds=60)
        await cache.set("usr_a", _record("usr_a"))

        assert await cache.clear_all() is ClearResult.UNSUPPORTED
        assert await cache.get("usr_a") == _record("usr_a")


class TestPydanticPayload:
    async def test_round_trips_response_model(self, clock: FakeClock) -> None:
        cache: PreferencesCache[UserPreferencesResponse] = PreferencesCache(
            MemoryCacheBackend(timer=clock),
            PydanticCodec(UserPreferencesResponse),
            default_ttl_seconds=60,
        )
        prefs = UserPreferencesResponse(
            user_id="usr_ab12cd34",
            email="a@example.com",
            phone=None,
            timezone="UTC",
            language="en",
            notification_enabled=True,
            preferences=PreferencesOut(
                marketing=False,
                transactional=True,
                reminders=True,
                digest=DigestOut(enabled=False, frequency="daily", time="09:00"),
            ),
            updated_at=None,
        )

        await cache.set(prefs.user_id, prefs)

        assert await cache.get(prefs.user_id) == prefs
