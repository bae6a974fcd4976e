"""Key-value backend Protocol — the only thing PreferencesCache talks to.

Backends store opaque strings. TTLs arrive in milliseconds (the backend's
native unit); ``None`` means "use the backend's configured default".

Capability is static: ``kind`` and ``supports_clear`` are fixed when the
backend is constructed, so callers branch on a flag instead of probing for
methods at runtime.
"""

from typing import Protocol

from src.np_common.enums import CacheBackendKind


class CacheBackendProtocol(Protocol):
    kind: CacheBackendKind
    supports_clear: bool

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_ms: int | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def clear(self) -> None: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...
