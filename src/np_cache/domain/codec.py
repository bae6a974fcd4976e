"""Serialization boundary between cached payloads and backend strings.

PreferencesCache is generic over the payload type; a codec is the only piece
that knows how that type maps to and from the stored string. The cache itself
never looks inside a payload.
"""

import json
from typing import Any, Generic, Protocol, TypeVar

from pydantic import BaseModel

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class CodecProtocol(Protocol[T]):
    def dumps(self, value: T) -> str: ...

    def loads(self, raw: str) -> T: ...


class JsonCodec:
    """Plain JSON for dict/list payloads."""

    def dumps(self, value: Any) -> str:
        return json.dumps(value, separators=(",", ":"), sort_keys=True, default=str)

    def loads(self, raw: str) -> Any:
        return json.loads(raw)


class PydanticCodec(Generic[M]):
    """JSON round-trip through a pydantic model class."""

    def __init__(self, model: type[M]) -> None:
        self._model = model

    def dumps(self, value: M) -> str:
        return value.model_dump_json()

    def loads(self, raw: str) -> M:
        return self._model.model_validate_json(raw)
