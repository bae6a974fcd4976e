"""Pydantic response schemas for np_cache admin endpoints."""

from pydantic import BaseModel


class ClearCacheResponse(BaseModel):
    result: str     # "cleared" | "unsupported"
    backend: str    # "memory" | "redis"
