"""Unified API response wrapper.

Every endpoint except 204s returns this envelope:
{
    "code": 0,           // 0=success, non-0=error code
    "message": "success",
    "data": { ... },     // null on error
    "details": { ... },  // error context, empty on success
    "timestamp": "...",
    "request_id": "..."
}
"""

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


class ApiResponse(BaseModel):
    code: int = 0
    message: str = "success"
    data: Any = None
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = Field(default_factory=new_request_id)


def success_response(
    data: Any = None,
    request_id: str | None = None,
    message: str = "success",
) -> ApiResponse:
    resp = ApiResponse(code=0, message=message, data=data)
    if request_id:
        resp.request_id = request_id
    return resp


def error_response(
    code: int,
    message: str,
    details: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> ApiResponse:
    resp = ApiResponse(code=code, message=message, data=None, details=details or {})
    if request_id:
        resp.request_id = request_id
    return resp
