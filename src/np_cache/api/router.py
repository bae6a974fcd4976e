"""np_cache REST endpoints.

POST /cache/clear    — drop every cached preferences entry (debug helper)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from src.np_cache.api.dependencies import get_preferences_cache
from src.np_cache.application.preferences_cache import PreferencesCache
from src.np_cache.application.schemas import ClearCacheResponse
from src.np_common.enums import ClearResult
from src.np_common.response import ApiResponse, success_response

router = APIRouter(prefix="/cache", tags=["cache"])


@router.post("/clear", response_model=ApiResponse, summary="Clear preferences cache")
async def clear_cache(
    request: Request,
    cache: Annotated[PreferencesCache, Depends(get_preferences_cache)],
) -> ApiResponse:
    result = await cache.clear_all()
    data = ClearCacheResponse(result=result.value, backend=cache.backend_kind.value)
    message = "Cache cleared" if result is ClearResult.CLEARED else "Cache backend does not support clear"
    return success_response(
        data.model_dump(),
        request_id=getattr(request.state, "request_id", None),
        message=message,
    )
