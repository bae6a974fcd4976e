"""np_preferences REST endpoints.

GET  /users                                — list every user (store only)
POST /users                                — create a user with channel toggles
GET  /users/{user_id}/preferences          — read-through single lookup
PATCH /users/{user_id}/preferences         — toggle email/push, then invalidate
POST /users/preferences                    — create or replace preferences
POST /users/preferences/batch              — read-through batch lookup
GET  /users/{user_id}/opt-out-status       — global + per-channel opt-out
POST /users/{user_id}/last-notification    — fire-and-forget timestamp (204)
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.np_common.database import get_db_session
from src.np_common.response import ApiResponse, success_response
from src.np_preferences.api.dependencies import get_preferences_service
from src.np_preferences.application.schemas import (
    BatchGetRequest,
    CreateUserRequest,
    LastNotificationRequest,
    SubmitPreferencesRequest,
    UpdateChannelTogglesRequest,
)
from src.np_preferences.application.service import PreferencesApplicationService

router = APIRouter(prefix="/users", tags=["preferences"])

ServiceDep = Annotated[PreferencesApplicationService, Depends(get_preferences_service)]
DbDep = Annotated[AsyncSession, Depends(get_db_session)]


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


@router.get("", response_model=ApiResponse, summary="List all users' preferences")
async def list_users(
    request: Request,
    service: ServiceDep,
    db: DbDep,
) -> ApiResponse:
    result = await service.list_preferences(db)
    return success_response(result.model_dump(), request_id=_request_id(request))


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    summary="Create user",
)
async def create_user(
    body: CreateUserRequest,
    request: Request,
    service: ServiceDep,
    db: DbDep,
) -> ApiResponse:
    result = await service.create_user(db, body)
    return success_response(
        result.model_dump(),
        request_id=_request_id(request),
        message="User created",
    )


@router.get("/{user_id}/preferences", response_model=ApiResponse, summary="Get user preferences")
async def get_preferences(
    user_id: str,
    request: Request,
    service: ServiceDep,
    db: DbDep,
    include_channels: bool = Query(True),
) -> ApiResponse:
    result = await service.get_preferences(db, user_id, include_channels)
    return success_response(result.model_dump(), request_id=_request_id(request))


@router.patch(
    "/{user_id}/preferences",
    response_model=ApiResponse,
    summary="Toggle email/push channels",
)
async def update_channel_toggles(
    user_id: str,
    body: UpdateChannelTogglesRequest,
    request: Request,
    service: ServiceDep,
    db: DbDep,
) -> ApiResponse:
    result = await service.update_channel_toggles(db, user_id, body)
    return success_response(
        result.model_dump(),
        request_id=_request_id(request),
        message="Preferences updated",
    )


@router.post(
    "/preferences",
    status_code=status.HTTP_200_OK,
    response_model=ApiResponse,
    summary="Create or replace user preferences",
)
async def submit_preferences(
    body: SubmitPreferencesRequest,
    request: Request,
    service: ServiceDep,
    db: DbDep,
) -> ApiResponse:
    result = await service.submit_preferences(db, body)
    return success_response(
        result.model_dump(),
        request_id=_request_id(request),
        message="Preferences saved",
    )


@router.post("/preferences/batch", response_model=ApiResponse, summary="Batch get preferences")
async def batch_get_preferences(
    body: BatchGetRequest,
    request: Request,
    service: ServiceDep,
    db: DbDep,
) -> ApiResponse:
    result = await service.batch_get_preferences(db, body)
    return success_response(result.model_dump(), request_id=_request_id(request))


@router.get("/{user_id}/opt-out-status", response_model=ApiResponse, summary="Get opt-out status")
async def get_opt_out_status(
    user_id: str,
    request: Request,
    service: ServiceDep,
    db: DbDep,
) -> ApiResponse:
    result = await service.get_opt_out_status(db, user_id)
    return success_response(result.model_dump(), request_id=_request_id(request))


@router.post(
    "/{user_id}/last-notification",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Record last notification time",
)
async def record_last_notification(
    user_id: str,
    body: LastNotificationRequest,
    service: ServiceDep,
) -> Response:
    service.record_last_notification(user_id, body)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
