"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from config.settings import settings
from src.np_cache.api.router import router as cache_router
from src.np_cache.application.preferences_cache import PreferencesCache
from src.np_cache.domain.codec import PydanticCodec
from src.np_cache.infrastructure.factory import build_cache_backend
from src.np_common.background import BackgroundTaskSupervisor
from src.np_common.database import engine, ping_database
from src.np_common.errors import AppError, ValidationError
from src.np_common.response import error_response
from src.np_gateway.middleware.request_log import RequestLogMiddleware
from src.np_preferences.api.router import router as preferences_router
from src.np_preferences.application.schemas import UserPreferencesResponse
from src.np_preferences.application.service import PreferencesApplicationService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: verify DB, build cache + services. Shutdown: drain, close, dispose."""
    # Startup
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    await ping_database()

    cache: PreferencesCache[UserPreferencesResponse] = PreferencesCache(
        build_cache_backend(settings),
        PydanticCodec(UserPreferencesResponse),
        default_ttl_seconds=settings.CACHE_TTL,
    )
    supervisor = BackgroundTaskSupervisor()
    app.state.preferences_cache = cache
    app.state.background_tasks = supervisor
    app.state.preferences_service = PreferencesApplicationService(
        cache,
        supervisor,
        batch_max_users=settings.BATCH_MAX_USERS,
    )
    yield
    # Shutdown
    await supervisor.shutdown()
    await cache.close()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)


app.add_middleware(RequestLogMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.http_status >= 500:
        logger.error("Request failed: [%d] %s", exc.code, exc.message)
    resp = error_response(
        exc.code,
        exc.message,
        details=exc.details,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(
        status_code=exc.http_status,
        content=resp.model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    err = ValidationError(details={"errors": jsonable_encoder(exc.errors())})
    return await app_error_handler(request, err)


app.include_router(preferences_router, prefix="/api/v1")
app.include_router(cache_router, prefix="/api/v1")


@app.get("/health")
@app.get("/health/live")
async def health() -> dict[str, str]:
    return {
        "status": "ok",
        "service": "notification-preferences",
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.get("/health/ready")
async def readiness(request: Request) -> JSONResponse:
    checks: dict[str, str] = {}
    try:
        await ping_database()
        checks["database"] = "up"
    except Exception as exc:
        logger.warning("Readiness: database ping failed: %s", exc)
        checks["database"] = "down"

    # Cache state is reported but never fails readiness
    cache = getattr(request.app.state, "preferences_cache", None)
    if cache is None:
        checks["cache"] = "uninitialised"
    else:
        reachable = await cache.ping()
        checks["cache"] = f"{cache.backend_kind.value}:{'up' if reachable else 'down'}"

    ready = checks["database"] == "up"
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ok" if ready else "unavailable", "checks": checks},
    )
