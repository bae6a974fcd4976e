"""FastAPI dependency: the PreferencesApplicationService built in the lifespan."""

from fastapi import Request

from src.np_common.errors import ServiceUnavailableError
from src.np_preferences.application.service import PreferencesApplicationService


def get_preferences_service(request: Request) -> PreferencesApplicationService:
    service = getattr(request.app.state, "preferences_service", None)
    if service is None:
        raise ServiceUnavailableError("Preferences service is not initialised")
    return service
