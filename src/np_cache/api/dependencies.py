"""FastAPI dependency: the process-wide PreferencesCache.

Built once in the app lifespan and stored on ``app.state``; tests replace it
by assigning their own instance there.
"""

from fastapi import Request

from src.np_cache.application.preferences_cache import PreferencesCache
from src.np_common.errors import ServiceUnavailableError


def get_preferences_cache(request: Request) -> PreferencesCache:
    cache = getattr(request.app.state, "preferences_cache", None)
    if cache is None:
        raise ServiceUnavailableError("Preferences cache is not initialised")
    return cache
