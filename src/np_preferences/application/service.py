"""PreferencesApplicationService — read-through / write-invalidate composition.

Reads:  cache → (miss) repository → cache populated before returning.
Writes: repository + commit → cache invalidate. Never the other way round:
        invalidating first would let a concurrent reader re-cache the old row.

Every committed write to a user row invalidates that user's entry, including
the background last-notification stamp (it moves ``updated_at``).

Cache population is awaited inline so the row written to the cache is the one
just read; a fill racing a concurrent write can still land after that write's
invalidation, and then lives until CACHE_TTL.

The cache is an optimisation only. Every cache failure on these paths is
logged and swallowed here; the database result is what the caller gets.
"""

import logging
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from src.np_cache.application.preferences_cache import PreferencesCache
from src.np_common.background import BackgroundTaskSupervisor
from src.np_common.database import async_session_factory
from src.np_common.errors import (
    BatchTooLargeError,
    CacheBackendError,
    DuplicateUserIdsError,
    EmailAlreadyExistsError,
    InternalError,
    NoFieldsProvidedError,
    UserNotFoundError,
)
from src.np_common.id_generator import new_user_id
from src.np_preferences.application.schemas import (
    BatchGetRequest,
    BatchGetResponse,
    CreateUserRequest,
    LastNotificationRequest,
    OptOutStatusResponse,
    SubmitPreferencesRequest,
    UpdateChannelTogglesRequest,
    UserListResponse,
    UserPreferencesResponse,
)
from src.np_preferences.domain.repository import PreferencesRepositoryProtocol
from src.np_preferences.infrastructure.persistence import PreferencesRepository

logger = logging.getLogger(__name__)


class PreferencesApplicationService:
    def __init__(
        self,
        cache: PreferencesCache[UserPreferencesResponse],
        supervisor: BackgroundTaskSupervisor,
        repo: PreferencesRepositoryProtocol | None = None,
        session_factory: Callable[[], AsyncSession] | None = None,
        batch_max_users: int = 100,
    ) -> None:
        self._cache = cache
        self._supervisor = supervisor
        self._repo: PreferencesRepositoryProtocol = repo or PreferencesRepository()
        self._session_factory = session_factory or async_session_factory
        self._batch_max_users = batch_max_users

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def get_preferences(
        self, db: AsyncSession, user_id: str, include_channels: bool = True
    ) -> UserPreferencesResponse:
        prefs = await self._read_through(db, user_id)
        return prefs if include_channels else prefs.without_channels()

    async def list_preferences(self, db: AsyncSession) -> UserListResponse:
        """All users straight from the store, newest first; the cache is not consulted."""
        users = await self._repo.list_users(db, include_channels=True)
        items = [UserPreferencesResponse.from_domain(u) for u in users]
        return UserListResponse(users=items, total=len(items))

    async def batch_get_preferences(
        self, db: AsyncSession, request: BatchGetRequest
    ) -> BatchGetResponse:
        if len(request.user_ids) > self._batch_max_users:
            raise BatchTooLargeError(self._batch_max_users, len(request.user_ids))
        user_ids = list(dict.fromkeys(request.user_ids))
        if len(user_ids) != len(request.user_ids):
            raise DuplicateUserIdsError(len(request.user_ids), len(user_ids))

        lookup = await self._cache.get_batch_detailed(user_ids)
        if lookup.degraded:
            logger.warning(
                "Batch cache lookup degraded: %d of %d lookups failed, reading them from DB",
                len(lookup.failed),
                len(user_ids),
            )

        misses = [uid for uid in user_ids if uid not in lookup.hits]
        fetched: dict[str, UserPreferencesResponse] = {}
        if misses:
            users = await self._repo.get_users(db, misses, include_channels=True)
            fetched = {u.user_id: UserPreferencesResponse.from_domain(u) for u in users}
            await self._populate(fetched)

        found = {**lookup.hits, **fetched}
        items = [
            found[uid] if request.include_channels else found[uid].without_channels()
            for uid in user_ids
            if uid in found
        ]
        return BatchGetResponse(
            users=items,
            not_found=[uid for uid in user_ids if uid not in found],
            total_requested=len(user_ids),
            total_found=len(items),
        )

    async def get_opt_out_status(self, db: AsyncSession, user_id: str) -> OptOutStatusResponse:
        prefs = await self._read_through(db, user_id)
        return OptOutStatusResponse.from_preferences(prefs)

    async def _read_through(self, db: AsyncSession, user_id: str) -> UserPreferencesResponse:
        try:
            cached = await self._cache.get(user_id)
        except CacheBackendError as exc:
            logger.warning("Cache read failed for %s, falling back to DB: %s", user_id, exc.message)
            cached = None
        if cached is not None:
            return cached

        user = await self._repo.get_user(db, user_id, include_channels=True)
        if user is None:
            raise UserNotFoundError(user_id)
        prefs = UserPreferencesResponse.from_domain(user)
        await self._populate({user_id: prefs})
        return prefs

    async def _populate(self, records: dict[str, UserPreferencesResponse]) -> None:
        # set_batch settles every write and reports failures instead of raising
        failed = await self._cache.set_batch(records)
        if failed:
            logger.warning("Cache population skipped %d of %d users", len(failed), len(records))

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def create_user(
        self, db: AsyncSession, request: CreateUserRequest
    ) -> UserPreferencesResponse:
        email = str(request.email)
        if await self._repo.email_taken(db, email):
            raise EmailAlreadyExistsError(email)

        user_id = new_user_id()
        try:
            await self._repo.create_user(db, request.to_domain(user_id))
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Created user %s", user_id)
        return await self._reload(db, user_id)

    async def submit_preferences(
        self, db: AsyncSession, request: SubmitPreferencesRequest
    ) -> UserPreferencesResponse:
        email = str(request.email)
        if await self._repo.email_taken(db, email, exclude_user_id=request.user_id):
            raise EmailAlreadyExistsError(email)

        try:
            await self._repo.upsert_user(db, request.to_domain())
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await self._invalidate(request.user_id)
        return await self._reload(db, request.user_id)

    async def update_channel_toggles(
        self, db: AsyncSession, user_id: str, request: UpdateChannelTogglesRequest
    ) -> UserPreferencesResponse:
        toggles = request.toggles()
        if not toggles:
            raise NoFieldsProvidedError()

        try:
            updated = await self._repo.set_channels_enabled(db, user_id, toggles)
            if not updated:
                raise UserNotFoundError(user_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        await self._invalidate(user_id)
        return await self._reload(db, user_id)

    async def _reload(self, db: AsyncSession, user_id: str) -> UserPreferencesResponse:
        user = await self._repo.get_user(db, user_id, include_channels=True)
        if user is None:
            raise InternalError(f"Preferences for {user_id} vanished after commit")
        return UserPreferencesResponse.from_domain(user)

    async def _invalidate(self, user_id: str) -> None:
        try:
            await self._cache.invalidate(user_id)
        except CacheBackendError as exc:
            # Entry expires at TTL anyway; the write itself already succeeded
            logger.error("Cache invalidation failed for %s: %s", user_id, exc.message)

    def record_last_notification(self, user_id: str, request: LastNotificationRequest) -> None:
        """Fire-and-forget: returns immediately, the DB write runs supervised."""
        self._supervisor.spawn(
            self._write_last_notification(user_id, request),
            name=f"last-notification:{user_id}",
        )

    async def _write_last_notification(self, user_id: str, request: LastNotificationRequest) -> None:
        async with self._session_factory() as db:
            try:
                updated = await self._repo.record_last_notification(
                    db,
                    user_id,
                    request.channel.value,
                    request.sent_at,
                    request.notification_id,
                )
                await db.commit()
            except Exception:
                await db.rollback()
                raise
        if not updated:
            logger.info("Last-notification update ignored for unknown user %s", user_id)
            return
        await self._invalidate(user_id)
