"""Repository Protocol — dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from collections.abc import Mapping
from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.np_preferences.domain.models import UserRecord


class PreferencesRepositoryProtocol(Protocol):
    async def get_user(
        self, db: AsyncSession, user_id: str, include_channels: bool
    ) -> UserRecord | None: ...

    async def get_users(
        self, db: AsyncSession, user_ids: list[str], include_channels: bool
    ) -> list[UserRecord]: ...

    async def list_users(self, db: AsyncSession, include_channels: bool) -> list[UserRecord]: ...

    async def email_taken(
        self, db: AsyncSession, email: str, exclude_user_id: str | None = None
    ) -> bool: ...

    async def create_user(self, db: AsyncSession, user: UserRecord) -> None: ...

    async def upsert_user(self, db: AsyncSession, user: UserRecord) -> None: ...

    async def set_channels_enabled(
        self, db: AsyncSession, user_id: str, toggles: Mapping[str, bool]
    ) -> bool: ...

    async def record_last_notification(
        self,
        db: AsyncSession,
        user_id: str,
        channel: str,
        sent_at: datetime,
        notification_id: str,
    ) -> bool: ...
