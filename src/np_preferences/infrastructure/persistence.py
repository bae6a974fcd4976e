"""PreferencesRepository — concrete implementation of PreferencesRepositoryProtocol.

ORM-based: a user and its channels/devices form one aggregate, loaded with
selectinload when channels are requested.

Transaction ownership: the CALLER (application service) commits or rolls back.
"""

from collections.abc import Mapping
from datetime import datetime

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.np_common.enums import ChannelFrequency, ChannelType
from src.np_preferences.domain.models import ChannelRecord, DeviceRecord, UserRecord
from src.np_preferences.infrastructure.db_models import (
    UserChannelModel,
    UserDeviceModel,
    UserModel,
)

# ---------------------------------------------------------------------------
# Query builders
# ---------------------------------------------------------------------------

def _user_query(include_channels: bool) -> Select:
    # populate_existing: a read right after an upsert in the same session must
    # see server-side values (updated_at), not the identity-map copy
    stmt = select(UserModel).execution_options(populate_existing=True)
    if include_channels:
        stmt = stmt.options(
            selectinload(UserModel.channels).selectinload(UserChannelModel.devices)
        )
    return stmt


# ---------------------------------------------------------------------------
# Model <-> domain mappers
# ---------------------------------------------------------------------------

def _device_to_record(model: UserDeviceModel) -> DeviceRecord:
    return DeviceRecord(
        device_id=model.device_id,
        platform=model.platform,
        token=model.token,
        active=model.active,
        last_seen=model.last_seen,
    )


def _channel_to_record(model: UserChannelModel) -> ChannelRecord:
    return ChannelRecord(
        channel_type=model.channel_type,
        enabled=model.enabled,
        verified=bool(model.verified),
        frequency=model.frequency,
        quiet_hours_enabled=bool(model.quiet_hours_enabled),
        quiet_hours_start=model.quiet_hours_start,
        quiet_hours_end=model.quiet_hours_end,
        quiet_hours_timezone=model.quiet_hours_timezone,
        devices=[_device_to_record(d) for d in model.devices],
    )


def _user_to_record(model: UserModel, include_channels: bool) -> UserRecord:
    return UserRecord(
        user_id=model.user_id,
        email=model.email,
        phone=model.phone,
        timezone=model.timezone,
        language=model.language,
        notification_enabled=model.notification_enabled,
        marketing=model.marketing,
        transactional=model.transactional,
        reminders=model.reminders,
        digest_enabled=model.digest_enabled,
        digest_frequency=model.digest_frequency,
        digest_time=model.digest_time,
        channels=[_channel_to_record(c) for c in model.channels] if include_channels else None,
        last_notification_email=model.last_notification_email,
        last_notification_push=model.last_notification_push,
        last_notification_id=model.last_notification_id,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _record_to_channel(user_id: str, channel: ChannelRecord) -> UserChannelModel:
    model = UserChannelModel(
        user_id=user_id,
        channel_type=channel.channel_type,
        enabled=channel.enabled,
        verified=channel.verified,
        frequency=channel.frequency,
        quiet_hours_enabled=channel.quiet_hours_enabled,
        quiet_hours_start=channel.quiet_hours_start,
        quiet_hours_end=channel.quiet_hours_end,
        quiet_hours_timezone=channel.quiet_hours_timezone,
        devices=[],
    )
    if channel.channel_type == ChannelType.PUSH:
        model.devices = [
            UserDeviceModel(
                device_id=d.device_id,
                platform=d.platform,
                token=d.token,
                active=d.active,
                last_seen=d.last_seen,
            )
            for d in channel.devices
        ]
    return model


_USER_FIELDS = (
    "email",
    "phone",
    "timezone",
    "language",
    "notification_enabled",
    "marketing",
    "transactional",
    "reminders",
    "digest_enabled",
    "digest_frequency",
    "digest_time",
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------

class PreferencesRepository:
    """Concrete repository — one user aggregate per user_id."""

    async def _get_model(
        self, db: AsyncSession, user_id: str, include_channels: bool
    ) -> UserModel | None:
        result = await db.execute(
            _user_query(include_channels).where(UserModel.user_id == user_id)
        )
        return result.scalar_one_or_none()

    async def get_user(
        self, db: AsyncSession, user_id: str, include_channels: bool
    ) -> UserRecord | None:
        model = await self._get_model(db, user_id, include_channels)
        return _user_to_record(model, include_channels) if model else None

    async def get_users(
        self, db: AsyncSession, user_ids: list[str], include_channels: bool
    ) -> list[UserRecord]:
        if not user_ids:
            return []
        result = await db.execute(
            _user_query(include_channels).where(UserModel.user_id.in_(user_ids))
        )
        return [_user_to_record(m, include_channels) for m in result.scalars().all()]

    async def list_users(self, db: AsyncSession, include_channels: bool) -> list[UserRecord]:
        """Every user, newest first."""
        result = await db.execute(
            _user_query(include_channels).order_by(UserModel.created_at.desc())
        )
        return [_user_to_record(m, include_channels) for m in result.scalars().all()]

    async def email_taken(
        self, db: AsyncSession, email: str, exclude_user_id: str | None = None
    ) -> bool:
        # Checked up front for a clean 409; the UNIQUE constraint is the final guard
        stmt = select(UserModel.user_id).where(UserModel.email == email)
        if exclude_user_id is not None:
            stmt = stmt.where(UserModel.user_id != exclude_user_id)
        result = await db.execute(stmt.limit(1))
        return result.scalar_one_or_none() is not None

    async def create_user(self, db: AsyncSession, user: UserRecord) -> None:
        model = UserModel(user_id=user.user_id, channels=[])
        for name in _USER_FIELDS:
            setattr(model, name, getattr(user, name))
        for channel in user.channels or []:
            model.channels.append(_record_to_channel(user.user_id, channel))
        db.add(model)
        await db.flush()

    async def upsert_user(self, db: AsyncSession, user: UserRecord) -> None:
        """Create or fully replace a user's preferences.

        Existing channels and devices are always dropped; the new set (if any)
        is inserted in a second flush so a re-submitted device_id does not
        collide with its own previous row.
        """
        model = await self._get_model(db, user.user_id, include_channels=True)
        if model is None:
            model = UserModel(user_id=user.user_id, channels=[])
            db.add(model)
        else:
            model.channels.clear()
            await db.flush()

        for name in _USER_FIELDS:
            setattr(model, name, getattr(user, name))

        for channel in user.channels or []:
            model.channels.append(_record_to_channel(user.user_id, channel))
        await db.flush()

    async def set_channels_enabled(
        self, db: AsyncSession, user_id: str, toggles: Mapping[str, bool]
    ) -> bool:
        """Flip ``enabled`` on the named channels, creating any that are missing.

        Returns False for unknown users.
        """
        model = await self._get_model(db, user_id, include_channels=True)
        if model is None:
            return False
        existing = {c.channel_type: c for c in model.channels}
        for channel_type, enabled in toggles.items():
            channel = existing.get(channel_type)
            if channel is not None:
                channel.enabled = enabled
                continue
            model.channels.append(
                _record_to_channel(
                    user_id,
                    ChannelRecord(
                        channel_type=channel_type,
                        enabled=enabled,
                        frequency=(
                            ChannelFrequency.IMMEDIATE.value
                            if channel_type == ChannelType.EMAIL
                            else None
                        ),
                    ),
                )
            )
        await db.flush()
        return True

    async def record_last_notification(
        self,
        db: AsyncSession,
        user_id: str,
        channel: str,
        sent_at: datetime,
        notification_id: str,
    ) -> bool:
        """Stamp the last-notification columns. Returns False for unknown users."""
        model = await self._get_model(db, user_id, include_channels=False)
        if model is None:
            return False
        if channel == ChannelType.EMAIL:
            model.last_notification_email = sent_at
        elif channel == ChannelType.PUSH:
            model.last_notification_push = sent_at
        model.last_notification_id = notification_id
        await db.flush()
        return True
