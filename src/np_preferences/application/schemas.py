"""Pydantic request/response schemas for np_preferences.

UserPreferencesResponse doubles as the cached payload: the cache stores its
JSON form with channels always included, and include_channels=false is
applied on the way out.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, EmailStr, Field

from src.np_common.enums import ChannelFrequency, ChannelType, DevicePlatform, DigestFrequency
from src.np_preferences.domain.models import (
    ChannelRecord,
    DeviceRecord,
    UserRecord,
)

_HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class QuietHoursOut(BaseModel):
    enabled: bool
    start: str | None = None
    end: str | None = None
    timezone: str | None = None

    @classmethod
    def from_channel(cls, ch: ChannelRecord | None) -> "QuietHoursOut":
        if ch is None:
            return cls(enabled=False)
        return cls(
            enabled=ch.quiet_hours_enabled,
            start=ch.quiet_hours_start,
            end=ch.quiet_hours_end,
            timezone=ch.quiet_hours_timezone,
        )


class DeviceOut(BaseModel):
    device_id: str
    platform: str
    token: str
    last_seen: str | None
    active: bool

    @classmethod
    def from_domain(cls, d: DeviceRecord) -> "DeviceOut":
        return cls(
            device_id=d.device_id,
            platform=d.platform,
            token=d.token,
            last_seen=_iso(d.last_seen),
            active=d.active,
        )


class EmailChannelOut(BaseModel):
    enabled: bool
    verified: bool
    frequency: str
    quiet_hours: QuietHoursOut


class PushChannelOut(BaseModel):
    enabled: bool
    devices: list[DeviceOut]
    quiet_hours: QuietHoursOut


class ChannelsOut(BaseModel):
    email: EmailChannelOut
    push: PushChannelOut

    @classmethod
    def from_domain(cls, user: UserRecord) -> "ChannelsOut":
        """Missing channels render as disabled with default settings."""
        email = user.channel(ChannelType.EMAIL)
        push = user.channel(ChannelType.PUSH)
        return cls(
            email=EmailChannelOut(
                enabled=email.enabled if email else False,
                verified=email.verified if email else False,
                frequency=(email.frequency if email and email.frequency else ChannelFrequency.IMMEDIATE.value),
                quiet_hours=QuietHoursOut.from_channel(email),
            ),
            push=PushChannelOut(
                enabled=push.enabled if push else False,
                devices=[DeviceOut.from_domain(d) for d in push.devices] if push else [],
                quiet_hours=QuietHoursOut.from_channel(push),
            ),
        )


class DigestOut(BaseModel):
    enabled: bool
    frequency: str
    time: str


class PreferencesOut(BaseModel):
    marketing: bool
    transactional: bool
    reminders: bool
    digest: DigestOut


class UserPreferencesResponse(BaseModel):
    user_id: str
    email: str
    phone: str | None
    timezone: str
    language: str
    notification_enabled: bool
    channels: ChannelsOut | None = None
    preferences: PreferencesOut
    updated_at: str | None

    @classmethod
    def from_domain(cls, user: UserRecord) -> "UserPreferencesResponse":
        return cls(
            user_id=user.user_id,
            email=user.email,
            phone=user.phone,
            timezone=user.timezone,
            language=user.language,
            notification_enabled=user.notification_enabled,
            channels=ChannelsOut.from_domain(user) if user.channels is not None else None,
            preferences=PreferencesOut(
                marketing=user.marketing,
                transactional=user.transactional,
                reminders=user.reminders,
                digest=DigestOut(
                    enabled=user.digest_enabled,
                    frequency=user.digest_frequency,
                    time=user.digest_time,
                ),
            ),
            updated_at=_iso(user.updated_at),
        )

    def without_channels(self) -> "UserPreferencesResponse":
        return self.model_copy(update={"channels": None})


class BatchGetResponse(BaseModel):
    users: list[UserPreferencesResponse]
    not_found: list[str]
    total_requested: int
    total_found: int


class OptOutChannelsOut(BaseModel):
    email: bool
    push: bool


class OptOutStatusResponse(BaseModel):
    user_id: str
    opted_out: bool
    channels: OptOutChannelsOut
    checked_at: str

    @classmethod
    def from_preferences(cls, prefs: UserPreferencesResponse) -> "OptOutStatusResponse":
        """Global opt-out wins; otherwise a channel is opted out when disabled or absent."""
        globally_out = not prefs.notification_enabled
        email_on = bool(prefs.channels and prefs.channels.email.enabled)
        push_on = bool(prefs.channels and prefs.channels.push.enabled)
        return cls(
            user_id=prefs.user_id,
            opted_out=globally_out,
            channels=OptOutChannelsOut(
                email=globally_out or not email_on,
                push=globally_out or not push_on,
            ),
            checked_at=datetime.now(timezone.utc).isoformat(),
        )


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class QuietHoursIn(BaseModel):
    enabled: bool
    start: str | None = Field(None, pattern=_HHMM)
    end: str | None = Field(None, pattern=_HHMM)
    timezone: str | None = Field(None, max_length=50)


class DeviceIn(BaseModel):
    device_id: str = Field(..., min_length=1, max_length=50)
    platform: DevicePlatform
    token: str = Field(..., min_length=1)
    active: bool = True


class EmailChannelIn(BaseModel):
    enabled: bool
    verified: bool = False
    frequency: ChannelFrequency = ChannelFrequency.IMMEDIATE
    quiet_hours: QuietHoursIn


class PushChannelIn(BaseModel):
    enabled: bool
    devices: list[DeviceIn] = Field(default_factory=list)
    quiet_hours: QuietHoursIn


class ChannelsIn(BaseModel):
    email: EmailChannelIn
    push: PushChannelIn


class DigestIn(BaseModel):
    enabled: bool
    frequency: str = Field(..., min_length=1, max_length=20)
    time: str = Field(..., pattern=_HHMM)


class PreferencesIn(BaseModel):
    marketing: bool
    transactional: bool
    reminders: bool
    digest: DigestIn


class SubmitPreferencesRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: str | None = Field(None, max_length=20)
    timezone: str = Field("UTC", max_length=50)
    language: str = Field("en", max_length=10)
    notification_enabled: bool = True
    channels: ChannelsIn | None = None
    preferences: PreferencesIn

    def to_domain(self, now: datetime | None = None) -> UserRecord:
        """Build the full replacement record; new devices are stamped last_seen=now."""
        seen_at = now or datetime.now(timezone.utc)
        channels: list[ChannelRecord] | None = None
        if self.channels is not None:
            email, push = self.channels.email, self.channels.push
            channels = [
                ChannelRecord(
                    channel_type=ChannelType.EMAIL.value,
                    enabled=email.enabled,
                    verified=email.verified,
                    frequency=email.frequency.value,
                    quiet_hours_enabled=email.quiet_hours.enabled,
                    quiet_hours_start=email.quiet_hours.start,
                    quiet_hours_end=email.quiet_hours.end,
                    quiet_hours_timezone=email.quiet_hours.timezone,
                ),
                ChannelRecord(
                    channel_type=ChannelType.PUSH.value,
                    enabled=push.enabled,
                    quiet_hours_enabled=push.quiet_hours.enabled,
                    quiet_hours_start=push.quiet_hours.start,
                    quiet_hours_end=push.quiet_hours.end,
                    quiet_hours_timezone=push.quiet_hours.timezone,
                    devices=[
                        DeviceRecord(
                            device_id=d.device_id,
                            platform=d.platform.value,
                            token=d.token,
                            active=d.active,
                            last_seen=seen_at,
                        )
                        for d in push.devices
                    ],
                ),
            ]
        return UserRecord(
            user_id=self.user_id,
            email=str(self.email),
            phone=self.phone,
            timezone=self.timezone,
            language=self.language,
            notification_enabled=self.notification_enabled,
            marketing=self.preferences.marketing,
            transactional=self.preferences.transactional,
            reminders=self.preferences.reminders,
            digest_enabled=self.preferences.digest.enabled,
            digest_frequency=self.preferences.digest.frequency,
            digest_time=self.preferences.digest.time,
            channels=channels,
        )


class BatchGetRequest(BaseModel):
    user_ids: list[str] = Field(..., min_length=1)
    include_channels: bool = True


class LastNotificationRequest(BaseModel):
    channel: ChannelType
    notification_id: str = Field(..., min_length=1, max_length=100)
    sent_at: datetime


class ChannelTogglesIn(BaseModel):
    email: bool
    push: bool


class CreateUserRequest(BaseModel):
    email: EmailStr
    phone: str | None = Field(None, max_length=20)
    timezone: str = Field("UTC", max_length=50)
    language: str = Field("en", max_length=10)
    notification_enabled: bool = True
    channels: ChannelTogglesIn

    def to_domain(self, user_id: str) -> UserRecord:
        """New user with default category/digest settings and both channels present."""
        return UserRecord(
            user_id=user_id,
            email=str(self.email),
            phone=self.phone,
            timezone=self.timezone,
            language=self.language,
            notification_enabled=self.notification_enabled,
            marketing=False,
            transactional=True,
            reminders=True,
            digest_enabled=False,
            digest_frequency=DigestFrequency.DAILY.value,
            digest_time="09:00",
            channels=[
                ChannelRecord(
                    channel_type=ChannelType.EMAIL.value,
                    enabled=self.channels.email,
                    frequency=ChannelFrequency.IMMEDIATE.value,
                ),
                ChannelRecord(channel_type=ChannelType.PUSH.value, enabled=self.channels.push),
            ],
        )


class UpdateChannelTogglesRequest(BaseModel):
    """Partial update: only the channels named here change."""

    email: bool | None = None
    push: bool | None = None

    def toggles(self) -> dict[str, bool]:
        provided = {ChannelType.EMAIL.value: self.email, ChannelType.PUSH.value: self.push}
        return {name: value for name, value in provided.items() if value is not None}


class UserListResponse(BaseModel):
    users: list[UserPreferencesResponse]
    total: int
