"""Domain models for np_preferences — pure dataclasses, no business logic."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class DeviceRecord:
    device_id: str
    platform: str
    token: str
    active: bool
    last_seen: datetime | None = None


@dataclass
class ChannelRecord:
    channel_type: str                      # "email" | "push"
    enabled: bool
    verified: bool = False
    frequency: str | None = None           # email only
    quiet_hours_enabled: bool = False
    quiet_hours_start: str | None = None   # "HH:MM"
    quiet_hours_end: str | None = None
    quiet_hours_timezone: str | None = None
    devices: list[DeviceRecord] = field(default_factory=list)  # push only


@dataclass
class UserRecord:
    """One row of `users`, optionally with its channels and devices loaded.

    channels is None when the caller did not ask for them, [] when the user
    has none.
    """

    user_id: str
    email: str
    phone: str | None
    timezone: str
    language: str
    notification_enabled: bool
    marketing: bool
    transactional: bool
    reminders: bool
    digest_enabled: bool
    digest_frequency: str
    digest_time: str
    channels: list[ChannelRecord] | None = None
    last_notification_email: datetime | None = None
    last_notification_push: datetime | None = None
    last_notification_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def channel(self, channel_type: str) -> ChannelRecord | None:
        for ch in self.channels or []:
            if ch.channel_type == channel_type:
                return ch
        return None
