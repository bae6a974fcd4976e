"""Global enums — values are what the API accepts and the DB stores."""

from enum import Enum


class ChannelType(str, Enum):
    EMAIL = "email"
    PUSH = "push"


class ChannelFrequency(str, Enum):
    IMMEDIATE = "immediate"
    BATCHED = "batched"
    DIGEST = "digest"


class DigestFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


class DevicePlatform(str, Enum):
    IOS = "ios"
    ANDROID = "android"
    WEB = "web"


class CacheBackendKind(str, Enum):
    """Which key-value store backs the preferences cache."""
    MEMORY = "memory"
    REDIS = "redis"


class ClearResult(str, Enum):
    CLEARED = "cleared"
    UNSUPPORTED = "unsupported"
