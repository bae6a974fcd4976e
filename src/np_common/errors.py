"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: User/Preferences
  8xxx: Cache
  9xxx: System
"""

from typing import Any


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        self.details = details or {}
        super().__init__(message)


# --- 1xxx: User/Preferences ---

class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(
            1001,
            f"User with ID {user_id} does not exist",
            404,
            {"user_id": user_id},
        )


class ValidationError(AppError):
    def __init__(self, message: str = "Invalid input data", details: dict[str, Any] | None = None) -> None:
        super().__init__(1002, message, 400, details)


class BatchTooLargeError(AppError):
    def __init__(self, max_allowed: int, requested: int) -> None:
        super().__init__(
            1003,
            f"Maximum {max_allowed} users allowed per batch request",
            400,
            {"max_allowed": max_allowed, "requested": requested},
        )


class DuplicateUserIdsError(AppError):
    def __init__(self, total: int, unique: int) -> None:
        super().__init__(
            1004,
            "Duplicate user IDs are not allowed",
            400,
            {"total": total, "unique": unique},
        )


class NoFieldsProvidedError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "At least one of email or push must be provided", 400)


class EmailAlreadyExistsError(AppError):
    def __init__(self, email: str) -> None:
        super().__init__(
            1006,
            "A user with this email already exists",
            409,
            {"email": email},
        )


# --- 8xxx: Cache ---

class CacheBackendError(AppError):
    """The key-value backend could not be reached or rejected the command."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(
            8001,
            f"Cache backend failure during {operation}: {detail}",
            503,
            {"operation": operation},
        )


class CacheOperationUnsupportedError(AppError):
    def __init__(self, operation: str, backend: str) -> None:
        super().__init__(
            8002,
            f"Cache backend '{backend}' does not support {operation}",
            501,
            {"operation": operation, "backend": backend},
        )


# --- 9xxx: System ---

class ServiceUnavailableError(AppError):
    def __init__(self, detail: str = "Unable to process request") -> None:
        super().__init__(9001, detail, 503)


class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)
