"""Application-level exception types.

This module defines domain errors used across the store, storage adapters and
HTTP layer, enabling consistent error handling, logging, and API responses.

The store returns these as failure values inside an ``Outcome``; only
``PersistenceAppError`` is ever raised out of a store operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability.

    Fields are optional to keep shapes consistent without forcing every
    error to carry every field.
    """

    field: str
    user_id: int
    min_value: int
    max_value: int
    actual_value: int
    path: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable reason, safe to show to clients.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input validation fails at the domain boundary."""


class NotFoundAppError(AppError):
    """Referenced resource does not exist."""


class EmailConflictAppError(AppError):
    """Email is already registered to another user."""


class LimitReachedAppError(AppError):
    """Store is at capacity."""


class PersistenceAppError(AppError):
    """Raised when the storage backend fails to load or persist data."""
