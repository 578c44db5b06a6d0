"""In-memory user store with identifier allocation and invariant enforcement.

The store owns the canonical collection. Every operation returns an
``Outcome``: either the resulting value or one of the expected domain errors
(validation, not found, email conflict, capacity). Those are never raised.
The only exception that escapes a store operation is ``PersistenceAppError``,
raised when the storage backend fails after an in-memory mutation.

Invariants held after every operation:
- ids are unique and within ``1..max_users``
- lowercased emails are unique
- the collection never holds more than ``max_users`` records
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from pydantic import ValidationError

from users_api.adapters.storage.base import AbstractStorage, Snapshot
from users_api.core.errors import (
    AppError,
    EmailConflictAppError,
    LimitReachedAppError,
    NotFoundAppError,
    PersistenceAppError,
    ValidationAppError,
)
from users_api.schemas.user import User

logger = logging.getLogger(__name__)

MAX_USERS = 999
COLLECTION = "users"

T = TypeVar("T")


class IdPolicy(str, Enum):
    """How the next user id is chosen."""

    COUNTER = "counter"  # monotonic, deleted ids are never reused
    MAX_SCAN = "max_scan"  # highest live id + 1, reuses ids freed at the top


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of a store operation: a value or an expected domain error."""

    value: T | None = None
    error: AppError | None = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Outcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: AppError) -> "Outcome[T]":
        return cls(error=error)


def validate_id(user_id: int, max_users: int = MAX_USERS) -> ValidationAppError | None:
    """Check that ``user_id`` lies within ``1..max_users``.

    Returns:
        A ``ValidationAppError`` describing the violation, or None if valid.
    """
    if 1 <= user_id <= max_users:
        return None
    return ValidationAppError(
        code="invalid_user_id",
        message="Invalid user ID",
        details={"field": "id", "actual_value": user_id, "min_value": 1, "max_value": max_users},
    )


def _not_found(user_id: int) -> NotFoundAppError:
    return NotFoundAppError(
        code="user_not_found",
        message="Resource not found",
        details={"user_id": user_id},
    )


def _invalid_fields(exc: ValidationError) -> ValidationAppError:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return ValidationAppError(
        code="invalid_user_fields",
        message=f"{field}: {first.get('msg', 'invalid value')}",
        details={"field": field},
    )


def _email_conflict() -> EmailConflictAppError:
    return EmailConflictAppError(
        code="email_conflict",
        message="Email already registered",
        details={"field": "email"},
    )


class UserStore:
    """Thread-safe, bounded in-memory collection of users.

    A single re-entrant lock covers each whole operation, including the
    check-then-act sequence of mutations and the persistence call that
    follows them, so two concurrent creates with the same email can never
    both succeed.

    Attributes:
        max_users: Capacity of the store and the highest assignable id.
        id_policy: Id allocation policy.
    """

    def __init__(
        self,
        storage: AbstractStorage | None = None,
        *,
        max_users: int = MAX_USERS,
        id_policy: IdPolicy | str = IdPolicy.COUNTER,
    ) -> None:
        if max_users < 1:
            raise ValueError("max_users must be >= 1")

        self.max_users = max_users
        self.id_policy = IdPolicy(id_policy)
        self._storage = storage
        self._lock = threading.RLock()
        self._users: dict[int, User] = {}
        self._next_id = 1

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"UserStore(max_users={self.max_users}, id_policy={self.id_policy.value}, "
            f"size={len(self._users)})"
        )

    @classmethod
    def from_storage(
        cls,
        storage: AbstractStorage,
        *,
        max_users: int = MAX_USERS,
        id_policy: IdPolicy | str = IdPolicy.COUNTER,
    ) -> "UserStore":
        """Build a store seeded with the users held by ``storage``.

        Raises:
            PersistenceAppError: If stored records are malformed or break a
                store invariant (duplicate id/email, id out of range, too many
                records).
        """
        store = cls(storage, max_users=max_users, id_policy=id_policy)
        store._seed(storage.load_all())
        return store

    def size(self) -> int:
        with self._lock:
            return len(self._users)

    def list_users(self) -> Outcome[list[User]]:
        """Return copies of all users in insertion order."""
        with self._lock:
            return Outcome.success([user.model_copy() for user in self._users.values()])

    def get_by_id(self, user_id: int) -> Outcome[User]:
        invalid = validate_id(user_id, self.max_users)
        if invalid:
            return Outcome.failure(invalid)

        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return Outcome.failure(_not_found(user_id))
            return Outcome.success(user.model_copy())

    def create(self, name: str, email: str) -> Outcome[User]:
        """Register a new user.

        Checks run in order: capacity, email uniqueness, id range, field values.

        Raises:
            PersistenceAppError: If the user was added but could not be persisted.
        """
        with self._lock:
            if len(self._users) >= self.max_users:
                logger.warning(
                    "user_store.limit_reached",
                    extra={"size": len(self._users), "max_users": self.max_users},
                )
                return Outcome.failure(
                    LimitReachedAppError(
                        code="user_limit_reached",
                        message="Capacity exceeded: cannot register more users",
                        details={"max_value": self.max_users},
                    )
                )

            if self._email_taken(email):
                logger.info("user_store.email_conflict", extra={"operation": "create"})
                return Outcome.failure(_email_conflict())

            new_id = self._peek_next_id()
            if new_id > self.max_users:
                logger.warning(
                    "user_store.id_exhausted",
                    extra={"next_id": new_id, "max_users": self.max_users},
                )
                return Outcome.failure(
                    ValidationAppError(
                        code="user_id_exhausted",
                        message="User ID exceeds maximum allowed value",
                        details={"field": "id", "actual_value": new_id, "max_value": self.max_users},
                    )
                )

            try:
                user = User(id=new_id, name=name, email=email)
            except ValidationError as exc:
                return Outcome.failure(_invalid_fields(exc))

            self._users[new_id] = user
            self._next_id = new_id + 1

            logger.info("user_store.created", extra={"user_id": new_id, "size": len(self._users)})
            self._persist_locked()
            return Outcome.success(user.model_copy())

    def update(
        self,
        user_id: int,
        name: str | None = None,
        email: str | None = None,
    ) -> Outcome[User]:
        """Apply the supplied fields to an existing user.

        Fields left as None keep their current value.

        Raises:
            PersistenceAppError: If the change was applied but could not be persisted.
        """
        invalid = validate_id(user_id, self.max_users)
        if invalid:
            return Outcome.failure(invalid)

        with self._lock:
            current = self._users.get(user_id)
            if current is None:
                return Outcome.failure(_not_found(user_id))

            if email is not None and self._email_taken(email, exclude_id=user_id):
                logger.info(
                    "user_store.email_conflict",
                    extra={"operation": "update", "user_id": user_id},
                )
                return Outcome.failure(_email_conflict())

            changes: dict[str, str] = {}
            if name is not None:
                changes["name"] = name
            if email is not None:
                changes["email"] = email

            try:
                updated = User.model_validate({**current.model_dump(), **changes})
            except ValidationError as exc:
                return Outcome.failure(_invalid_fields(exc))

            self._users[user_id] = updated

            logger.info(
                "user_store.updated",
                extra={"user_id": user_id, "fields": sorted(changes)},
            )
            self._persist_locked()
            return Outcome.success(updated.model_copy())

    def delete_by_id(self, user_id: int) -> Outcome[User]:
        """Remove a user and return the removed record.

        Raises:
            PersistenceAppError: If the user was removed but the removal could
                not be persisted.
        """
        invalid = validate_id(user_id, self.max_users)
        if invalid:
            return Outcome.failure(invalid)

        with self._lock:
            removed = self._users.pop(user_id, None)
            if removed is None:
                return Outcome.failure(_not_found(user_id))

            logger.info("user_store.deleted", extra={"user_id": user_id, "size": len(self._users)})
            self._persist_locked()
            return Outcome.success(removed)

    def snapshot(self) -> Snapshot:
        """Serializable copy of the collection, as handed to the storage backend."""
        with self._lock:
            return {COLLECTION: [user.model_dump() for user in self._users.values()]}

    def _email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        wanted = email.lower()
        return any(
            user.email.lower() == wanted
            for user in self._users.values()
            if user.id != exclude_id
        )

    def _peek_next_id(self) -> int:
        if self.id_policy is IdPolicy.MAX_SCAN:
            return max(self._users, default=0) + 1
        return self._next_id

    def _persist_locked(self) -> None:
        if self._storage is None:
            return

        try:
            self._storage.persist(self.snapshot())
        except PersistenceAppError:
            raise
        except Exception as exc:
            logger.error(
                "user_store.persist_failed",
                extra={"error_type": type(exc).__name__},
            )
            raise PersistenceAppError(
                code="storage_write_failed",
                message="Failed to persist users",
            ) from exc

    def _seed(self, data: Snapshot) -> None:
        records = data.get(COLLECTION, [])
        if len(records) > self.max_users:
            raise PersistenceAppError(
                code="storage_over_capacity",
                message="Stored users exceed the configured capacity",
                details={"actual_value": len(records), "max_value": self.max_users},
            )

        users: dict[int, User] = {}
        emails: set[str] = set()
        for record in records:
            try:
                user = User.model_validate(record)
            except ValidationError as exc:
                raise PersistenceAppError(
                    code="storage_invalid_record",
                    message="Stored user record is malformed",
                ) from exc

            if validate_id(user.id, self.max_users) or user.id in users:
                raise PersistenceAppError(
                    code="storage_invalid_id",
                    message="Stored user id is duplicated or out of range",
                    details={"user_id": user.id},
                )
            if user.email.lower() in emails:
                raise PersistenceAppError(
                    code="storage_duplicate_email",
                    message="Stored users share an email address",
                    details={"user_id": user.id},
                )
            users[user.id] = user
            emails.add(user.email.lower())

        with self._lock:
            self._users = users
            self._next_id = max(users, default=0) + 1

        logger.info(
            "user_store.loaded",
            extra={"size": len(users), "next_id": self._next_id, "id_policy": self.id_policy.value},
        )
