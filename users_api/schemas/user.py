"""Pydantic schemas for the user resource."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# local@domain.tld, no whitespace and a single "@"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"

NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 50


class User(BaseModel):
    """A stored user record."""

    id: int = Field(..., ge=1, description="Server-assigned identifier, immutable.")
    name: str = Field(
        ...,
        min_length=NAME_MIN_LENGTH,
        max_length=NAME_MAX_LENGTH,
        description="Display name.",
    )
    email: str = Field(
        ...,
        pattern=EMAIL_PATTERN,
        description="Email address, unique case-insensitively. Casing is preserved.",
    )


class UserCreate(BaseModel):
    """Body of ``POST /users``.

    Extra properties (including a client-supplied ``id``) are rejected.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    email: str = Field(..., pattern=EMAIL_PATTERN)


class UserUpdate(BaseModel):
    """Body of ``PUT /users/{id}``; every field is optional."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(
        default=None, min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH
    )
    email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
