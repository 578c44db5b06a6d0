"""Pydantic schemas for the uniform response envelope."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class SuccessEnvelope(BaseModel):
    """Envelope returned for every successful operation."""

    success: Literal[True] = True
    message: str = Field(..., description="Human-readable summary of the outcome.")
    data: Any = Field(
        default=None,
        description="Operation payload (a user, a list of users, or null).",
    )


class FailureEnvelope(BaseModel):
    """Envelope returned for every failed operation."""

    success: Literal[False] = False
    message: str = Field(..., description="Short failure category (e.g. 'Bad Request').")
    error: str = Field(
        ...,
        description="Reason for the failure. Never contains internal details.",
    )
