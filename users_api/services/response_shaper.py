"""Map store outcomes onto the uniform response envelope.

Shapes are decided here, independent of the transport; the HTTP layer only
renders a ``ShapedResponse`` as JSON with its status code.

Mapping:
- success                 → 200 (201 for create), ``data`` populated
- NotFoundAppError        → 404 "User not found"
- EmailConflictAppError   → 409 "Conflict"
- LimitReachedAppError    → 400 "Bad Request"
- ValidationAppError      → 400 "Bad Request", error names the violated field
- anything else           → 500 "Error", generic reason only
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from users_api.core.errors import (
    AppError,
    EmailConflictAppError,
    LimitReachedAppError,
    NotFoundAppError,
    ValidationAppError,
)
from users_api.schemas.envelope import FailureEnvelope, SuccessEnvelope
from users_api.services.user_store import Outcome

INTERNAL_ERROR_MESSAGE = "Error"
INTERNAL_ERROR_REASON = "Internal Server Error"

# (status_code, message) per expected error type; order matters for subclasses
_ERROR_SHAPES: tuple[tuple[type[AppError], int, str], ...] = (
    (NotFoundAppError, 404, "User not found"),
    (EmailConflictAppError, 409, "Conflict"),
    (LimitReachedAppError, 400, "Bad Request"),
    (ValidationAppError, 400, "Bad Request"),
)


@dataclass(frozen=True)
class ShapedResponse:
    """Envelope plus the status code the adapter should send it with."""

    status_code: int
    body: SuccessEnvelope | FailureEnvelope

    @property
    def is_success(self) -> bool:
        return self.body.success


def shape_success(data: Any, *, message: str, status_code: int = 200) -> ShapedResponse:
    return ShapedResponse(status_code=status_code, body=SuccessEnvelope(message=message, data=data))


def shape_error(error: AppError) -> ShapedResponse:
    """Shape a domain error.

    Errors outside the expected taxonomy (e.g. persistence failures) become
    the generic internal fault; their message is never exposed.
    """
    for error_type, status_code, message in _ERROR_SHAPES:
        if isinstance(error, error_type):
            return ShapedResponse(
                status_code=status_code,
                body=FailureEnvelope(message=message, error=error.message),
            )
    return shape_internal_fault()


def shape_internal_fault() -> ShapedResponse:
    return ShapedResponse(
        status_code=500,
        body=FailureEnvelope(message=INTERNAL_ERROR_MESSAGE, error=INTERNAL_ERROR_REASON),
    )


def shape_outcome(
    outcome: Outcome[Any],
    *,
    message: str,
    success_status: int = 200,
) -> ShapedResponse:
    """Shape a store outcome.

    Args:
        outcome: Result returned by a ``UserStore`` operation.
        message: Message used when the outcome is a success.
        success_status: Status for a success (201 for create).

    Returns:
        ShapedResponse with exactly one of ``data``/``error`` populated.
    """
    if outcome.error is not None:
        return shape_error(outcome.error)
    return shape_success(outcome.value, message=message, status_code=success_status)


def to_json_response(
    shaped: ShapedResponse,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Render a ``ShapedResponse`` as a FastAPI ``JSONResponse``.

    Success bodies always carry ``data`` (possibly null); failure bodies carry
    ``error``. The other key is omitted.
    """
    content = jsonable_encoder(shaped.body)
    return JSONResponse(
        status_code=shaped.status_code,
        content=content,
        headers=dict(headers) if headers else None,
    )
