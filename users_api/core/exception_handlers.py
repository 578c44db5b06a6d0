"""Global exception handlers rendering every failure in the response envelope.

Design:
- RequestValidationError (bad JSON, wrong types, extra fields, bad path id) → 400
- Starlette HTTPException (unknown route, wrong method) → its status code
- AppError raised out of a route (e.g. persistence failure) → shaped by type
- Unexpected Exception → generic 500 (safety net), details only in logs
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from users_api.core.errors import AppError
from users_api.core.logging import get_request_id
from users_api.schemas.envelope import FailureEnvelope
from users_api.services.response_shaper import (
    ShapedResponse,
    shape_error,
    shape_internal_fault,
    to_json_response,
)

logger = logging.getLogger(__name__)

_HTTP_MESSAGES = {
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
}


def describe_validation_errors(errors: Sequence[dict[str, Any]]) -> str:
    """Summarize the first validation error as ``"<field>: <reason>"``.

    The location prefix added by FastAPI (``body``, ``path``, ``query``) is
    dropped.

    Examples:
        >>> describe_validation_errors([{"loc": ("body", "email"), "msg": "bad"}])
        'email: bad'
    """
    if not errors:
        return "Invalid request"

    first = errors[0]
    if first.get("type") == "json_invalid":
        return "Malformed JSON body"
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query")]
    reason = first.get("msg", "invalid value")
    if first.get("type") == "extra_forbidden":
        reason = "unexpected property"
    return f"{'.'.join(loc)}: {reason}" if loc else reason


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render structural request validation failures as 400 envelopes."""
    reason = describe_validation_errors(exc.errors())
    logger.info(
        "request_validation_failed",
        extra={
            "request_path": request.url.path,
            "request_method": request.method,
            "error_count": len(exc.errors()),
        },
    )
    return to_json_response(
        ShapedResponse(status_code=400, body=FailureEnvelope(message="Bad Request", error=reason))
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (404 route, 405 method, ...) as envelopes."""
    message = _HTTP_MESSAGES.get(exc.status_code, "Error")
    error = exc.detail if isinstance(exc.detail, str) else message
    return to_json_response(
        ShapedResponse(
            status_code=exc.status_code,
            body=FailureEnvelope(message=message, error=error),
        ),
        headers=getattr(exc, "headers", None),
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError that escaped a route.

    Expected domain errors are returned as outcome values, so reaching this
    handler usually means a persistence failure, which is shaped as a generic
    500 without its message.
    """
    shaped = shape_error(exc)
    log = logger.error if shaped.status_code >= 500 else logger.warning
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": shaped.status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )
    return to_json_response(shaped)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors.

    Logs the error type and message; the client only gets the generic
    internal-fault envelope (no message, stack trace or file paths).
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )
    return to_json_response(shape_internal_fault())


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Calling it more than once simply re-registers the same handlers.
    """
    app.exception_handler(RequestValidationError)(validation_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
