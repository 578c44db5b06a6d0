"""HTTP middleware: request correlation and CORS.

``request_id_middleware`` accepts an incoming correlation header (or
generates a UUID), binds it to the logging context for the lifetime of the
request, and echoes it back together with the request duration.

Usage:
    app.middleware("http")(request_id_middleware)
    setup_cors(app)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from users_api.core.config import settings
from users_api.core.logging import clear_request_id, set_request_id
from users_api.services.response_shaper import shape_internal_fault, to_json_response

logger = logging.getLogger(__name__)


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate a request id and report request duration.

    Side Effects:
        - Binds request_id in contextvars (see ``get_request_id()``) and
          clears it once the response is produced
        - Adds the request id header and ``X-Request-Duration-ms`` to the response
        - Logs one ``http.request`` line per request
        - Renders unexpected route errors as the generic 500 envelope
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        try:
            response: Response = await call_next(request)
        except Exception as exc:
            # Routes raised past the app handlers; answer here so the id header survives
            logger.error(
                "unhandled_exception",
                extra={
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                    "request_path": request.url.path,
                    "request_method": request.method,
                },
            )
            response = to_json_response(shape_internal_fault())
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "route": request.url.path,
                "status": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


def parse_origins(origins: str | None) -> list[str]:
    """Split a comma-separated origin list, dropping blanks.

    Examples:
        >>> parse_origins("https://a.test, https://b.test")
        ['https://a.test', 'https://b.test']
        >>> parse_origins("*")
        ['*']
    """
    if not origins:
        return []
    return [origin.strip() for origin in origins.split(",") if origin.strip()]


def setup_cors(app: FastAPI, origins: str | None = None) -> None:
    """Allow cross-origin requests from the configured origins.

    Args:
        app: FastAPI application instance.
        origins: Comma-separated origins; defaults to ``APP_CORS_ORIGINS``.
    """
    allowed = parse_origins(origins if origins is not None else settings.app.cors_origins)
    if not allowed:
        return

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["Location", settings.log.request_id_header],
    )
