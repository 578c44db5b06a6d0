from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from users_api.services.response_shaper import shape_success, to_json_response

router = APIRouter(tags=["Health"])


@router.get("/")
def index() -> JSONResponse:
    """Root endpoint confirming the server is up, in the standard envelope."""

    return to_json_response(shape_success(None, message="Server works"))


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems to determine service health.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}
