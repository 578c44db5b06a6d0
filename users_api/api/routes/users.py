"""User CRUD endpoints.

Handlers are plain ``def`` functions, so FastAPI runs them in its threadpool;
``UserStore`` serializes access to the collection. Bodies arrive already
validated as ``UserCreate``/``UserUpdate`` (extra properties such as ``id``
are rejected by the schema), and the store applies the domain rules.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Path, status
from fastapi.responses import JSONResponse

from users_api.api.dependencies import get_user_store
from users_api.schemas.envelope import FailureEnvelope, SuccessEnvelope
from users_api.schemas.user import UserCreate, UserUpdate
from users_api.services.response_shaper import shape_outcome, to_json_response
from users_api.services.user_store import UserStore

router = APIRouter(prefix="/users", tags=["Users"])

StoreDep = Annotated[UserStore, Depends(get_user_store)]
UserId = Annotated[int, Path(description="User identifier")]

_FAILURES = {
    400: {"model": FailureEnvelope, "description": "Invalid input or capacity exceeded"},
    404: {"model": FailureEnvelope, "description": "User not found"},
    409: {"model": FailureEnvelope, "description": "Email already registered"},
}


@router.get("", response_model=SuccessEnvelope)
def list_users(store: StoreDep) -> JSONResponse:
    """List all users in insertion order."""
    return to_json_response(shape_outcome(store.list_users(), message="List of users"))


@router.get("/{user_id}", response_model=SuccessEnvelope, responses=_FAILURES)
def get_user(user_id: UserId, store: StoreDep) -> JSONResponse:
    return to_json_response(shape_outcome(store.get_by_id(user_id), message="User found"))


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=SuccessEnvelope,
    responses=_FAILURES,
)
def create_user(payload: UserCreate, store: StoreDep) -> JSONResponse:
    """Create a user.

    The id is assigned by the server. On success the response carries a
    ``Location`` header pointing at the new resource.
    """
    outcome = store.create(payload.name, payload.email)
    shaped = shape_outcome(
        outcome,
        message="User created successfully",
        success_status=status.HTTP_201_CREATED,
    )
    headers = {"Location": f"/users/{outcome.value.id}"} if outcome.value else None
    return to_json_response(shaped, headers=headers)


@router.put("/{user_id}", response_model=SuccessEnvelope, responses=_FAILURES)
def update_user(user_id: UserId, payload: UserUpdate, store: StoreDep) -> JSONResponse:
    """Update a user's name and/or email; omitted fields keep their value."""
    outcome = store.update(user_id, name=payload.name, email=payload.email)
    return to_json_response(shape_outcome(outcome, message="User updated successfully"))


@router.delete("/{user_id}", response_model=SuccessEnvelope, responses=_FAILURES)
def delete_user(user_id: UserId, store: StoreDep) -> JSONResponse:
    """Delete a user and return the removed record."""
    outcome = store.delete_by_id(user_id)
    return to_json_response(shape_outcome(outcome, message="User deleted successfully"))
