"""FastAPI dependencies shared by route modules."""

from __future__ import annotations

from fastapi import Request

from users_api.services.user_store import UserStore


def get_user_store(request: Request) -> UserStore:
    """Return the store built by the app factory for this application."""
    return request.app.state.user_store
