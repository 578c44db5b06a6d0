"""Application factory for the FastAPI app.

Builds the store, then wires middleware, handlers and routers around it.
Passing a store lets tests run each case against a fresh, isolated instance.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from users_api import __version__
from users_api.adapters.storage.factory import create_storage
from users_api.api.routes import health_router, users_router
from users_api.core.config import settings
from users_api.core.exception_handlers import setup_exception_handlers
from users_api.core.logging import configure_logging
from users_api.core.middleware import request_id_middleware, setup_cors
from users_api.core.openapi import TAGS_METADATA, apply_openapi_customizations
from users_api.services.user_store import UserStore

logger = logging.getLogger(__name__)


def build_user_store() -> UserStore:
    """Create the store from configuration, loading any persisted users.

    Raises:
        PersistenceAppError: If the configured data file is unreadable or
            holds data that breaks the store invariants.
    """
    storage = create_storage()
    store = UserStore.from_storage(
        storage,
        max_users=settings.app.max_users,
        id_policy=settings.app.id_policy,
    )
    logger.info(
        "app.store_ready",
        extra={
            "storage": type(storage).__name__,
            "size": store.size(),
            "max_users": store.max_users,
            "id_policy": store.id_policy.value,
        },
    )
    return store


def create_app(store: UserStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        store: Store to serve; built from settings when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Users API",
        description=(
            "Minimal CRUD service for users held in a bounded in-memory collection, "
            "optionally persisted to a JSON file. Every response uses the "
            "{success, message, data|error} envelope."
        ),
        version=__version__,
        debug=settings.app.debug,
        openapi_tags=TAGS_METADATA,
    )
    app.state.user_store = store if store is not None else build_user_store()

    # Middleware
    app.middleware("http")(request_id_middleware)
    setup_cors(app)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(users_router)

    apply_openapi_customizations(app)

    return app
