"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``users_api`` import so settings
are built for tests: no .env file, no JSON persistence, quiet logs.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"
os.environ["APP_ENV"] = "testing"
os.environ.pop("APP_STORAGE_PATH", None)
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from users_api.core.app_factory import create_app
from users_api.services.user_store import UserStore


@pytest.fixture
def store() -> UserStore:
    """Fresh, non-persisted store with the default capacity."""
    return UserStore()


@pytest.fixture
def app(store: UserStore) -> FastAPI:
    return create_app(store=store)


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
