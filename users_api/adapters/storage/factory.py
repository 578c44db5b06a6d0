"""Factory for the configured storage backend."""

from users_api.adapters.storage.base import AbstractStorage
from users_api.adapters.storage.in_memory import InMemoryStorage
from users_api.adapters.storage.json_file import JsonFileStorage
from users_api.core.config import settings


def create_storage(storage_path: str | None = None) -> AbstractStorage:
    """Instantiate the storage backend.

    Args:
        storage_path: JSON file path; defaults to ``APP_STORAGE_PATH``.

    Returns:
        AbstractStorage: ``JsonFileStorage`` when a path is configured,
            otherwise ``InMemoryStorage``.
    """
    path = storage_path if storage_path is not None else settings.app.storage_path

    if path:
        return JsonFileStorage(path)

    return InMemoryStorage()
