"""Non-durable storage that keeps the last snapshot in process memory."""

from __future__ import annotations

import copy
import threading

from users_api.adapters.storage.base import AbstractStorage, Snapshot


class InMemoryStorage(AbstractStorage):
    """Storage used when no file path is configured.

    Data is lost when the process exits.
    """

    def __init__(self, initial: Snapshot | None = None) -> None:
        self._lock = threading.RLock()
        self._data: Snapshot = copy.deepcopy(initial) if initial else {}
        self.persist_count = 0

    def load_all(self) -> Snapshot:
        with self._lock:
            return copy.deepcopy(self._data)

    def persist(self, snapshot: Snapshot) -> None:
        with self._lock:
            self._data.update(copy.deepcopy(snapshot))
            self.persist_count += 1
