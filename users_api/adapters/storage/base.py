"""Storage backend interface.

The store calls ``load_all`` once at startup and ``persist`` synchronously
after every successful mutation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

Record = dict[str, Any]
Snapshot = dict[str, list[Record]]


class AbstractStorage(ABC):
    """Interface for persistence backends."""

    @abstractmethod
    def load_all(self) -> Snapshot:
        """Load every stored collection.

        Returns:
            Mapping of collection name to its list of records (empty when
            nothing was stored yet).

        Raises:
            PersistenceAppError: If stored data cannot be read or decoded.
        """
        raise NotImplementedError

    @abstractmethod
    def persist(self, snapshot: Snapshot) -> None:
        """Write the given collections, replacing their stored contents.

        Must return only once the data is written; callers report success
        to clients right after.

        Args:
            snapshot: Mapping of collection name to the full list of records.
        """
        raise NotImplementedError
