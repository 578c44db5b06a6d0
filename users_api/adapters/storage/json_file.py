"""Flat JSON file storage.

File layout: ``{"<collection>": [<record>, ...], ...}`` indented with two
spaces. Writes go to a temporary file in the same directory which then
replaces the target, so a crash mid-write never leaves a truncated file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path

from users_api.adapters.storage.base import AbstractStorage, Snapshot
from users_api.core.errors import PersistenceAppError

logger = logging.getLogger(__name__)


def _fsync_dir(path: Path) -> None:
    # Not supported on every platform (e.g. Windows); the replace already happened.
    try:
        fd = os.open(path, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        logger.debug("storage.dir_fsync_unsupported", extra={"path": str(path)})
    finally:
        os.close(fd)


def _atomic_write(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tf = tempfile.NamedTemporaryFile(
        "w", delete=False, dir=path.parent, encoding="utf-8", suffix=".tmp"
    )
    try:
        with tf:
            tf.write(text)
            tf.flush()
            os.fsync(tf.fileno())
        os.replace(tf.name, path)
    except BaseException:
        Path(tf.name).unlink(missing_ok=True)
        raise
    _fsync_dir(path.parent)


class JsonFileStorage(AbstractStorage):
    """Persist collections to a single JSON file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path).resolve()
        self._lock = threading.RLock()

    @property
    def path(self) -> Path:
        return self._path

    def load_all(self) -> Snapshot:
        """Read every collection from disk.

        A missing or empty file yields an empty mapping.

        Raises:
            PersistenceAppError: If the file is unreadable, is not valid JSON,
                or is not a mapping of collection name to list of objects.
        """
        with self._lock:
            return self._read_locked()

    def persist(self, snapshot: Snapshot) -> None:
        """Merge ``snapshot`` into the stored collections and write atomically.

        Collections not present in ``snapshot`` are kept as stored.

        Raises:
            PersistenceAppError: If the file cannot be written.
        """
        with self._lock:
            data = self._read_locked()
            data.update(snapshot)
            text = json.dumps(data, indent=2, ensure_ascii=False)
            try:
                _atomic_write(self._path, text)
            except OSError as exc:
                logger.error(
                    "storage.write_failed",
                    extra={"path": str(self._path), "error_type": type(exc).__name__},
                )
                raise PersistenceAppError(
                    code="storage_write_failed",
                    message="Failed to write data file",
                    details={"path": str(self._path)},
                ) from exc

            logger.debug(
                "storage.persisted",
                extra={
                    "path": str(self._path),
                    "collections": {name: len(items) for name, items in snapshot.items()},
                },
            )

    def _read_locked(self) -> Snapshot:
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise PersistenceAppError(
                code="storage_read_failed",
                message="Failed to read data file",
                details={"path": str(self._path)},
            ) from exc

        try:
            content = raw.decode("utf-8")
            if not content.strip():
                return {}
            parsed = json.loads(content)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise PersistenceAppError(
                code="storage_corrupt",
                message="Data file is not valid UTF-8 JSON",
                details={"path": str(self._path)},
            ) from exc

        if not _is_snapshot(parsed):
            raise PersistenceAppError(
                code="storage_invalid_shape",
                message="Data file must map collection names to lists of objects",
                details={"path": str(self._path)},
            )
        return parsed


def _is_snapshot(obj: object) -> bool:
    if not isinstance(obj, dict):
        return False
    return all(
        isinstance(items, list) and all(isinstance(item, dict) for item in items)
        for items in obj.values()
    )
