"""Durable key/value storage: one JSON file per key."""

import json
import logging
import os
import tempfile

from namaz.errors import StorageError

logger = logging.getLogger(__name__)


class JsonStore:
    """
    Write-through key/value store backed by a directory of JSON files.

    Each key lives in its own ``<key>.json`` so records are independently
    durable. Writes go to a temp file first and are moved into place with
    os.replace.
    """

    def __init__(self, directory: str):
        self.directory = os.path.expanduser(directory)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def get(self, key: str, default=None):
        path = self._path(key)
        if not os.path.isfile(path):
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            self._quarantine(key, path, exc)
            return default

    def _quarantine(self, key: str, path: str, exc: Exception) -> None:
        """Move an unreadable record aside so the next write cannot overwrite it."""
        corrupt_path = f"{path}.corrupt"
        n = 1
        while os.path.exists(corrupt_path):
            corrupt_path = f"{path}.corrupt.{n}"
            n += 1
        try:
            os.replace(path, corrupt_path)
        except OSError as move_exc:
            raise StorageError(
                f"Record {key!r} at {path} is unreadable and could not be moved aside: {move_exc}"
            ) from exc
        logger.warning(f"Moved unreadable record {key!r} to {corrupt_path}: {exc}")

    def set(self, key: str, value) -> None:
        path = self._path(key)
        tmp_path = None
        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=f".{key}-", suffix=".tmp", dir=self.directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, path)
        except OSError as exc:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageError(f"Could not write record {key!r} to {path}: {exc}") from exc

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            if os.path.isfile(path):
                os.remove(path)
        except OSError as exc:
            raise StorageError(f"Could not delete record {key!r} at {path}: {exc}") from exc
