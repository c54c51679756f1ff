"""Key-value backends for client-local persistence.

The token store and the result stage never touch ambient global storage.
They are handed a backend that exposes ``get``, ``set`` and ``delete``
over string values: in-memory for tests and short-lived sessions,
file-based for a native client installation.
"""

import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

import structlog

from card_checkout.models.exceptions import StorageFailure

logger = structlog.get_logger(__name__)


class KeyValueBackend(ABC):
    """Abstract string key-value store.

    Implementations raise StorageFailure for any persistence-layer problem
    (quota exceeded, storage disabled, I/O errors).
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """Return the value for key, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Replace the value for key."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Removing an absent key is not an error."""


class InMemoryBackend(KeyValueBackend):
    """Dictionary-backed store.

    Args:
        quota: Optional limit on the total size (in characters) of stored
            values, used to simulate a full browser store.
        disabled: When True every operation fails, like disabled storage.
    """

    def __init__(self, quota: int | None = None, disabled: bool = False) -> None:
        self._data: dict[str, str] = {}
        self.quota = quota
        self.disabled = disabled

    def _check_enabled(self) -> None:
        if self.disabled:
            raise StorageFailure("Storage is disabled")

    def get(self, key: str) -> Optional[str]:
        self._check_enabled()
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._check_enabled()
        if self.quota is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self.quota:
                raise StorageFailure("Storage quota exceeded")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._check_enabled()
        self._data.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._data


class FileBackend(KeyValueBackend):
    """One file per key under a directory.

    Writes go to a temporary file in the same directory which is then
    renamed over the target, so a reader sees either the old or the new
    value, never a partial one.
    """

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise StorageFailure(f"Invalid storage key: {key!r}")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise StorageFailure(f"Failed to read {key}: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=f".{key}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                    tmp.write(value)
                    tmp.flush()
                    os.fsync(tmp.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise StorageFailure(f"Failed to write {key}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageFailure(f"Failed to delete {key}: {e}") from e
