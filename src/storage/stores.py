"""Key-to-blob stores backing component snapshots."""

from __future__ import annotations

import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Optional, Protocol

from .errors import StorageReadError, StorageWriteError

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class BlobStore(Protocol):
    def load(self, key: str) -> Optional[bytes]:
        """Return the blob stored under ``key`` or ``None`` when absent."""

    def save(self, key: str, blob: bytes) -> None:
        """Store ``blob`` under ``key``, replacing any previous value."""

    def delete(self, key: str) -> None:
        """Remove ``key``; deleting a missing key is not an error."""

    def take(self, key: str) -> Optional[bytes]:
        """Atomically return and remove the blob under ``key``; ``None`` when absent."""


class MemoryBlobStore:
    """In-process store, used by tests and as a throwaway default."""

    def __init__(self):
        self._lock = threading.Lock()
        self._blobs: dict[str, bytes] = {}

    def load(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._blobs.get(key)

    def save(self, key: str, blob: bytes) -> None:
        with self._lock:
            self._blobs[key] = bytes(blob)

    def delete(self, key: str) -> None:
        with self._lock:
            self._blobs.pop(key, None)

    def take(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._blobs.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._blobs)


class FileBlobStore:
    """One ``<key>.json`` file per key; writes go through a temp file and ``os.replace``."""

    def __init__(self, directory: Path | str):
        self._directory = Path(directory)
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._directory

    def load(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as error:
            raise StorageReadError(f"Failed to read {path}: {error}") from error

    def save(self, key: str, blob: bytes) -> None:
        path = self._path_for(key)
        with self._lock:
            try:
                self._directory.mkdir(parents=True, exist_ok=True)
                fd, temp_name = tempfile.mkstemp(
                    prefix=f".{key}.", suffix=".tmp", dir=self._directory
                )
                try:
                    with os.fdopen(fd, "wb") as handle:
                        handle.write(blob)
                        handle.flush()
                        os.fsync(handle.fileno())
                    os.replace(temp_name, path)
                except BaseException:
                    if os.path.exists(temp_name):
                        os.unlink(temp_name)
                    raise
            except OSError as error:
                raise StorageWriteError(f"Failed to write {path}: {error}") from error

    def delete(self, key: str) -> None:
        path = self._path_for(key)
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return
            except OSError as error:
                raise StorageWriteError(f"Failed to delete {path}: {error}") from error

    def take(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        # Renaming claims the file, so a blob saved after the claim is left in place.
        claimed = path.with_name(f".{key}.claimed")
        with self._lock:
            try:
                os.replace(path, claimed)
            except FileNotFoundError:
                return None
            except OSError as error:
                raise StorageWriteError(f"Failed to claim {path}: {error}") from error
            try:
                return claimed.read_bytes()
            except OSError as error:
                raise StorageReadError(f"Failed to read {claimed}: {error}") from error
            finally:
                claimed.unlink(missing_ok=True)

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise StorageWriteError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"
