from __future__ import annotations

import errno
import os
from pathlib import Path
from typing import Protocol

from .._errors import StorageFullError

_FULL_ERRNOS = {errno.ENOSPC, getattr(errno, "EDQUOT", errno.ENOSPC)}


class KeyValueStore(Protocol):
    """String key-value persistence used for recovery snapshots and history."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class MemoryStore:
    """In-memory store; quota caps the total stored characters."""

    def __init__(self, quota: int | None = None) -> None:
        self.quota = quota
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.quota is not None:
            used = sum(len(v) for k, v in self._data.items() if k != key)
            if used + len(value) > self.quota:
                raise StorageFullError(f"Storing {key} needs {len(value)} chars, {self.quota - used} free")
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class JsonFileStore:
    """One file per key under a directory, replaced atomically on write."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        try:
            return self._path(key).read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            if e.errno in _FULL_ERRNOS:
                raise StorageFullError(f"No space left to store {key}") from e
            raise

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)
