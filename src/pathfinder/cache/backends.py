"""
Key-value backends for the local cache.

Backends store raw strings and raise CacheUnavailable on I/O failure.
Interpretation (JSON, models, fallbacks) lives in LocalCacheStore.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from pathfinder.errors import CacheUnavailable

logger = logging.getLogger(__name__)


@runtime_checkable
class CacheBackend(Protocol):
    """Durable string storage, the equivalent of browser localStorage."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryCacheBackend:
    """In-process backend. Used by tests and when no cache dir is writable."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class FileCacheBackend:
    """
    One file per key under a directory.

    Writes go to a temp file and are moved into place, so a slot is always
    either the old value or the new one.
    """

    SUFFIX = ".json"

    def __init__(self, directory: Path | str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        safe = key.replace(os.sep, "_")
        return self.directory / f"{safe}{self.SUFFIX}"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheUnavailable(f"Cannot read {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise CacheUnavailable(f"{path} is not valid UTF-8: {e}") from e

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=self.directory, prefix=".tmp-")
        except OSError as e:
            raise CacheUnavailable(f"Cannot write {path}: {e}") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise CacheUnavailable(f"Cannot write {path}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise CacheUnavailable(f"Cannot remove {key}: {e}") from e

    def keys(self) -> list[str]:
        if not self.directory.is_dir():
            return []
        return [
            p.name[: -len(self.SUFFIX)]
            for p in self.directory.iterdir()
            if p.is_file() and p.name.endswith(self.SUFFIX)
        ]
