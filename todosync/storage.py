"""
todosync Storage — Durable Key-Value Persistence
=================================================
Backends the Store persists through. Every backend writes a batch of
keys as one unit: after ``write_many`` returns, either all keys carry
their new values or (on PersistenceError) none do.

    KeyValueBackend  — abstract interface
    MemoryBackend    — dict-backed, for tests and throwaway servers
    JsonFileBackend  — one JSON document on disk, replaced atomically
"""

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

from todosync.errors import PersistenceError


def atomic_write_json(path: Path, data: Any) -> None:
    """Write *data* as JSON to *path* without ever exposing a torn file.

    The document goes to a temp file in the same directory first and is
    then renamed over *path* with ``os.replace``.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(
        dir=str(path.parent),
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, str(path))
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class KeyValueBackend(ABC):
    """Abstract durable key-value store.

    All backends must implement:
        - read(): Return the stored value for a key, or None
        - write_many(): Persist several keys as one unit
    """

    @abstractmethod
    def read(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def write_many(self, values: dict[str, Any]) -> None:
        """Persist *values*. Raises PersistenceError on failure."""
        ...


class MemoryBackend(KeyValueBackend):
    """In-process backend. Values are copied through JSON on write."""

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, Any] = dict(initial or {})

    def read(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def write_many(self, values: dict[str, Any]) -> None:
        try:
            encoded = json.loads(json.dumps(values))
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot serialize {sorted(values)}: {e}") from e
        self._data.update(encoded)


class JsonFileBackend(KeyValueBackend):
    """All keys live in a single JSON object on disk.

    A missing file reads as empty. Writes rewrite the whole document
    through ``atomic_write_json``.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._cache: Optional[dict[str, Any]] = None

    def _load(self) -> dict[str, Any]:
        if self._cache is None:
            if not self.path.exists():
                self._cache = {}
            else:
                try:
                    with open(self.path, "r", encoding="utf-8") as f:
                        data = json.load(f)
                except (OSError, ValueError) as e:
                    raise PersistenceError(f"Cannot read {self.path}: {e}") from e
                if not isinstance(data, dict):
                    raise PersistenceError(f"{self.path} does not hold a JSON object")
                self._cache = data
        return self._cache

    def read(self, key: str) -> Optional[Any]:
        return self._load().get(key)

    def write_many(self, values: dict[str, Any]) -> None:
        document = dict(self._load())
        document.update(values)
        try:
            atomic_write_json(self.path, document)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Cannot write {self.path}: {e}") from e
        self._cache = document
