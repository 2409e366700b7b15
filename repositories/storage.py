"""
Storage substrate (key-value persistence).

This module contains *only* the raw key-value backends. Each backend stores one
serialized collection per fixed key and knows nothing about the records inside.

Contract:
- read(key) returns the stored text or None when the key was never written.
- write(key, value) either stores the whole value or raises PersistenceError.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from domain.errors import PersistenceError

logger = logging.getLogger(__name__)

PRODUCTS_KEY: str = "products"
SALES_KEY: str = "sales"
PURCHASES_KEY: str = "purchases"

COLLECTION_KEYS = (PRODUCTS_KEY, SALES_KEY, PURCHASES_KEY)


class StorageBackend(Protocol):
    def read(self, key: str) -> Optional[str]:
        ...

    def write(self, key: str, value: str) -> None:
        ...


class InMemoryStorage:
    """Dict-backed storage for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def read(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def write(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStorage:
    """
    One `<key>.json` file per collection inside `directory`.

    Writes go to a temporary file in the same directory which then replaces the
    target, so a crash mid-write never leaves a truncated collection behind.
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.error("Failed to read %s: %s", path, exc)
            raise PersistenceError(f"Failed to read {key!r}: {exc}") from exc

    def write(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            logger.error("Failed to write %s: %s", path, exc)
            raise PersistenceError(f"Failed to write {key!r}: {exc}") from exc


__all__ = [
    "StorageBackend",
    "InMemoryStorage",
    "JsonFileStorage",
    "PRODUCTS_KEY",
    "SALES_KEY",
    "PURCHASES_KEY",
    "COLLECTION_KEYS",
]
