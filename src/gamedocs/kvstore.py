"""Ordered key-value store handles used by the document store."""

from __future__ import annotations

import asyncio
import json
import os
from abc import ABC, abstractmethod
from copy import deepcopy
from pathlib import Path
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple

from filelock import FileLock, Timeout

from .errors import StoreIOError
from .worlds import WorldDescriptor

ENTRIES_FILE = "entries.json"


class KeyValueStore(ABC):
    """Interface describing an ordered, string-keyed document store handle.

    Handles are opened for one logical operation and closed afterwards; use
    them as asynchronous context managers.
    """

    async def open(self) -> None:
        """Prepare the handle for use."""

    async def close(self) -> None:
        """Release any resources held by the handle."""

    async def __aenter__(self) -> "KeyValueStore":
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored at ``key`` or ``None`` when absent."""

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        """Store ``value`` at ``key``, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key`` if it exists."""

    @abstractmethod
    def iterate(self, prefix: str = "") -> AsyncIterator[Tuple[str, Any]]:
        """Yield ``(key, value)`` pairs whose key starts with ``prefix`` in key order."""


StoreOpener = Callable[[WorldDescriptor, str], KeyValueStore]


class InMemoryKeyValueStore(KeyValueStore):
    """Keep entries in a dictionary shared with whoever created the handle."""

    def __init__(self, entries: Optional[Dict[str, Any]] = None) -> None:
        self._entries: Dict[str, Any] = entries if entries is not None else {}

    async def get(self, key: str) -> Any | None:
        value = self._entries.get(_validate_key(key))
        return deepcopy(value)

    async def put(self, key: str, value: Any) -> None:
        self._entries[_validate_key(key)] = deepcopy(value)

    async def delete(self, key: str) -> None:
        self._entries.pop(_validate_key(key), None)

    async def iterate(self, prefix: str = "") -> AsyncIterator[Tuple[str, Any]]:
        for key in sorted(self._entries):
            if key.startswith(prefix) and key in self._entries:
                yield key, deepcopy(self._entries[key])


class InMemoryStoreOpener:
    """Hand out in-memory handles, one backing dictionary per world collection."""

    def __init__(self) -> None:
        self._collections: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def __call__(self, world: WorldDescriptor, collection: str) -> InMemoryKeyValueStore:
        return InMemoryKeyValueStore(self.entries(world.id, collection))

    def entries(self, world_id: str, collection: str) -> Dict[str, Any]:
        """Return the live dictionary backing ``collection`` of ``world_id``."""

        return self._collections.setdefault((world_id, collection), {})


class JsonFileKeyValueStore(KeyValueStore):
    """Persist a collection as a single JSON object inside ``directory``.

    Writes reload the file, apply the change, and atomically replace it while
    holding a :class:`filelock.FileLock`, so cooperating processes never see a
    partially written file.
    """

    def __init__(self, directory: Path, *, lock_timeout: float = 10.0) -> None:
        self.directory = Path(directory)
        self.lock_timeout = lock_timeout
        self._opened = False

    @property
    def entries_path(self) -> Path:
        return self.directory / ENTRIES_FILE

    async def open(self) -> None:
        if not self.directory.is_dir():
            raise StoreIOError(f"Store directory {self.directory} does not exist")
        self._opened = True

    async def close(self) -> None:
        self._opened = False

    async def get(self, key: str) -> Any | None:
        validated = _validate_key(key)
        entries = await asyncio.to_thread(self._read_locked)
        return entries.get(validated)

    async def put(self, key: str, value: Any) -> None:
        validated = _validate_key(key)
        await asyncio.to_thread(self._modify, lambda entries: entries.__setitem__(validated, value))

    async def delete(self, key: str) -> None:
        validated = _validate_key(key)
        await asyncio.to_thread(self._modify, lambda entries: entries.pop(validated, None))

    async def iterate(self, prefix: str = "") -> AsyncIterator[Tuple[str, Any]]:
        entries = await asyncio.to_thread(self._read_locked)
        for key in sorted(entries):
            if key.startswith(prefix):
                yield key, entries[key]

    def _lock(self) -> FileLock:
        return FileLock(str(self.entries_path) + ".lock", timeout=self.lock_timeout)

    def _read_locked(self) -> Dict[str, Any]:
        self._ensure_open()
        try:
            with self._lock():
                return self._read()
        except Timeout as exc:
            raise StoreIOError(f"Timed out waiting for lock on {self.entries_path}") from exc

    def _modify(self, change: Callable[[Dict[str, Any]], object]) -> None:
        self._ensure_open()
        try:
            with self._lock():
                entries = self._read()
                change(entries)
                self._write(entries)
        except Timeout as exc:
            raise StoreIOError(f"Timed out waiting for lock on {self.entries_path}") from exc

    def _read(self) -> Dict[str, Any]:
        if not self.entries_path.exists():
            return {}
        try:
            payload = json.loads(self.entries_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreIOError(f"Failed to read {self.entries_path}: {exc}") from exc
        if not isinstance(payload, dict):
            raise StoreIOError(f"Corrupt store file {self.entries_path}: expected an object")
        return payload

    def _write(self, entries: Dict[str, Any]) -> None:
        temp_path = self.entries_path.with_suffix(".json.tmp")
        try:
            temp_path.write_text(
                json.dumps(entries, indent=2, sort_keys=True, ensure_ascii=False),
                encoding="utf-8",
            )
            os.replace(temp_path, self.entries_path)
        except (OSError, TypeError, ValueError) as exc:
            raise StoreIOError(f"Failed to write {self.entries_path}: {exc}") from exc

    def _ensure_open(self) -> None:
        if not self._opened:
            raise StoreIOError(f"Store at {self.directory} is not open")


class FileStoreOpener:
    """Map each world collection onto ``<world>/data/<collection>``."""

    def __init__(self, *, lock_timeout: float = 10.0) -> None:
        self.lock_timeout = lock_timeout

    def __call__(self, world: WorldDescriptor, collection: str) -> JsonFileKeyValueStore:
        return JsonFileKeyValueStore(
            world.data_path / collection, lock_timeout=self.lock_timeout
        )


def _validate_key(key: str) -> str:
    if not isinstance(key, str):
        raise TypeError(f"key must be a string, got {type(key)!r}")
    if not key:
        raise ValueError("key must be a non-empty string")
    return key


__all__ = [
    "ENTRIES_FILE",
    "FileStoreOpener",
    "InMemoryKeyValueStore",
    "InMemoryStoreOpener",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    "StoreOpener",
]
