"""
JsonFileStore: durable key/value store backing the session cache.

The whole store is one JSON object on disk. Every mutation rewrites it via a
temporary file and os.replace(), so a reader (or the next process) sees either
the old document or the new one, never a mix. Multi-key updates go through
the same single write, which is what makes clearing a session atomic.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from typing import Any, Iterable

_LOGGER = logging.getLogger(__name__)


class StorageError(Exception):
    """The backing file could not be read, parsed or written."""


class JsonFileStore:
    """
    Key/value store persisted to a single JSON file.

    Read-modify-write cycles are serialised with an asyncio.Lock; blocking
    file I/O runs in a worker thread.
    """

    def __init__(self, path: str) -> None:
        self.path = os.path.expanduser(path)
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    async def async_get(self, key: str, default: Any = None) -> Any:
        """Return the stored value for key, or default when it is missing."""
        data = await asyncio.to_thread(self._read)
        return data.get(key, default)

    async def async_set(self, key: str, value: Any) -> None:
        await self.async_set_many({key: value})

    async def async_set_many(self, values: dict[str, Any]) -> None:
        """Store all values in one atomic write."""
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            data.update(values)
            await asyncio.to_thread(self._write, data)

    async def async_remove(self, key: str) -> None:
        await self.async_remove_many([key])

    async def async_remove_many(self, keys: Iterable[str]) -> None:
        """Remove all keys in one atomic write. Missing keys are ignored."""
        keys = list(keys)
        async with self._lock:
            data = await asyncio.to_thread(self._read)
            if not any(key in data for key in keys):
                return
            for key in keys:
                data.pop(key, None)
            await asyncio.to_thread(self._write, data)

    # ------------------------------------------------------------------
    # Internal helpers (run in a worker thread)
    # ------------------------------------------------------------------

    def _read(self) -> dict[str, Any]:
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Unexpected content in {self.path}: {type(data).__name__}")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        directory = os.path.dirname(self.path) or "."
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".volunteam-", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e
        _LOGGER.debug("Wrote %s keys to %s", len(data), self.path)
