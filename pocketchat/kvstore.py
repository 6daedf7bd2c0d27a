"""Durable key-value storage for conversations and preferences.

Values are strings (callers store JSON documents). Each key lives in its
own file and is replaced atomically, so a single ``set_item`` is all or
nothing. There is no multi-key transaction and no locking: callers that
read, modify and write back a key can lose updates if two of them
interleave.
"""

import asyncio
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from urllib.parse import quote

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """The backing store could not be read or written."""


class KeyValueStore(ABC):
    """Async string store keyed by arbitrary strings."""

    @abstractmethod
    async def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key was never set."""
        ...

    @abstractmethod
    async def set_item(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def remove_item(self, key: str) -> None:
        ...


class FileKeyValueStore(KeyValueStore):
    """One UTF-8 file per key under *root*; file I/O runs in the default executor."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def _path_for(self, key: str) -> Path:
        # Keys embed provider and model names, which may contain "/" or ":"
        return self.root / f"{quote(key, safe='')}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self._path_for(key)
        fd, tmp = tempfile.mkstemp(dir=str(self.root), prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _remove(self, key: str) -> None:
        path = self._path_for(key)
        if path.exists():
            path.unlink()

    async def _run(self, fn, key: str, *args):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, fn, key, *args)
        except (OSError, UnicodeError) as e:
            raise StorageError(f"Storage operation failed for key '{key}': {e}") from e

    async def get_item(self, key: str) -> Optional[str]:
        return await self._run(self._read, key)

    async def set_item(self, key: str, value: str) -> None:
        await self._run(self._write, key, value)

    async def remove_item(self, key: str) -> None:
        await self._run(self._remove, key)


_store: Optional[KeyValueStore] = None


def get_store() -> KeyValueStore:
    global _store
    if _store is None:
        from .config import get_store_dir

        root = get_store_dir()
        logger.info("Using key-value store at %s", root)
        _store = FileKeyValueStore(root)
    return _store


def set_store(store: Optional[KeyValueStore]) -> None:
    """Replace the process-wide store (None re-resolves it from config)."""
    global _store
    _store = store
