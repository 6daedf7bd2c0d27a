"""Shared fixtures: temporary store/config directories and failing stores."""

import tempfile
from pathlib import Path
from typing import Optional
from unittest.mock import patch

from pocketchat import config, crypto, kvstore
from pocketchat.conversation.models import Message
from pocketchat.kvstore import FileKeyValueStore, KeyValueStore, StorageError


class FailingStore(KeyValueStore):
    """Every operation fails the way an unavailable disk would."""

    async def get_item(self, key: str) -> Optional[str]:
        raise StorageError(f"read failed: {key}")

    async def set_item(self, key: str, value: str) -> None:
        raise StorageError(f"write failed: {key}")

    async def remove_item(self, key: str) -> None:
        raise StorageError(f"remove failed: {key}")


class TempDataDir:
    """Point config, key file and key-value store at a throwaway directory."""

    def start(self) -> FileKeyValueStore:
        self._tmp = tempfile.TemporaryDirectory()
        root = Path(self._tmp.name)
        self._patches = [
            patch.object(config, "_config_dir", root),
            patch.object(config, "_config_file", root / "config.json"),
            patch.object(crypto, "_key_file", root / ".key"),
            patch.object(config, "_current_config", None),
        ]
        for p in self._patches:
            p.start()
        crypto.reset_cipher()
        self.root = root
        self.store = FileKeyValueStore(root / "store")
        kvstore.set_store(self.store)
        return self.store

    def stop(self) -> None:
        kvstore.set_store(None)
        crypto.reset_cipher()
        for p in reversed(self._patches):
            p.stop()
        self._tmp.cleanup()


def make_messages(*token_costs: int) -> list[Message]:
    """Messages with cached token costs, alternating user/assistant."""
    return [
        Message(text=f"message {i}", is_user=i % 2 == 0, tokens=cost)
        for i, cost in enumerate(token_costs)
    ]
