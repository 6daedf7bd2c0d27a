"""At-rest encryption for provider API keys.

Keys are written to ``config.json`` as ``ENC:<fernet-token>``. The Fernet
key sits beside it in ``.key`` with owner-only permissions; a plaintext key
left by an older config is read as-is and sealed on the next save.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

ENC_PREFIX = "ENC:"

_config_dir = Path(os.environ.get("POCKETCHAT_CONFIG_DIR", Path.home() / ".pocketchat"))
_key_file = _config_dir / ".key"


def set_strict_permissions(filepath: Path) -> None:
    """chmod 600 *filepath*, logging instead of raising on failure."""
    try:
        os.chmod(str(filepath), 0o600)
    except OSError as e:
        logger.warning("Failed to set permissions on %s: %s", filepath, e)


def is_encrypted(value: str) -> bool:
    return bool(value) and value.startswith(ENC_PREFIX)


class KeyCipher:
    """Seals and opens API keys with the Fernet key stored in *key_file*."""

    def __init__(self, key_file: Path) -> None:
        self.key_file = key_file
        self._fernet = Fernet(self._read_key() or self._new_key())

    def _read_key(self) -> Optional[bytes]:
        if not self.key_file.exists():
            return None
        key = self.key_file.read_bytes().strip()
        try:
            Fernet(key)
        except ValueError:
            logger.warning("Key file %s is not a valid Fernet key, replacing it", self.key_file)
            return None
        return key

    def _new_key(self) -> bytes:
        key = Fernet.generate_key()
        self.key_file.parent.mkdir(parents=True, exist_ok=True)
        self.key_file.write_bytes(key)
        set_strict_permissions(self.key_file)
        logger.info("Generated new encryption key at %s", self.key_file)
        return key

    def seal(self, api_key: str) -> str:
        if not api_key or is_encrypted(api_key):
            return api_key
        return ENC_PREFIX + self._fernet.encrypt(api_key.encode("utf-8")).decode("ascii")

    def open(self, stored: str) -> str:
        """Plain value of *stored*; ``""`` when the token no longer decrypts."""
        if not is_encrypted(stored):
            return stored
        try:
            return self._fernet.decrypt(stored[len(ENC_PREFIX):].encode("ascii")).decode("utf-8")
        except InvalidToken:
            logger.warning("Stored API key cannot be decrypted with %s; treating it as unset", self.key_file)
            return ""


_cipher: Optional[KeyCipher] = None


def get_cipher() -> KeyCipher:
    global _cipher
    if _cipher is None or _cipher.key_file != _key_file:
        _cipher = KeyCipher(_key_file)
    return _cipher


def reset_cipher() -> None:
    """Drop the cached cipher so the key file is read again."""
    global _cipher
    _cipher = None
