import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from .crypto import get_cipher, is_encrypted, set_strict_permissions

logger = logging.getLogger(__name__)


class LLMConfig(BaseModel):
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""
    groq_api_key: str = ""
    default_provider: str = "openai"

    def get_api_key(self, provider_id: str) -> str:
        return getattr(self, _PROVIDER_KEY_MAP.get(provider_id, ""), "") or ""

    def set_api_key(self, provider_id: str, api_key: str) -> None:
        key_attr = _PROVIDER_KEY_MAP.get(provider_id)
        if not key_attr:
            raise ValueError(f"Unknown provider: {provider_id}")
        setattr(self, key_attr, api_key)

    def configured_providers(self) -> list[str]:
        return [pid for pid in _PROVIDER_KEY_MAP if self.get_api_key(pid)]


class AppConfig(BaseModel):
    llm: LLMConfig = LLMConfig()
    store_dir: str = ""  # Falls back to <config dir>/store when empty


_PROVIDER_KEY_MAP = {
    "openai": "openai_api_key",
    "anthropic": "anthropic_api_key",
    "google": "google_api_key",
    "groq": "groq_api_key",
}

_config_dir = Path(os.environ.get("POCKETCHAT_CONFIG_DIR", Path.home() / ".pocketchat"))
_config_file = _config_dir / "config.json"


def _llm_section(data: dict) -> dict:
    return data.get("llm") or {}


def _seal_api_keys(data: dict) -> dict:
    cipher = get_cipher()
    llm = _llm_section(data)
    for attr in _PROVIDER_KEY_MAP.values():
        if attr in llm:
            llm[attr] = cipher.seal(llm[attr])
    return data


def _open_api_keys(data: dict) -> dict:
    cipher = get_cipher()
    llm = _llm_section(data)
    for attr in _PROVIDER_KEY_MAP.values():
        if attr in llm:
            llm[attr] = cipher.open(llm[attr])
    return data


def _has_plaintext_keys(data: dict) -> bool:
    llm = _llm_section(data)
    return any(llm.get(attr) and not is_encrypted(llm[attr]) for attr in _PROVIDER_KEY_MAP.values())


def _ensure_config_dir() -> None:
    _config_dir.mkdir(parents=True, exist_ok=True)


def get_store_dir(config: Optional[AppConfig] = None) -> Path:
    config = config or get_config()
    if config.store_dir:
        return Path(config.store_dir).expanduser()
    return _config_dir / "store"


def load_config() -> AppConfig:
    _ensure_config_dir()
    if _config_file.exists():
        data = json.loads(_config_file.read_text(encoding="utf-8"))
        migrate = _has_plaintext_keys(data)
        config = AppConfig(**_open_api_keys(data))
        if migrate:
            logger.info("Migrating config to encrypted storage")
            save_config(config)
        return config
    return AppConfig()


def save_config(config: AppConfig) -> None:
    _ensure_config_dir()
    data = _seal_api_keys(config.model_dump())
    _config_file.write_text(
        json.dumps(data, indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    set_strict_permissions(_config_file)


_current_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    global _current_config
    if _current_config is None:
        _current_config = load_config()
    return _current_config


def update_config(config: AppConfig) -> AppConfig:
    global _current_config
    save_config(config)
    _current_config = config
    return _current_config
