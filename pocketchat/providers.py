"""Supported AI providers, their models, and per-provider model preferences."""

import json
import logging
from typing import Optional

from pydantic import BaseModel

from .kvstore import KeyValueStore, StorageError, get_store

logger = logging.getLogger(__name__)


class AIModel(BaseModel):
    id: str
    name: str  # Identifier sent to the provider and used for context limits
    display_name: str
    is_custom: bool = False


class AIProvider(BaseModel):
    id: str
    name: str
    display_name: str
    api_url: str
    default_model: str
    description: str
    website_url: str
    key_prefix: str
    available_models: tuple[AIModel, ...] = ()


def _models(*pairs: tuple[str, str]) -> tuple[AIModel, ...]:
    return tuple(AIModel(id=name, name=name, display_name=display) for name, display in pairs)


OPENAI_MODELS = _models(
    ("gpt-4o", "GPT-4o"),
    ("gpt-4o-mini", "GPT-4o Mini"),
    ("gpt-4-turbo", "GPT-4 Turbo"),
    ("gpt-4", "GPT-4"),
    ("gpt-3.5-turbo", "GPT-3.5 Turbo"),
)

ANTHROPIC_MODELS = _models(
    ("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet"),
    ("claude-3-5-haiku-20241022", "Claude 3.5 Haiku"),
    ("claude-3-opus-20240229", "Claude 3 Opus"),
    ("claude-3-sonnet-20240229", "Claude 3 Sonnet"),
    ("claude-3-haiku-20240307", "Claude 3 Haiku"),
)

GOOGLE_MODELS = _models(
    ("gemini-1.5-pro-latest", "Gemini 1.5 Pro"),
    ("gemini-1.5-flash-latest", "Gemini 1.5 Flash"),
    ("gemini-pro", "Gemini Pro"),
    ("gemini-pro-vision", "Gemini Pro Vision"),
)

GROQ_MODELS = _models(
    ("llama-3.1-405b-reasoning", "Llama 3.1 405B"),
    ("llama-3.1-70b-versatile", "Llama 3.1 70B"),
    ("llama-3.1-8b-instant", "Llama 3.1 8B"),
    ("mixtral-8x7b-32768", "Mixtral 8x7B"),
    ("gemma2-9b-it", "Gemma 2 9B"),
)

AI_PROVIDERS: tuple[AIProvider, ...] = (
    AIProvider(
        id="openai",
        name="ChatGPT",
        display_name="ChatGPT (OpenAI)",
        api_url="https://api.openai.com/v1/chat/completions",
        default_model="gpt-3.5-turbo",
        description="GPT models - Fast and reliable AI assistants",
        website_url="https://platform.openai.com",
        key_prefix="sk-",
        available_models=OPENAI_MODELS,
    ),
    AIProvider(
        id="anthropic",
        name="Claude",
        display_name="Claude (Anthropic)",
        api_url="https://api.anthropic.com/v1/messages",
        default_model="claude-3-haiku-20240307",
        description="Claude models - Thoughtful and helpful AI",
        website_url="https://console.anthropic.com",
        key_prefix="sk-ant-",
        available_models=ANTHROPIC_MODELS,
    ),
    AIProvider(
        id="google",
        name="Gemini",
        display_name="Gemini (Google)",
        api_url="https://generativelanguage.googleapis.com/v1beta/models",
        default_model="gemini-pro",
        description="Gemini models - Google's advanced AI models",
        website_url="https://makersuite.google.com",
        key_prefix="AI",
        available_models=GOOGLE_MODELS,
    ),
    AIProvider(
        id="groq",
        name="Groq",
        display_name="Groq",
        api_url="https://api.groq.com/openai/v1/chat/completions",
        default_model="mixtral-8x7b-32768",
        description="Groq models - Ultra-fast inference",
        website_url="https://console.groq.com",
        key_prefix="gsk_",
        available_models=GROQ_MODELS,
    ),
)

_PROVIDERS_BY_ID = {p.id: p for p in AI_PROVIDERS}


def get_provider_by_id(provider_id: str) -> Optional[AIProvider]:
    return _PROVIDERS_BY_ID.get(provider_id)


def validate_api_key(provider_id: str, api_key: str) -> bool:
    """Cheap format check of a key before it is saved; does not contact the provider."""
    provider = get_provider_by_id(provider_id)
    if not provider:
        return False
    if not api_key.startswith(provider.key_prefix):
        return False
    # Groq key lengths vary
    if provider_id == "groq":
        return len(api_key) >= 30
    return len(api_key) > len(provider.key_prefix) + 10


def custom_models_key(provider_id: str) -> str:
    return f"custom_models_{provider_id}"


def selected_model_key(provider_id: str) -> str:
    return f"selected_model_{provider_id}"


class ModelPreferences:
    """User-added models and the selected model of each provider."""

    def __init__(self, kv: Optional[KeyValueStore] = None) -> None:
        self._kv = kv

    @property
    def kv(self) -> KeyValueStore:
        return self._kv or get_store()

    async def _load_custom(self, provider_id: str) -> list[AIModel]:
        raw = await self.kv.get_item(custom_models_key(provider_id))
        if not raw:
            return []
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError(f"expected a list of models, got {type(items).__name__}")
        return [AIModel.model_validate(m) for m in items]

    async def _store_custom(self, provider_id: str, models: list[AIModel]) -> None:
        await self.kv.set_item(
            custom_models_key(provider_id),
            json.dumps([m.model_dump() for m in models], ensure_ascii=False),
        )

    async def get_custom_models(self, provider_id: str) -> list[AIModel]:
        try:
            return await self._load_custom(provider_id)
        except (StorageError, ValueError) as e:
            logger.error("Error loading custom models for %s: %s", provider_id, e)
            return []

    async def get_available_models(self, provider_id: str) -> list[AIModel]:
        provider = get_provider_by_id(provider_id)
        if not provider:
            return []
        return [*provider.available_models, *await self.get_custom_models(provider_id)]

    async def add_custom_model(self, provider_id: str, model_name: str) -> AIModel:
        model = AIModel(
            id=f"custom_{model_name}",
            name=model_name,
            display_name=model_name,
            is_custom=True,
        )
        try:
            models = await self._load_custom(provider_id)
            if any(m.name == model_name for m in models):
                raise ValueError(f"Model '{model_name}' already exists")
            await self._store_custom(provider_id, [*models, model])
        except (StorageError, ValueError) as e:
            logger.error("Error adding custom model %s for %s: %s", model_name, provider_id, e)
            raise
        return model

    async def remove_custom_model(self, provider_id: str, model_id: str) -> None:
        try:
            models = await self._load_custom(provider_id)
            await self._store_custom(provider_id, [m for m in models if m.id != model_id])
        except (StorageError, ValueError) as e:
            logger.error("Error removing custom model %s for %s: %s", model_id, provider_id, e)
            raise

    async def get_selected_model(self, provider_id: str) -> str:
        try:
            selected = await self.kv.get_item(selected_model_key(provider_id))
            if selected:
                return selected
        except StorageError as e:
            logger.error("Error getting selected model for %s: %s", provider_id, e)
        provider = get_provider_by_id(provider_id)
        return provider.default_model if provider else ""

    async def set_selected_model(self, provider_id: str, model_name: str) -> None:
        try:
            await self.kv.set_item(selected_model_key(provider_id), model_name)
        except StorageError as e:
            logger.error("Error setting selected model for %s: %s", provider_id, e)
            raise
