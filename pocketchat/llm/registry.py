import logging
from typing import Optional

from ..providers import ModelPreferences
from .anthropic_provider import AnthropicProvider
from .base import AIResponse, LLMProvider, MissingApiKeyError, ProviderError
from .gemini_provider import GeminiProvider
from .groq_provider import GroqProvider
from .openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

ALL_PROVIDERS = [
    OpenAIProvider,
    AnthropicProvider,
    GeminiProvider,
    GroqProvider,
]

_PROVIDER_CLASS_MAP: dict[str, type[LLMProvider]] = {cls.name: cls for cls in ALL_PROVIDERS}

# Clients keyed by (provider id, api key) so a changed key gets a fresh client
_providers: dict[tuple[str, str], LLMProvider] = {}


def create_provider(provider_id: str, api_key: str) -> LLMProvider:
    provider_cls = _PROVIDER_CLASS_MAP.get(provider_id)
    if not provider_cls:
        raise ProviderError(f"Unsupported AI provider: {provider_id}")
    if not api_key:
        raise MissingApiKeyError(
            f"No API key configured for {provider_cls.display_name}. Add one in Settings."
        )
    cache_key = (provider_id, api_key)
    if cache_key not in _providers:
        _providers[cache_key] = provider_cls(api_key)
    return _providers[cache_key]


def reset_providers() -> None:
    _providers.clear()


async def call_ai(
    provider_id: str,
    api_key: str,
    messages: list[dict],
    model: Optional[str] = None,
    preferences: Optional[ModelPreferences] = None,
) -> AIResponse:
    """Send *messages* to a provider; ``model`` defaults to the provider's selected model."""
    provider = create_provider(provider_id, api_key)
    if not model:
        model = await (preferences or ModelPreferences()).get_selected_model(provider_id)

    logger.info("Making %s API request (model=%s, turns=%d)", provider.display_name, model, len(messages))
    try:
        result = await provider.complete(messages, model)
    except ProviderError as e:
        logger.error("%s API error: %s", provider.display_name, e)
        raise

    logger.info(
        "%s API response received: %d chars, usage=%s",
        provider.display_name,
        len(result.content),
        result.usage.model_dump() if result.usage else None,
    )
    return result
