from types import MappingProxyType
from typing import Mapping

DEFAULT_CONTEXT_LIMIT = 4096

# Context window per model identifier, in tokens. Keys are exact model ids
# as sent to the provider; update by hand when providers release models.
MODEL_CONTEXT_LIMITS: Mapping[str, int] = MappingProxyType({
    # OpenAI
    "gpt-4o": 128000,
    "gpt-4o-mini": 128000,
    "gpt-4-turbo": 128000,
    "gpt-4": 8192,
    "gpt-3.5-turbo": 4096,
    # Anthropic
    "claude-3-5-sonnet-20241022": 200000,
    "claude-3-5-haiku-20241022": 200000,
    "claude-3-opus-20240229": 200000,
    "claude-3-sonnet-20240229": 200000,
    "claude-3-haiku-20240307": 200000,
    # Google
    "gemini-1.5-pro-latest": 2000000,
    "gemini-1.5-flash-latest": 1000000,
    "gemini-pro": 32000,
    "gemini-pro-vision": 16000,
    # Groq
    "llama-3.1-405b-reasoning": 32768,
    "llama-3.1-70b-versatile": 32768,
    "llama-3.1-8b-instant": 8192,
    "mixtral-8x7b-32768": 32768,
    "gemma2-9b-it": 8192,
})


def get_context_limit(model_name: str) -> int:
    """Context window for *model_name*; unknown models get a conservative 4096.

    Lookup is exact and case-sensitive, with no aliasing.
    """
    return MODEL_CONTEXT_LIMITS.get(model_name, DEFAULT_CONTEXT_LIMIT)
