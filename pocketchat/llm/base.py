from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel


class Usage(BaseModel):
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


class AIResponse(BaseModel):
    content: str
    usage: Optional[Usage] = None


class ProviderError(Exception):
    """A completion request failed; ``str(err)`` is fit to show the user."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def describe_status_error(
    provider_name: str, status: int, detail: str = "", forbidden: Optional[str] = None
) -> str:
    """User-facing text for an HTTP error returned by a provider."""
    if status == 401:
        return f"Invalid {provider_name} API key. Please check your API key in Settings."
    if status == 403 and forbidden:
        return forbidden
    if status == 429:
        return f"{provider_name} rate limit exceeded. Please try again in a moment."
    if status >= 500:
        return f"{provider_name} servers are experiencing issues. Please try again later."
    return f"{provider_name} API error: {status} - {detail or 'Unknown error'}"


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    name: str
    display_name: str

    @abstractmethod
    async def complete(self, messages: list[dict], model: str, **kwargs) -> AIResponse:
        """Send role/content turns and return the reply.

        Raises ProviderError on any API failure.
        """
        ...


class MissingApiKeyError(ProviderError):
    pass
