from typing import Optional

from .openai_provider import OpenAIProvider


class GroqProvider(OpenAIProvider):
    """Groq inference via its OpenAI-compatible endpoint."""

    name = "groq"
    display_name = "Groq"
    base_url = "https://api.groq.com/openai/v1"

    def _request_options(self) -> dict:
        return {"max_tokens": 1000, "temperature": 0.7}

    def _forbidden_message(self) -> Optional[str]:
        return None
