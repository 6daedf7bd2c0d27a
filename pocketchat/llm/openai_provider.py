from typing import Optional

import openai
from openai import AsyncOpenAI

from .base import AIResponse, LLMProvider, ProviderError, Usage, describe_status_error


class OpenAIProvider(LLMProvider):
    name = "openai"
    display_name = "OpenAI"
    base_url: Optional[str] = None

    def __init__(self, api_key: str) -> None:
        self.client = AsyncOpenAI(api_key=api_key, base_url=self.base_url)

    def _request_options(self) -> dict:
        return {
            "max_tokens": 1000,
            "temperature": 0.7,
            "top_p": 1,
            "frequency_penalty": 0,
            "presence_penalty": 0,
        }

    def _forbidden_message(self) -> Optional[str]:
        return (
            "OpenAI API key does not have access to GPT models. "
            "Please check your account billing."
        )

    async def complete(self, messages: list[dict], model: str, **kwargs) -> AIResponse:
        options = {**self._request_options(), **kwargs}
        try:
            response = await self.client.chat.completions.create(
                model=model,
                messages=messages,
                **options,
            )
        except openai.APIStatusError as e:
            raise ProviderError(
                describe_status_error(
                    self.display_name, e.status_code, _error_detail(e), self._forbidden_message()
                ),
                status_code=e.status_code,
            ) from e
        except openai.APIConnectionError as e:
            raise ProviderError(f"Could not reach {self.display_name}: {e}") from e

        usage = None
        if response.usage:
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
        content = response.choices[0].message.content or ""
        return AIResponse(content=content.strip(), usage=usage)


def _error_detail(e: openai.APIStatusError) -> str:
    body = e.body if isinstance(e.body, dict) else {}
    error = body.get("error", body)
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return e.message
