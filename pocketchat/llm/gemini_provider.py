from typing import Optional

from google import genai
from google.genai import errors, types

from .base import AIResponse, LLMProvider, ProviderError, Usage, describe_status_error


class GeminiProvider(LLMProvider):
    name = "google"
    display_name = "Google"

    def __init__(self, api_key: str) -> None:
        self.client = genai.Client(api_key=api_key)

    def _build_contents(
        self, messages: list[dict]
    ) -> tuple[Optional[str], list[types.Content]]:
        system_parts = []
        contents: list[types.Content] = []
        for msg in messages:
            role = msg["role"]
            text = msg["content"]
            if role == "system":
                system_parts.append(text)
                continue
            contents.append(
                types.Content(
                    role="model" if role == "assistant" else "user",
                    parts=[types.Part.from_text(text=text)],
                )
            )
        return "\n\n".join(system_parts) or None, contents

    async def complete(self, messages: list[dict], model: str, **kwargs) -> AIResponse:
        system_instruction, contents = self._build_contents(messages)
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=contents,
                config=types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    temperature=kwargs.get("temperature", 0.7),
                    max_output_tokens=kwargs.get("max_tokens", 1000),
                ),
            )
        except errors.APIError as e:
            # Google answers 403 for an invalid key
            status = 401 if e.code == 403 else e.code
            raise ProviderError(
                describe_status_error(self.display_name, status, e.message or ""),
                status_code=e.code,
            ) from e

        usage = None
        meta = response.usage_metadata
        if meta:
            usage = Usage(
                prompt_tokens=meta.prompt_token_count,
                completion_tokens=meta.candidates_token_count,
                total_tokens=meta.total_token_count,
            )
        return AIResponse(content=response.text or "", usage=usage)
