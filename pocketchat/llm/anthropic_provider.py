import anthropic

from .base import AIResponse, LLMProvider, ProviderError, Usage, describe_status_error

DEFAULT_SYSTEM = "You are a helpful AI assistant."


class AnthropicProvider(LLMProvider):
    name = "anthropic"
    display_name = "Anthropic"

    def __init__(self, api_key: str) -> None:
        self.client = anthropic.AsyncAnthropic(api_key=api_key)

    def _convert_messages(self, messages: list[dict]) -> tuple[str, list[dict]]:
        system_parts = []
        converted = []
        for msg in messages:
            if msg["role"] == "system":
                system_parts.append(msg["content"])
            # Anthropic forbids consecutive same-role messages, merge them
            elif converted and converted[-1]["role"] == msg["role"]:
                converted[-1]["content"] += "\n\n" + msg["content"]
            else:
                converted.append({"role": msg["role"], "content": msg["content"]})
        system = "\n\n".join(p for p in system_parts if p) or DEFAULT_SYSTEM
        return system, converted

    async def complete(self, messages: list[dict], model: str, **kwargs) -> AIResponse:
        system, msgs = self._convert_messages(messages)
        kwargs.setdefault("max_tokens", 1000)
        try:
            response = await self.client.messages.create(
                model=model,
                system=system,
                messages=msgs,
                **kwargs,
            )
        except anthropic.APIStatusError as e:
            raise ProviderError(
                describe_status_error(self.display_name, e.status_code, _error_detail(e)),
                status_code=e.status_code,
            ) from e
        except anthropic.APIConnectionError as e:
            raise ProviderError(f"Could not reach {self.display_name}: {e}") from e

        text = "".join(block.text for block in response.content if block.type == "text")
        usage = Usage(
            prompt_tokens=response.usage.input_tokens,
            completion_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
        )
        return AIResponse(content=text, usage=usage)


def _error_detail(e: anthropic.APIStatusError) -> str:
    body = e.body if isinstance(e.body, dict) else {}
    error = body.get("error", {})
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return e.message
