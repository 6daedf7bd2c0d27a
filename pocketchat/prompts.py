import json
import logging
from typing import Optional

from pydantic import ValidationError

from .conversation.models import SystemPrompt
from .kvstore import KeyValueStore, StorageError, get_store

logger = logging.getLogger(__name__)

SYSTEM_PROMPTS_KEY = "custom_system_prompts"

DEFAULT_SYSTEM_PROMPTS: tuple[SystemPrompt, ...] = (
    SystemPrompt(
        id="default",
        name="Default Assistant",
        prompt="You are a helpful AI assistant. Be concise, accurate, and friendly in your responses.",
        is_default=True,
    ),
    SystemPrompt(
        id="creative",
        name="Creative Writer",
        prompt=(
            "You are a creative writing assistant. Help with storytelling, character "
            "development, and imaginative content. Be creative and inspiring."
        ),
        is_default=True,
    ),
    SystemPrompt(
        id="technical",
        name="Technical Expert",
        prompt=(
            "You are a technical expert and programming assistant. Provide accurate, "
            "detailed technical information and code examples when appropriate."
        ),
        is_default=True,
    ),
    SystemPrompt(
        id="teacher",
        name="Patient Teacher",
        prompt=(
            "You are a patient and encouraging teacher. Explain concepts clearly, provide "
            "examples, and adapt your explanations to the user's level of understanding."
        ),
        is_default=True,
    ),
    SystemPrompt(
        id="analyst",
        name="Research Analyst",
        prompt=(
            "You are a research analyst. Provide thorough analysis, cite sources when "
            "possible, and present information in a structured, objective manner."
        ),
        is_default=True,
    ),
)

_BUILTIN_IDS = frozenset(p.id for p in DEFAULT_SYSTEM_PROMPTS)


def selected_prompt_key(provider_id: str, model_name: str) -> str:
    return f"system_prompt_{provider_id}_{model_name}"


class SystemPromptCatalog:
    """Built-in prompts plus the user's custom prompts.

    Custom prompts are stored on their own and merged behind the built-ins
    at read time; built-ins are never written to storage.
    """

    def __init__(self, kv: Optional[KeyValueStore] = None) -> None:
        self._kv = kv

    @property
    def kv(self) -> KeyValueStore:
        return self._kv or get_store()

    async def _load_custom(self) -> list[SystemPrompt]:
        raw = await self.kv.get_item(SYSTEM_PROMPTS_KEY)
        if not raw:
            return []
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError(f"expected a list of system prompts, got {type(items).__name__}")
        prompts = []
        for item in items:
            try:
                prompts.append(SystemPrompt.model_validate(item))
            except ValidationError as e:
                prompt_id = item.get("id", "?") if isinstance(item, dict) else "?"
                logger.warning("Skipping unreadable system prompt %s: %s", prompt_id, e)
        return prompts

    async def get_custom_prompts(self) -> list[SystemPrompt]:
        try:
            return await self._load_custom()
        except (StorageError, ValueError) as e:
            logger.error("Error loading custom system prompts: %s", e)
            return []

    async def list_prompts(self) -> list[SystemPrompt]:
        return [*DEFAULT_SYSTEM_PROMPTS, *await self.get_custom_prompts()]

    async def get_prompt(self, prompt_id: str) -> Optional[SystemPrompt]:
        for prompt in await self.list_prompts():
            if prompt.id == prompt_id:
                return prompt
        return None

    async def save_prompt(self, prompt: SystemPrompt) -> SystemPrompt:
        """Insert or replace a custom prompt by id."""
        if prompt.id in _BUILTIN_IDS:
            raise ValueError(f"Built-in prompt '{prompt.id}' cannot be modified")
        prompt = prompt.model_copy(update={"is_default": False})
        try:
            prompts = await self._load_custom()
            for i, existing in enumerate(prompts):
                if existing.id == prompt.id:
                    prompts[i] = prompt
                    break
            else:
                prompts.append(prompt)
            await self.kv.set_item(
                SYSTEM_PROMPTS_KEY,
                json.dumps([p.model_dump() for p in prompts], ensure_ascii=False),
            )
        except (StorageError, ValueError) as e:
            logger.error("Error saving system prompt %s: %s", prompt.id, e)
            raise
        return prompt

    async def delete_prompt(self, prompt_id: str) -> None:
        try:
            prompts = await self._load_custom()
            await self.kv.set_item(
                SYSTEM_PROMPTS_KEY,
                json.dumps(
                    [p.model_dump() for p in prompts if p.id != prompt_id],
                    ensure_ascii=False,
                ),
            )
        except (StorageError, ValueError) as e:
            logger.error("Error deleting system prompt %s: %s", prompt_id, e)
            raise

    async def get_selected_prompt(self, provider_id: str, model_name: str) -> str:
        """Text of the prompt selected for this provider/model pair.

        Falls back to the first built-in when nothing was selected or the
        selected prompt has since been deleted.
        """
        try:
            prompt_id = await self.kv.get_item(selected_prompt_key(provider_id, model_name))
        except StorageError as e:
            logger.error("Error getting selected system prompt: %s", e)
            prompt_id = None
        if prompt_id:
            prompt = await self.get_prompt(prompt_id)
            if prompt is not None and prompt.prompt:
                return prompt.prompt
        return DEFAULT_SYSTEM_PROMPTS[0].prompt

    async def set_selected_prompt(self, provider_id: str, model_name: str, prompt_id: str) -> None:
        try:
            await self.kv.set_item(selected_prompt_key(provider_id, model_name), prompt_id)
        except StorageError as e:
            logger.error("Error setting selected system prompt: %s", e)
            raise
