"""One send cycle: append the user turn, trim history, call the provider, store the reply."""

import logging
from typing import Awaitable, Callable, Optional

from .config import get_config
from .context.trimmer import context_budget, message_tokens, trim_context
from .conversation.models import Conversation, Message
from .conversation.storage import NEW_CONVERSATION_TITLE, ConversationStore, generate_title
from .kvstore import StorageError
from .llm.base import AIResponse
from .llm.registry import call_ai
from .prompts import SystemPromptCatalog
from .providers import ModelPreferences

logger = logging.getLogger(__name__)

CompleteFn = Callable[..., Awaitable[AIResponse]]


def build_chat_turns(messages: list[Message], system_prompt: Optional[str] = None) -> list[dict]:
    """Provider-facing turns: an optional leading system turn, then the history."""
    turns = []
    if system_prompt:
        turns.append({"role": "system", "content": system_prompt})
    turns.extend({"role": m.role, "content": m.text} for m in messages)
    return turns


class ConversationNotFound(LookupError):
    pass


class ChatService:
    def __init__(
        self,
        conversations: Optional[ConversationStore] = None,
        prompts: Optional[SystemPromptCatalog] = None,
        preferences: Optional[ModelPreferences] = None,
        complete: CompleteFn = call_ai,
    ) -> None:
        self.conversations = conversations or ConversationStore()
        self.prompts = prompts or SystemPromptCatalog()
        self.preferences = preferences or ModelPreferences()
        self._complete = complete

    async def new_conversation(
        self, provider_id: str, model_name: Optional[str] = None, title: str = ""
    ) -> Conversation:
        """Create, store and activate a conversation bound to a provider/model."""
        model_name = model_name or await self.preferences.get_selected_model(provider_id)
        conv = Conversation(
            title=title or NEW_CONVERSATION_TITLE,
            provider_id=provider_id,
            model_name=model_name,
            system_prompt=await self.prompts.get_selected_prompt(provider_id, model_name),
        )
        await self.conversations.save_conversation(conv)
        await self.conversations.set_current_conversation_id(conv.id)
        logger.info("Created conversation %s (%s/%s)", conv.id, provider_id, model_name)
        return conv

    async def current_conversation(
        self, provider_id: str, model_name: Optional[str] = None
    ) -> Conversation:
        """The active conversation, or a new one if none is recorded or it was deleted."""
        current_id = await self.conversations.get_current_conversation_id()
        if current_id:
            conv = await self.conversations.get_conversation(current_id)
            if conv is not None:
                return conv
            logger.info("Current conversation %s no longer exists", current_id)
        return await self.new_conversation(provider_id, model_name)

    async def _require(self, conv_id: str) -> Conversation:
        conv = await self.conversations.get_conversation(conv_id)
        if conv is None:
            raise ConversationNotFound(conv_id)
        return conv

    async def switch_model(self, conv_id: str, provider_id: str, model_name: str) -> Conversation:
        """Rebind a conversation; only later sends are affected."""
        conv = await self._require(conv_id)
        conv.provider_id = provider_id
        conv.model_name = model_name
        await self.conversations.save_conversation(conv)
        return conv

    async def switch_system_prompt(self, conv_id: str, prompt_id: str) -> Conversation:
        """Select a prompt for the conversation's provider/model and pin its text."""
        conv = await self._require(conv_id)
        await self.prompts.set_selected_prompt(conv.provider_id, conv.model_name, prompt_id)
        conv.system_prompt = await self.prompts.get_selected_prompt(
            conv.provider_id, conv.model_name
        )
        await self.conversations.save_conversation(conv)
        return conv

    async def send_message(
        self,
        conv_id: str,
        text: str,
        api_key: Optional[str] = None,
        max_tokens: Optional[int] = None,
    ) -> tuple[Conversation, AIResponse]:
        """Send *text* in a conversation and store both turns.

        If the provider call fails the user turn is still stored and the
        ProviderError propagates to the caller.
        """
        text = text.strip()
        if not text:
            raise ValueError("Message text is empty")

        conv = await self._require(conv_id)
        user_message = Message.create(text, is_user=True)
        if conv.title == NEW_CONVERSATION_TITLE and not any(m.is_user for m in conv.messages):
            conv.title = generate_title(text)
        conv.messages.append(user_message)

        history = trim_context(conv.messages, conv.model_name, conv.system_prompt, max_tokens)
        logger.info(
            "Conversation %s: sending %d of %d messages (%d tokens, budget %d)",
            conv.id,
            len(history),
            len(conv.messages),
            sum(message_tokens(m) for m in history),
            context_budget(conv.model_name, conv.system_prompt, max_tokens),
        )
        turns = build_chat_turns(history, conv.system_prompt)

        if api_key is None:
            api_key = get_config().llm.get_api_key(conv.provider_id)
        try:
            response = await self._complete(conv.provider_id, api_key, turns, conv.model_name)
        except Exception:
            try:
                await self.conversations.save_conversation(conv)
            except (StorageError, ValueError) as e:
                logger.error("Could not keep the unanswered turn in %s: %s", conv.id, e)
            raise

        conv.messages.append(Message.create(response.content, is_user=False))
        await self.conversations.save_conversation(conv)
        return conv, response
