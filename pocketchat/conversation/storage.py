import json
import logging
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from ..kvstore import KeyValueStore, StorageError, get_store
from .models import Conversation

logger = logging.getLogger(__name__)

CONVERSATIONS_KEY = "stored_conversations"
CURRENT_CONVERSATION_KEY = "current_conversation_id"

NEW_CONVERSATION_TITLE = "New Chat"
TITLE_MAX_LENGTH = 50


def generate_title(first_message: str) -> str:
    """Title from the first user message: one line, at most 50 characters."""
    cleaned = first_message.strip().replace("\n", " ")
    if len(cleaned) <= TITLE_MAX_LENGTH:
        return cleaned
    return cleaned[: TITLE_MAX_LENGTH - 3] + "..."


def export_as_text(conversation: Conversation) -> str:
    """Render a conversation as a plain-text transcript for sharing."""
    header = (
        f"# {conversation.title}\n"
        f"Provider: {conversation.provider_id}\n"
        f"Model: {conversation.model_name}\n"
        f"Created: {conversation.created_at:%Y-%m-%d %H:%M}\n"
        f"Updated: {conversation.updated_at:%Y-%m-%d %H:%M}\n\n"
    )
    if conversation.system_prompt:
        header += f"System Prompt: {conversation.system_prompt}\n\n"

    blocks = [
        f"**{'User' if m.is_user else 'Assistant'}** ({m.timestamp:%H:%M:%S}):\n{m.text}\n"
        for m in conversation.messages
    ]
    return header + "\n".join(blocks)


class ConversationStore:
    """Conversations kept as one JSON list under a single key.

    ``save_conversation`` and ``delete_conversation`` read the whole list,
    modify it and write it back. Two overlapping calls can both start from
    the same snapshot, in which case the later write drops the earlier one.
    """

    def __init__(self, kv: Optional[KeyValueStore] = None) -> None:
        self._kv = kv

    @property
    def kv(self) -> KeyValueStore:
        return self._kv or get_store()

    async def _load(self) -> list[Conversation]:
        raw = await self.kv.get_item(CONVERSATIONS_KEY)
        if not raw:
            return []
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError(f"expected a list of conversations, got {type(items).__name__}")
        conversations = []
        for item in items:
            try:
                conversations.append(Conversation.model_validate(item))
            except ValidationError as e:
                conv_id = item.get("id", "?") if isinstance(item, dict) else "?"
                logger.warning("Skipping unreadable conversation %s: %s", conv_id, e)
        return conversations

    async def _store(self, conversations: list[Conversation]) -> None:
        data = [c.model_dump(mode="json") for c in conversations]
        await self.kv.set_item(CONVERSATIONS_KEY, json.dumps(data, ensure_ascii=False))

    async def list_conversations(self) -> list[Conversation]:
        try:
            return await self._load()
        except (StorageError, ValueError) as e:
            logger.error("Error loading conversations: %s", e)
            return []

    async def get_conversation(self, conv_id: str) -> Optional[Conversation]:
        for conv in await self.list_conversations():
            if conv.id == conv_id:
                return conv
        return None

    async def save_conversation(self, conversation: Conversation) -> None:
        try:
            conversations = await self._load()
            conversation.updated_at = datetime.now(timezone.utc)
            for i, existing in enumerate(conversations):
                if existing.id == conversation.id:
                    conversations[i] = conversation
                    break
            else:
                conversations.append(conversation)
            await self._store(conversations)
        except (StorageError, ValueError) as e:
            logger.error("Error saving conversation %s: %s", conversation.id, e)
            raise

    async def delete_conversation(self, conv_id: str) -> None:
        """Remove *conv_id*; the current-conversation pointer is cleared if it pointed there."""
        try:
            conversations = await self._load()
            await self._store([c for c in conversations if c.id != conv_id])
            if await self.kv.get_item(CURRENT_CONVERSATION_KEY) == conv_id:
                await self.kv.remove_item(CURRENT_CONVERSATION_KEY)
        except (StorageError, ValueError) as e:
            logger.error("Error deleting conversation %s: %s", conv_id, e)
            raise

    async def get_current_conversation_id(self) -> Optional[str]:
        try:
            return await self.kv.get_item(CURRENT_CONVERSATION_KEY)
        except StorageError as e:
            logger.error("Error getting current conversation id: %s", e)
            return None

    async def set_current_conversation_id(self, conv_id: str) -> None:
        try:
            await self.kv.set_item(CURRENT_CONVERSATION_KEY, conv_id)
        except StorageError as e:
            logger.error("Error setting current conversation id: %s", e)
            raise
