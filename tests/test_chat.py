import unittest
from unittest.mock import AsyncMock, patch

from pocketchat.chat import ChatService, ConversationNotFound, build_chat_turns
from pocketchat.conversation.models import Message
from pocketchat.conversation.storage import ConversationStore
from pocketchat.kvstore import StorageError
from pocketchat.llm.base import AIResponse, ProviderError
from pocketchat.prompts import DEFAULT_SYSTEM_PROMPTS, SystemPromptCatalog
from pocketchat.providers import ModelPreferences

from .support import TempDataDir


class TestBuildChatTurns(unittest.TestCase):
    def test_system_turn_leads(self) -> None:
        messages = [Message(text="hi", is_user=True), Message(text="hello", is_user=False)]
        assert build_chat_turns(messages, "Be brief.") == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "hello"},
        ]

    def test_no_system_turn_without_prompt(self) -> None:
        turns = build_chat_turns([Message(text="hi", is_user=True)], None)
        assert turns == [{"role": "user", "content": "hi"}]


class TestChatService(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.env = TempDataDir()
        kv = self.env.start()
        self.complete = AsyncMock(return_value=AIResponse(content="Sure, here you go."))
        self.service = ChatService(
            conversations=ConversationStore(kv),
            prompts=SystemPromptCatalog(kv),
            preferences=ModelPreferences(kv),
            complete=self.complete,
        )

    async def asyncTearDown(self) -> None:
        self.env.stop()

    async def test_new_conversation_pins_selected_prompt(self) -> None:
        await self.service.prompts.set_selected_prompt("openai", "gpt-4o", "technical")
        conv = await self.service.new_conversation("openai", "gpt-4o")

        technical = (await self.service.prompts.get_prompt("technical")).prompt
        assert conv.system_prompt == technical
        assert conv.title == "New Chat"
        assert await self.service.conversations.get_current_conversation_id() == conv.id

    async def test_new_conversation_uses_selected_model(self) -> None:
        conv = await self.service.new_conversation("anthropic")
        assert conv.model_name == "claude-3-haiku-20240307"

    async def test_current_conversation_is_created_when_missing(self) -> None:
        first = await self.service.current_conversation("openai", "gpt-4o")
        assert (await self.service.current_conversation("openai", "gpt-4o")).id == first.id

        await self.service.conversations.delete_conversation(first.id)
        replacement = await self.service.current_conversation("openai", "gpt-4o")
        assert replacement.id != first.id

    async def test_send_message_stores_both_turns(self) -> None:
        conv = await self.service.new_conversation("openai", "gpt-4o")
        updated, response = await self.service.send_message(conv.id, "Write me a haiku\nabout tea", api_key="sk-x")

        assert response.content == "Sure, here you go."
        assert [(m.is_user, m.text) for m in updated.messages] == [
            (True, "Write me a haiku\nabout tea"),
            (False, "Sure, here you go."),
        ]
        assert all(m.tokens is not None for m in updated.messages)
        assert updated.title == "Write me a haiku about tea"

        stored = await self.service.conversations.get_conversation(conv.id)
        assert len(stored.messages) == 2

        provider_id, api_key, turns, model = self.complete.call_args.args
        assert (provider_id, api_key, model) == ("openai", "sk-x", "gpt-4o")
        assert turns[0] == {"role": "system", "content": DEFAULT_SYSTEM_PROMPTS[0].prompt}
        assert turns[-1] == {"role": "user", "content": "Write me a haiku\nabout tea"}

    async def test_title_only_set_from_first_user_message(self) -> None:
        conv = await self.service.new_conversation("openai", "gpt-4o")
        await self.service.send_message(conv.id, "first", api_key="k")
        updated, _ = await self.service.send_message(conv.id, "second", api_key="k")
        assert updated.title == "first"

    async def test_history_is_trimmed_to_budget(self) -> None:
        conv = await self.service.new_conversation("openai", "gpt-4o")
        conv.system_prompt = None
        conv.messages = [Message.create("x" * 40, is_user=i % 2 == 0) for i in range(10)]
        await self.service.conversations.save_conversation(conv)

        # budget = floor(100 * 0.8) = 80 tokens; each old message costs 10
        await self.service.send_message(conv.id, "y" * 40, api_key="k", max_tokens=100)
        _, _, turns, _ = self.complete.call_args.args
        assert len(turns) == 8
        assert turns[-1]["content"] == "y" * 40

    async def test_provider_failure_keeps_user_turn(self) -> None:
        self.complete.side_effect = ProviderError("Groq rate limit exceeded.", status_code=429)
        conv = await self.service.new_conversation("groq", "gemma2-9b-it")

        with self.assertRaises(ProviderError):
            await self.service.send_message(conv.id, "hello?", api_key="gsk_x")

        stored = await self.service.conversations.get_conversation(conv.id)
        assert [m.text for m in stored.messages] == ["hello?"]

    async def test_provider_error_survives_failed_save(self) -> None:
        self.complete.side_effect = ProviderError("OpenAI server error. Please try again later.", status_code=500)
        conv = await self.service.new_conversation("openai", "gpt-4o")

        failing_save = AsyncMock(side_effect=StorageError("disk full"))
        with patch.object(self.service.conversations, "save_conversation", failing_save):
            with self.assertLogs("pocketchat.chat", level="ERROR"):
                with self.assertRaises(ProviderError) as ctx:
                    await self.service.send_message(conv.id, "hello?", api_key="sk-x")
        assert ctx.exception.status_code == 500
        failing_save.assert_awaited_once()

    async def test_empty_message_rejected(self) -> None:
        conv = await self.service.new_conversation("openai", "gpt-4o")
        with self.assertRaises(ValueError):
            await self.service.send_message(conv.id, "   ", api_key="k")
        self.complete.assert_not_called()

    async def test_unknown_conversation(self) -> None:
        with self.assertRaises(ConversationNotFound):
            await self.service.send_message("missing", "hi", api_key="k")

    async def test_switch_model_affects_later_sends(self) -> None:
        conv = await self.service.new_conversation("openai", "gpt-4o")
        await self.service.switch_model(conv.id, "groq", "gemma2-9b-it")
        await self.service.send_message(conv.id, "hi", api_key="k")
        provider_id, _, _, model = self.complete.call_args.args
        assert (provider_id, model) == ("groq", "gemma2-9b-it")

    async def test_switch_system_prompt_updates_pin_and_selection(self) -> None:
        conv = await self.service.new_conversation("openai", "gpt-4o")
        updated = await self.service.switch_system_prompt(conv.id, "analyst")

        analyst = (await self.service.prompts.get_prompt("analyst")).prompt
        assert updated.system_prompt == analyst
        assert await self.service.prompts.get_selected_prompt("openai", "gpt-4o") == analyst

    async def test_global_selection_does_not_rewrite_existing_conversations(self) -> None:
        conv = await self.service.new_conversation("openai", "gpt-4o")
        await self.service.prompts.set_selected_prompt("openai", "gpt-4o", "creative")

        stored = await self.service.conversations.get_conversation(conv.id)
        assert stored.system_prompt == DEFAULT_SYSTEM_PROMPTS[0].prompt
