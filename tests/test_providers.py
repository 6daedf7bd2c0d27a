import unittest

from pocketchat.kvstore import StorageError
from pocketchat.providers import (
    AI_PROVIDERS,
    ModelPreferences,
    custom_models_key,
    get_provider_by_id,
    validate_api_key,
)

from .support import FailingStore, TempDataDir


class TestProviderCatalog(unittest.TestCase):
    def test_provider_ids(self) -> None:
        assert [p.id for p in AI_PROVIDERS] == ["openai", "anthropic", "google", "groq"]
        assert get_provider_by_id("anthropic").default_model == "claude-3-haiku-20240307"
        assert get_provider_by_id("nope") is None

    def test_default_models_are_listed(self) -> None:
        for provider in AI_PROVIDERS:
            assert provider.default_model in [m.name for m in provider.available_models]


class TestValidateApiKey(unittest.TestCase):
    def test_prefix_and_length(self) -> None:
        assert validate_api_key("openai", "sk-" + "a" * 11)
        assert not validate_api_key("openai", "sk-" + "a" * 10)
        assert not validate_api_key("openai", "pk-" + "a" * 40)
        assert validate_api_key("anthropic", "sk-ant-" + "a" * 11)
        assert not validate_api_key("anthropic", "sk-" + "a" * 40)
        assert validate_api_key("google", "AI" + "z" * 30)

    def test_groq_needs_thirty_characters(self) -> None:
        assert validate_api_key("groq", "gsk_" + "a" * 26)
        assert not validate_api_key("groq", "gsk_" + "a" * 25)

    def test_unknown_provider(self) -> None:
        assert not validate_api_key("mystery", "sk-" + "a" * 40)


class TestModelPreferences(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.env = TempDataDir()
        self.prefs = ModelPreferences(self.env.start())

    async def asyncTearDown(self) -> None:
        self.env.stop()

    async def test_custom_models_follow_predefined(self) -> None:
        added = await self.prefs.add_custom_model("groq", "llama-3.3-70b-versatile")
        assert added.id == "custom_llama-3.3-70b-versatile"
        assert added.is_custom

        models = await self.prefs.get_available_models("groq")
        assert models[-1] == added
        assert len(models) == len(get_provider_by_id("groq").available_models) + 1

    async def test_duplicate_custom_model_rejected(self) -> None:
        await self.prefs.add_custom_model("openai", "gpt-4.1")
        with self.assertRaises(ValueError):
            await self.prefs.add_custom_model("openai", "gpt-4.1")

    async def test_custom_models_are_per_provider(self) -> None:
        await self.prefs.add_custom_model("openai", "gpt-4.1")
        assert await self.prefs.get_custom_models("anthropic") == []

    async def test_remove_custom_model(self) -> None:
        model = await self.prefs.add_custom_model("openai", "gpt-4.1")
        await self.prefs.remove_custom_model("openai", model.id)
        assert await self.prefs.get_custom_models("openai") == []

    async def test_unknown_provider_has_no_models(self) -> None:
        assert await self.prefs.get_available_models("mystery") == []
        assert await self.prefs.get_selected_model("mystery") == ""

    async def test_selected_model(self) -> None:
        assert await self.prefs.get_selected_model("google") == "gemini-pro"
        await self.prefs.set_selected_model("google", "gemini-1.5-pro-latest")
        assert await self.prefs.get_selected_model("google") == "gemini-1.5-pro-latest"

    async def test_non_list_custom_models_read_as_empty(self) -> None:
        for stored in ("null", "5"):
            await self.prefs.kv.set_item(custom_models_key("openai"), stored)
            with self.assertLogs("pocketchat.providers", level="ERROR"):
                models = await self.prefs.get_available_models("openai")
            assert models == list(get_provider_by_id("openai").available_models)

    async def test_model_names_with_slashes(self) -> None:
        await self.prefs.set_selected_model("groq", "meta-llama/llama-4-scout")
        assert await self.prefs.get_selected_model("groq") == "meta-llama/llama-4-scout"


class TestPreferenceFailures(unittest.IsolatedAsyncioTestCase):
    async def test_reads_fall_back(self) -> None:
        prefs = ModelPreferences(FailingStore())
        with self.assertLogs("pocketchat.providers", level="ERROR"):
            assert await prefs.get_custom_models("openai") == []
            assert await prefs.get_selected_model("openai") == "gpt-3.5-turbo"

    async def test_writes_propagate(self) -> None:
        prefs = ModelPreferences(FailingStore())
        with self.assertLogs("pocketchat.providers", level="ERROR"):
            with self.assertRaises(StorageError):
                await prefs.set_selected_model("openai", "gpt-4o")
            with self.assertRaises(StorageError):
                await prefs.add_custom_model("openai", "gpt-4.1")
