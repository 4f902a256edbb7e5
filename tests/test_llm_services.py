"""
Tests for the Ollama and OpenRouter service adapters and the service factory

The underlying SDK clients are replaced with mocks; no network is used.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest

from vaultrag.config import ConfigurationError, config_from_dict
from vaultrag.llm.factory import create_chat_service, create_embedding_service
from vaultrag.llm.interface import ChatService, EmbeddingService
from vaultrag.llm.models import ChatMessage
from vaultrag.llm.ollama_client import OllamaChatService, OllamaEmbeddingService
from vaultrag.llm.openrouter import OpenRouterChatService, OpenRouterEmbeddingService

MESSAGES = [ChatMessage("system", "Be brief."), ChatMessage("user", "Hello?")]


class TestOllamaEmbeddingService:

    @pytest.fixture
    def service(self):
        service = OllamaEmbeddingService(model="nomic-embed-text")
        service._client = Mock()
        service._client.embed = AsyncMock(return_value={"embeddings": [[0.1, 0.2], [0.3, 0.4]]})
        return service

    def test_satisfies_protocol(self, service):
        assert isinstance(service, EmbeddingService)
        assert service.is_configured is True

    @pytest.mark.asyncio
    async def test_embed_batch(self, service):
        response = await service.embed_batch(["a", "b"])

        assert response.error is None
        assert response.embeddings == [[0.1, 0.2], [0.3, 0.4]]
        service._client.embed.assert_awaited_once_with(model="nomic-embed-text", input=["a", "b"])
        assert service.get_stats()["total_embeddings"] == 2

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_call(self, service):
        response = await service.embed_batch([])

        assert response.embeddings == []
        service._client.embed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_count_mismatch_is_error(self, service):
        response = await service.embed_batch(["a", "b", "c"])
        assert "Expected 3 embeddings, got 2" in response.error

    @pytest.mark.asyncio
    async def test_client_failure_is_returned_not_raised(self, service):
        service._client.embed.side_effect = ConnectionError("ollama not running")

        response = await service.embed_batch(["a"])

        assert response.embeddings == []
        assert "ollama not running" in response.error


class TestOllamaChatService:

    @pytest.mark.asyncio
    async def test_complete(self):
        service = OllamaChatService()
        service._client = Mock()
        service._client.chat = AsyncMock(return_value={"message": {"content": "Hi."}})

        response = await service.complete(MESSAGES, "llama3.1:8b")

        assert response.content == "Hi."
        service._client.chat.assert_awaited_once_with(
            model="llama3.1:8b",
            messages=[{"role": "system", "content": "Be brief."}, {"role": "user", "content": "Hello?"}],
        )

    @pytest.mark.asyncio
    async def test_empty_reply(self):
        service = OllamaChatService()
        service._client = Mock()
        service._client.chat = AsyncMock(return_value={"message": {"content": ""}})

        response = await service.complete(MESSAGES, "llama3.1:8b")

        assert response.error == "No response from model"


def openrouter_embeddings(*items):
    return SimpleNamespace(data=[SimpleNamespace(index=i, embedding=e) for i, e in items])


class TestOpenRouterEmbeddingService:

    @pytest.fixture
    def service(self):
        service = OpenRouterEmbeddingService(api_key="test-key")
        service._client = Mock()
        return service

    def test_unconfigured_without_key(self):
        assert OpenRouterEmbeddingService(api_key="").is_configured is False

    @pytest.mark.asyncio
    async def test_missing_key_returns_error(self):
        service = OpenRouterEmbeddingService(api_key="")
        response = await service.embed_batch(["a"])
        assert response.error == "API key not set"

    @pytest.mark.asyncio
    async def test_results_restored_to_input_order(self, service):
        service._client.embeddings.create = AsyncMock(
            return_value=openrouter_embeddings((1, [0.0, 1.0]), (0, [1.0, 0.0]))
        )

        response = await service.embed_batch(["first", "second"])

        assert response.embeddings == [[1.0, 0.0], [0.0, 1.0]]
        service._client.embeddings.create.assert_awaited_once_with(
            model="openai/text-embedding-3-small", input=["first", "second"]
        )

    @pytest.mark.asyncio
    async def test_count_mismatch_is_error(self, service):
        service._client.embeddings.create = AsyncMock(return_value=openrouter_embeddings((0, [1.0])))

        response = await service.embed_batch(["a", "b"])

        assert response.error == "Expected 2 embeddings, got 1"

    @pytest.mark.asyncio
    async def test_api_failure_is_returned_not_raised(self, service):
        service._client.embeddings.create = AsyncMock(side_effect=RuntimeError("429 Too Many Requests"))

        response = await service.embed_batch(["a"])

        assert "429" in response.error


class TestOpenRouterChatService:

    def chat_completion(self, content):
        message = SimpleNamespace(content=content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    @pytest.mark.asyncio
    async def test_complete(self):
        service = OpenRouterChatService(api_key="test-key")
        service._client = Mock()
        service._client.chat.completions.create = AsyncMock(return_value=self.chat_completion("Answer [[Note]]"))

        response = await service.complete(MESSAGES, "google/gemini-2.5-flash")

        assert isinstance(service, ChatService)
        assert response.content == "Answer [[Note]]"
        kwargs = service._client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "google/gemini-2.5-flash"
        assert kwargs["messages"][1] == {"role": "user", "content": "Hello?"}

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_call(self):
        service = OpenRouterChatService(api_key="")
        service._client = Mock()

        response = await service.complete(MESSAGES, "any")

        assert response.error == "API key not set"
        service._client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_empty_choices(self):
        service = OpenRouterChatService(api_key="test-key")
        service._client = Mock()
        service._client.chat.completions.create = AsyncMock(return_value=SimpleNamespace(choices=[]))

        response = await service.complete(MESSAGES, "any")

        assert response.error == "No response from model"


class TestFactory:

    def test_default_providers(self):
        config = config_from_dict({})

        assert isinstance(create_embedding_service(config), OllamaEmbeddingService)
        chat = create_chat_service(config)
        assert isinstance(chat, OpenRouterChatService)
        assert chat.is_configured is False

    def test_openrouter_embeddings(self):
        config = config_from_dict({"embedding": {"provider": "openrouter", "model": "openai/text-embedding-3-small",
                                                 "api_key": "k"}})
        service = create_embedding_service(config)

        assert isinstance(service, OpenRouterEmbeddingService)
        assert service.is_configured is True

    def test_ollama_chat(self):
        config = config_from_dict({"chat": {"provider": "ollama", "model": "llama3.1:8b"}})
        assert isinstance(create_chat_service(config), OllamaChatService)

    def test_unknown_provider(self):
        config = config_from_dict({})
        config.embedding.provider = "nope"

        with pytest.raises(ConfigurationError):
            create_embedding_service(config)
