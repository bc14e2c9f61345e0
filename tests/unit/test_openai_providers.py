"""Unit tests for the OpenAI embedding and chat-completion adapters."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from src.config.settings import Settings
from src.models.conversation import PromptMessage
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.utils.errors import LLMError, RAGError, RateLimitError
from tests.conftest import make_settings

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/test")


def _settings(**overrides) -> Settings:
    defaults = {"openai_api_key": "sk-test"}
    defaults.update(overrides)
    return make_settings(**defaults)


def _rate_limit_error() -> openai.RateLimitError:
    return openai.RateLimitError(
        message="slow down", response=httpx.Response(429, request=_REQUEST), body=None
    )


def _api_error() -> openai.APIError:
    return openai.APIError(message="server exploded", request=_REQUEST, body=None)


def _embedding_response(vectors: list[list[float]], order: list[int] | None = None):
    indices = order if order is not None else list(range(len(vectors)))
    return SimpleNamespace(
        data=[SimpleNamespace(index=i, embedding=vectors[i]) for i in indices],
        usage=SimpleNamespace(total_tokens=7),
    )


def _chat_response(content: str | None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=5, total_tokens=17),
        model="gpt-4o-mini-2024",
    )


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    def _provider(self, mock_client: MagicMock, **overrides) -> OpenAIEmbeddingProvider:
        with patch(
            "src.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            return OpenAIEmbeddingProvider(_settings(**overrides))

    def test_defaults(self) -> None:
        provider = self._provider(MagicMock())

        assert provider.get_model_name() == "text-embedding-3-small"
        assert provider.get_dimension() == 1536
        assert provider.get_provider_name() == "openai_embedding"
        assert provider.is_available() is True

    def test_large_model_dimension(self) -> None:
        provider = self._provider(MagicMock(), openai_embedding_model="text-embedding-3-large")
        assert provider.get_dimension() == 3072

    def test_custom_base_url_label(self) -> None:
        provider = self._provider(MagicMock(), openai_base_url="http://localhost:8080/v1")
        assert provider.get_provider_name() == "openai-compatible_embedding"

    def test_unavailable_without_key(self) -> None:
        provider = self._provider(MagicMock(), openai_api_key="")
        assert provider.is_available() is False

    @pytest.mark.asyncio
    async def test_embed_orders_by_index(self) -> None:
        client = MagicMock()
        client.embeddings.create = AsyncMock(
            return_value=_embedding_response([[0.1], [0.2], [0.3]], order=[2, 0, 1])
        )
        provider = self._provider(client)

        vectors = await provider.embed(["a", "b", "c"])

        assert vectors == [[0.1], [0.2], [0.3]]
        client.embeddings.create.assert_awaited_once_with(
            input=["a", "b", "c"], model="text-embedding-3-small"
        )

    @pytest.mark.asyncio
    async def test_embed_empty_makes_no_request(self) -> None:
        client = MagicMock()
        client.embeddings.create = AsyncMock()
        provider = self._provider(client)

        assert await provider.embed([]) == []
        client.embeddings.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_embed_single(self) -> None:
        client = MagicMock()
        client.embeddings.create = AsyncMock(return_value=_embedding_response([[0.5, 0.5]]))
        provider = self._provider(client)

        assert await provider.embed_single("query") == [0.5, 0.5]

    @pytest.mark.asyncio
    async def test_count_mismatch_raises(self) -> None:
        client = MagicMock()
        client.embeddings.create = AsyncMock(return_value=_embedding_response([[0.1]]))
        provider = self._provider(client)

        with pytest.raises(RAGError, match="1 embeddings for 2 inputs"):
            await provider.embed(["a", "b"])

    @pytest.mark.asyncio
    async def test_rate_limit_maps_to_rate_limit_error(self) -> None:
        client = MagicMock()
        client.embeddings.create = AsyncMock(side_effect=_rate_limit_error())
        provider = self._provider(client)

        with pytest.raises(RateLimitError) as exc_info:
            await provider.embed(["a"])
        assert exc_info.value.provider_name == "openai_embedding"

    @pytest.mark.asyncio
    async def test_api_error_maps_to_rag_error(self) -> None:
        client = MagicMock()
        client.embeddings.create = AsyncMock(side_effect=_api_error())
        provider = self._provider(client)

        with pytest.raises(RAGError, match="API error"):
            await provider.embed(["a"])


# ======================================================================
# OpenAI LLM Provider
# ======================================================================


class TestOpenAILLMProvider:
    _MESSAGES = [
        PromptMessage(role="system", content="You are a helpful AI assistant."),
        PromptMessage(role="user", content="Hi"),
    ]

    def _provider(self, mock_client: MagicMock, **overrides) -> OpenAILLMProvider:
        with patch(
            "src.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            return OpenAILLMProvider(_settings(**overrides))

    def test_provider_name(self) -> None:
        assert self._provider(MagicMock()).get_provider_name() == "openai"
        compatible = self._provider(MagicMock(), openai_base_url="http://localhost:8080/v1")
        assert compatible.get_provider_name() == "openai-compatible"

    def test_is_available(self) -> None:
        assert self._provider(MagicMock()).is_available() is True
        assert self._provider(MagicMock(), openai_api_key="").is_available() is False

    @pytest.mark.asyncio
    async def test_complete_success(self) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_chat_response("Hello!"))
        provider = self._provider(client)

        completion = await provider.complete(self._MESSAGES, temperature=0.2, max_tokens=50)

        assert completion.content == "Hello!"
        assert completion.model == "gpt-4o-mini-2024"
        assert completion.prompt_tokens == 12
        assert completion.total_tokens == 17
        kwargs = client.chat.completions.create.await_args.kwargs
        assert kwargs["messages"] == [
            {"role": "system", "content": "You are a helpful AI assistant."},
            {"role": "user", "content": "Hi"},
        ]
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 50
        assert kwargs["model"] == "gpt-4o-mini"

    @pytest.mark.asyncio
    async def test_empty_content_raises(self) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(return_value=_chat_response(None))
        provider = self._provider(client)

        with pytest.raises(LLMError, match="empty response"):
            await provider.complete(self._MESSAGES)

    @pytest.mark.asyncio
    async def test_timeout_maps_to_llm_error(self) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(
            side_effect=openai.APITimeoutError(request=_REQUEST)
        )
        provider = self._provider(client)

        with pytest.raises(LLMError, match="timed out"):
            await provider.complete(self._MESSAGES)

    @pytest.mark.asyncio
    async def test_rate_limit(self) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=_rate_limit_error())
        provider = self._provider(client)

        with pytest.raises(RateLimitError):
            await provider.complete(self._MESSAGES)

    @pytest.mark.asyncio
    async def test_api_error(self) -> None:
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=_api_error())
        provider = self._provider(client)

        with pytest.raises(LLMError, match="API error"):
            await provider.complete(self._MESSAGES)

    @pytest.mark.asyncio
    async def test_validate_credentials(self) -> None:
        client = MagicMock()
        client.models.list = AsyncMock(return_value=[])
        assert await self._provider(client).validate_credentials() is True

        failing = MagicMock()
        failing.models.list = AsyncMock(side_effect=_api_error())
        assert await self._provider(failing).validate_credentials() is False

    @pytest.mark.asyncio
    async def test_validate_credentials_without_key(self) -> None:
        client = MagicMock()
        client.models.list = AsyncMock()
        provider = self._provider(client, openai_api_key="")

        assert await provider.validate_credentials() is False
        client.models.list.assert_not_awaited()
