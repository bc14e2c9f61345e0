"""OpenAI-compatible chat-completion provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.  When
a custom ``openai_base_url`` is configured (e.g. TogetherAI, Anyscale,
Fireworks), the client points at that URL instead of the default OpenAI
endpoint.

Many third-party LLM providers expose OpenAI-compatible REST APIs, so by
pointing the openai client at a different base_url this single adapter can
talk to many different model providers.
"""

from __future__ import annotations

# The official OpenAI Python SDK (async version).
import openai
# structlog provides structured logging (see src/utils/logging.py).
import structlog

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.conversation import ChatCompletion, PromptMessage
# LLMError wraps provider-specific errors so callers never import openai.
from src.utils.errors import LLMError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_REQUEST_TIMEOUT_SECONDS = 25.0


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat-completions API.

    Uses ``gpt-4o-mini`` by default; override with ``OPENAI_CHAT_MODEL``.

    This class is an adapter:
        - It implements ILLMProvider (the interface the app expects)
        - It wraps the openai SDK (the third-party library)
        - The rest of the app never imports or calls openai directly
    """

    def __init__(self, settings: Settings) -> None:
        # API key loaded from OPENAI_API_KEY env var via Pydantic Settings.
        self._api_key = settings.openai_api_key

        # Add base_url only when a custom endpoint is configured.
        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(_REQUEST_TIMEOUT_SECONDS, connect=5.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_chat_model or "gpt-4o-mini"
        # Label used in logs and error messages to identify this provider.
        self._provider_label = (
            "openai-compatible" if settings.openai_base_url else "openai"
        )

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        messages: list[PromptMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> ChatCompletion:
        """Generate a reply via the OpenAI-compatible chat API.

        The messages are sent in order: normally the system prompt (with
        any retrieved document context), prior conversation, then the new
        user message.
        """
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APITimeoutError as exc:
            raise LLMError(
                message=f"{self._provider_label} timed out after {_REQUEST_TIMEOUT_SECONDS:.0f}s",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{self._provider_label} rate limit exceeded: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            # "from exc" preserves the original stack trace for debugging.
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        # The response contains a list of "choices" (usually just one).
        content = response.choices[0].message.content if response.choices else None
        if content is None:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )

        usage = response.usage
        completion = ChatCompletion(
            content=content,
            model=getattr(response, "model", None) or self._model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            total_tokens=usage.total_tokens if usage else 0,
        )
        # Log token usage for cost tracking and debugging.
        logger.info(
            "openai_completion",
            model=self._model,
            provider=self._provider_label,
            messages=len(messages),
            tokens=completion.total_tokens,
        )
        return completion

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """Try listing models to verify the API key works.

        A lightweight call that confirms the key is accepted without
        incurring inference costs.
        """
        if not self.is_available():
            return False
        try:
            await self._client.models.list()
            return True
        except openai.APIError:
            return False

    def get_provider_name(self) -> str:
        """Return 'openai' or 'openai-compatible' depending on configuration."""
        return self._provider_label
