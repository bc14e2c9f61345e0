"""Abstract base class for chat-completion providers.

Defines the contract for the text-generation API that consumes the prompt
assembled by the conversation context builder.  Implementations may wrap
OpenAI or any OpenAI-compatible endpoint.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.conversation import ChatCompletion, PromptMessage


# Concrete implementation: OpenAILLMProvider (src/providers/llm/)
class ILLMProvider(ABC):
    """Contract for chat-completion services."""

    @abstractmethod
    async def complete(
        self,
        messages: list[PromptMessage],
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> ChatCompletion:
        """Generate a reply to an ordered list of role-tagged messages.

        Parameters
        ----------
        messages:
            The prompt, typically system message first and the new user
            message last.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        ChatCompletion
            The reply text plus token usage.

        Raises
        ------
        src.utils.errors.LLMError
            If the API call fails or returns no content.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured."""
