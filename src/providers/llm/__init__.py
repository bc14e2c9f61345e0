"""LLM provider adapters.

    OpenAILLMProvider -- gpt-4o-mini by default; also talks to any
    OpenAI-compatible API when OPENAI_BASE_URL is set.

main.py builds the provider once and injects it into the ChatService.
"""

from src.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
