"""Conversation and prompt models for the chat side of the pipeline."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from src.models.rag import RetrievalResult

Role = Literal["system", "user", "assistant"]


class ConversationTurn(BaseModel):
    """One prior message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class PromptMessage(BaseModel):
    """A role-tagged message sent to the chat-completion provider."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class ChatCompletion(BaseModel):
    """Text and token usage returned by a chat-completion provider."""

    model_config = ConfigDict(frozen=True)

    content: str
    model: str = ""
    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)


class ChatAnswer(BaseModel):
    """Answer produced for a user message.

    ``grounded`` is ``True`` only when retrieved document content was
    actually placed in the prompt.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    grounded: bool = False
    sources: list[RetrievalResult] = Field(default_factory=list)
    usage: ChatCompletion | None = None
