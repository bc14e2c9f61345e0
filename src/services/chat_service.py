"""Answers a user message, grounded in an attached document when possible.

Data flow (classic RAG):
  1. PROMPT     -- choose the teaching prompt when a document is attached to
                   the conversation, the general-assistant prompt otherwise.
  2. RETRIEVE   -- for document conversations, fetch the most relevant
                   chunks.  Retrieval failures degrade to no context.
  3. BUILD      -- system prompt + context, prior turns, new message.
  4. COMPLETE   -- one chat-completion call.

LLM failures are not swallowed: they propagate as ``LLMError`` so the
application can show its own "could not answer" message.
"""

from __future__ import annotations

import structlog

from src.interfaces.llm_provider import ILLMProvider
from src.models.conversation import ChatAnswer, ConversationTurn
from src.services.context_builder import ConversationContextBuilder, select_system_prompt
from src.services.retrieval_assembler import RetrievalAssembler
from src.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


class ChatService:
    """Generates chat answers with optional document grounding.

    Parameters
    ----------
    llm:
        Chat-completion provider.
    retrieval:
        Retrieval path used when the conversation has a document.
    context_builder:
        Prompt assembler.
    temperature, max_tokens:
        Sampling settings passed to every completion.
    """

    def __init__(
        self,
        llm: ILLMProvider,
        retrieval: RetrievalAssembler,
        context_builder: ConversationContextBuilder,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> None:
        self._llm = llm
        self._retrieval = retrieval
        self._context_builder = context_builder
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def respond(
        self,
        message: str,
        prior_turns: list[ConversationTurn] | None = None,
        document_id: str | None = None,
        top_k: int | None = None,
    ) -> ChatAnswer:
        """Answer *message* in the context of *prior_turns*.

        Parameters
        ----------
        message:
            The new user message.
        prior_turns:
            Earlier turns of the conversation, oldest first.
        document_id:
            The document attached to the conversation, if any.
        top_k:
            Override for the number of chunks retrieved.

        Raises
        ------
        src.utils.errors.LLMError
            If the completion call fails.
        """
        turns = prior_turns or []
        document_attached = document_id is not None
        system_prompt = select_system_prompt(document_attached)

        results = []
        if document_attached:
            results = await self._retrieval.assemble(document_id, message, top_k=top_k)

        messages = self._context_builder.build(system_prompt, results, turns, message)
        completion = await self._llm.complete(
            messages, temperature=self._temperature, max_tokens=self._max_tokens
        )

        grounded = bool(results)
        logger.info(
            "chat_answered",
            document_id=document_id,
            grounded=grounded,
            sources=len(results),
            prior_turns=len(turns),
            tokens=completion.total_tokens,
        )
        return ChatAnswer(
            content=completion.content,
            grounded=grounded,
            sources=results,
            usage=completion,
        )
