"""Assembles the chat-completion prompt from retrieval results and history.

Message layout::

    system : <system prompt>
             \\n\\nRelevant document context:\\n
             [Chunk 1] <first 500 chars of the best hit>...
             [Chunk 2] ...
    user   : Previous conversation:\\n
             user: ...\\nassistant: ...          (last 50 turns; omitted if none)
    user   : <new message>

Prompt size is bounded by fixed character and turn budgets, not by a
tokenizer, so the final token count is approximate.
"""

from __future__ import annotations

from src.models.conversation import ConversationTurn, PromptMessage
from src.models.rag import RetrievalResult

GENERAL_ASSISTANT_PROMPT = "You are a helpful AI assistant."

GROUNDED_TEACHING_PROMPT = """\
You are a knowledgeable teacher helping a student study an attached course document.

Treat the document as your primary source. When document context is provided below, \
base your answer on it and say which part of the material supports it. You may add \
well-established background knowledge, examples and explanations when they help the \
student understand, but never contradict the document.

Answer directly and concisely. Format answers in Markdown: use bullet points or numbered \
steps where they help, and show the minimal working for calculations. If the context \
does not cover the question, say so plainly and answer from general knowledge."""

_CONTEXT_HEADER = "\n\nRelevant document context:\n"
_HISTORY_HEADER = "Previous conversation:\n"
_TRUNCATION_MARKER = "..."


def select_system_prompt(document_attached: bool) -> str:
    """Return the teaching prompt for document conversations, else the general one."""
    return GROUNDED_TEACHING_PROMPT if document_attached else GENERAL_ASSISTANT_PROMPT


class ConversationContextBuilder:
    """Builds the ordered message list sent to the LLM.

    Parameters
    ----------
    chunk_char_limit:
        Characters of each retrieved chunk placed in the prompt.
    history_turn_limit:
        Number of most recent prior turns rendered into the history block.
    """

    def __init__(self, chunk_char_limit: int = 500, history_turn_limit: int = 50) -> None:
        self._chunk_char_limit = chunk_char_limit
        self._history_turn_limit = history_turn_limit

    def build(
        self,
        system_prompt: str,
        retrieval_results: list[RetrievalResult],
        prior_turns: list[ConversationTurn],
        new_user_message: str,
    ) -> list[PromptMessage]:
        messages = [
            PromptMessage(
                role="system",
                content=system_prompt + self.render_context(retrieval_results),
            )
        ]

        history = self.render_history(prior_turns)
        if history:
            messages.append(PromptMessage(role="user", content=_HISTORY_HEADER + history))

        messages.append(PromptMessage(role="user", content=new_user_message))
        return messages

    def render_context(self, results: list[RetrievalResult]) -> str:
        """Render retrieval hits as the system-prompt context block ('' when none)."""
        if not results:
            return ""
        lines = [
            f"[Chunk {position}] {self._truncate(result.content)}"
            for position, result in enumerate(results, start=1)
        ]
        return _CONTEXT_HEADER + "\n".join(lines)

    def render_history(self, prior_turns: list[ConversationTurn]) -> str:
        if not prior_turns or self._history_turn_limit <= 0:
            return ""
        recent = prior_turns[-self._history_turn_limit :]
        return "\n".join(f"{turn.role}: {turn.content}" for turn in recent)

    def _truncate(self, content: str) -> str:
        if len(content) <= self._chunk_char_limit:
            return content
        return content[: self._chunk_char_limit] + _TRUNCATION_MARKER
