"""Text normalization and size-estimation helpers.

This module handles three small but pervasive concerns of the ingestion
pipeline:

1. **Whitespace normalization** -- Unifies line endings, collapses runs of
   blank lines and horizontal whitespace so that sentence splitting and
   chunk sizing see a predictable shape regardless of the source parser.

2. **Token estimation** -- No real tokenizer is used anywhere in studyRAG.
   Every size budget (chunk size, overlap, embedding input limit) is
   expressed in *estimated* tokens, ``ceil(chars / 4)``.  Treat every such
   number as a soft target; it will not match an LLM tokenizer exactly.

3. **Quality signals** -- Word counts and encoding-corruption markers used
   by extraction validation.
"""

import math
import re

# U+FFFD is what decoders emit for undecodable bytes; "???" runs are what
# some PDF producers write for glyphs without a Unicode mapping.
_CORRUPTION_MARKERS = ("\ufffd", "???")

_CHARS_PER_TOKEN = 4


def normalize_whitespace(text: str) -> str:
    """Normalize line endings and whitespace runs.

    - ``\\r\\n`` and bare ``\\r`` become ``\\n``
    - three or more consecutive newlines collapse to a paragraph break
    - runs of spaces/tabs collapse to a single space
    - spaces hugging a newline are removed

    Args:
        text: Raw extracted text.

    Returns:
        The normalized, stripped text.
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    normalized = re.sub(r"[ \t\f\v]+", " ", normalized)
    normalized = re.sub(r" ?\n ?", "\n", normalized)
    normalized = re.sub(r"\n{3,}", "\n\n", normalized)
    return normalized.strip()


def estimate_tokens(text: str) -> int:
    """Return the estimated token count of *text* (``ceil(len / 4)``)."""
    return math.ceil(len(text) / _CHARS_PER_TOKEN)


def chars_for_tokens(tokens: int) -> int:
    """Return the character budget that corresponds to *tokens* estimated tokens."""
    return tokens * _CHARS_PER_TOKEN


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def has_encoding_corruption(text: str) -> bool:
    """Return ``True`` if *text* contains replacement characters or ``???`` runs."""
    return any(marker in text for marker in _CORRUPTION_MARKERS)
