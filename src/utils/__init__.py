"""Utility modules for studyRAG.

- **errors** -- Domain-specific exception hierarchy rooted at StudyRAGError;
  each pipeline stage raises its own subclass so callers can handle failures
  granularly.
- **concurrency** -- asyncio semaphore throttling that keeps parallel
  embedding calls under provider rate limits.
- **logging** -- structlog setup writing to stderr; coloured console output
  in development, structured JSON in production.
- **text_normalizer** -- whitespace normalization and the ``ceil(chars/4)``
  token estimate used by every size budget in the pipeline.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    DocumentNotFoundError,
    EmbeddingTotalFailureError,
    ExtractionError,
    IndexUnavailableError,
    IngestionTimeoutError,
    InvalidStateTransitionError,
    LLMError,
    PipelineError,
    ProviderUnavailableError,
    RAGError,
    RateLimitError,
    StudyRAGError,
    UnsupportedFormatError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import throttled_gather

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import configure_logging, get_logger

# -- Text normalization / token estimation ---------------------------------
from src.utils.text_normalizer import count_words, estimate_tokens, normalize_whitespace

__all__ = [
    "ConfigurationError",
    "DocumentNotFoundError",
    "EmbeddingTotalFailureError",
    "ExtractionError",
    "IndexUnavailableError",
    "IngestionTimeoutError",
    "InvalidStateTransitionError",
    "LLMError",
    "PipelineError",
    "ProviderUnavailableError",
    "RAGError",
    "RateLimitError",
    "StudyRAGError",
    "UnsupportedFormatError",
    "configure_logging",
    "count_words",
    "estimate_tokens",
    "get_logger",
    "normalize_whitespace",
    "throttled_gather",
]
