"""Custom exception hierarchy for studyRAG.

All application exceptions inherit from :class:`StudyRAGError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "sqlite") caused the failure.

The hierarchy is organized by pipeline stage:

    StudyRAGError  (base -- catch-all for any studyRAG error)
    +-- UnsupportedFormatError       (extraction: unknown / rejected file kind)
    +-- ExtractionError              (extraction: corrupt or encrypted file)
    +-- DocumentNotFoundError        (unknown document id)
    +-- PipelineError                (orchestration / state machine)
    |   +-- InvalidStateTransitionError
    |   +-- IngestionTimeoutError
    +-- ConfigurationError           (startup / missing config)
    +-- LLMError                     (chat completion failure)
    +-- RateLimitError               (provider rate-limit exceeded)
    +-- ProviderUnavailableError     (object store / external service down)
    +-- RAGError                     (embedding or vector-store failure)
        +-- EmbeddingTotalFailureError
        +-- IndexUnavailableError

Ingestion treats every one of these as fatal to the current run and records
the message on the document's processing status.  The retrieval path catches
:class:`Exception` broadly and degrades to an empty result instead.
"""


class StudyRAGError(Exception):
    """Base exception for all studyRAG errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[openai_embedding] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Extraction errors
# ---------------------------------------------------------------------------

class UnsupportedFormatError(StudyRAGError):
    """Raised when a document's file kind has no extractor."""

    def __init__(
        self,
        message: str = "Unsupported document format",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(StudyRAGError):
    """Raised when a parser cannot read a document (corrupt file, encrypted PDF)."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentNotFoundError(StudyRAGError):
    """Raised when a document id is not registered in the document store."""

    def __init__(
        self,
        message: str = "Document not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class ProviderUnavailableError(StudyRAGError):
    """Raised when an external service or provider is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(StudyRAGError):
    """Raised when an API rate limit is exceeded.

    Ingestion does not retry automatically; the document is marked FAILED
    and can be re-run with ``retry``.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(StudyRAGError):
    """Raised when a chat completion call fails or returns no content."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration / configuration errors
# ---------------------------------------------------------------------------

class PipelineError(StudyRAGError):
    """Raised when ingestion orchestration fails."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class InvalidStateTransitionError(PipelineError):
    """Raised when a processing status is moved along an edge the state machine lacks."""

    def __init__(
        self,
        message: str = "Invalid processing state transition",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IngestionTimeoutError(PipelineError):
    """Raised when a single document ingestion exceeds its time budget."""

    def __init__(
        self,
        message: str = "Ingestion timed out",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(StudyRAGError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# RAG / vector-store errors
# ---------------------------------------------------------------------------

class RAGError(StudyRAGError):
    """Raised when a RAG operation fails (embedding or vector store)."""

    def __init__(
        self,
        message: str = "RAG pipeline operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingTotalFailureError(RAGError):
    """Raised when not a single chunk of a document could be embedded."""

    def __init__(
        self,
        message: str = "All embeddings failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class IndexUnavailableError(RAGError):
    """Raised when the vector index rejects or cannot serve a request."""

    def __init__(
        self,
        message: str = "Vector index is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
