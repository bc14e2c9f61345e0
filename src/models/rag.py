"""RAG pipeline data models for studyRAG.

Defines Pydantic v2 models for extracted text, document chunks, embedding
vectors, vector-index records and retrieval results.  All models use frozen
config; metadata models additionally forbid unknown fields so that nothing
untyped slips into the vector index.

RAG overview:

    1. EXTRACTION: an uploaded course document (PDF, DOCX, PPTX) is turned
       into plain text (:class:`ExtractedText`).
    2. CHUNKING: the text is split into overlapping, size-bounded, typed
       :class:`Chunk` objects.
    3. EMBEDDING: each chunk becomes an :class:`EmbeddingVector`.
    4. INDEXING: chunk + vector + metadata are stored as an
       :class:`IndexedChunk`.
    5. RETRIEVAL: a user question is embedded and matched against the
       chunks of one document, producing :class:`RetrievalResult` objects.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# ChunkType -- rough structural hint attached to each chunk.
# ---------------------------------------------------------------------------
class ChunkType(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Shape-based classification of a chunk.

    Assigned by heuristics in the chunker; intended for display hints,
    not as a semantic guarantee.
    """

    TEXT = "text"
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LIST = "list"
    TABLE = "table"
    IMAGE_CAPTION = "image_caption"
    FOOTNOTE = "footnote"


# ---------------------------------------------------------------------------
# ExtractedText -- ephemeral output of the text extractor.
# ---------------------------------------------------------------------------
class ExtractedText(BaseModel):
    """Plain text pulled from a raw document plus basic structure counts."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="The extracted plain text.")
    page_count: int | None = Field(
        default=None, ge=0, description="Number of pages (PDF only)."
    )
    word_count: int = Field(default=0, ge=0, description="Whitespace-separated word count.")
    char_count: int = Field(default=0, ge=0, description="Character count of the text.")


class ValidationReport(BaseModel):
    """Non-blocking quality report produced by the validate helpers."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool = True
    issues: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Chunk -- the fundamental unit of embedding and retrieval.
# ---------------------------------------------------------------------------
class ChunkMetadata(BaseModel):
    """Positional metadata carried by every chunk."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    page_number: int | None = Field(default=None, ge=1)
    section_title: str | None = None
    original_position: int = Field(ge=0, description="Position of the chunk in the document.")


class Chunk(BaseModel):
    """A bounded, typed slice of a document's extracted text.

    ``id`` is deterministic (``{document_id}_chunk_{chunk_index}``) so that
    re-ingesting the same bytes produces the same ids.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Deterministic chunk identifier.")
    document_id: str = Field(description="Identifier of the parent document.")
    content: str = Field(description="The chunk's textual content.")
    chunk_index: int = Field(ge=0, description="Zero-based position within the document.")
    # Estimated, ceil(chars / 4) -- not a tokenizer count.
    token_count: int = Field(default=0, ge=0)
    char_count: int = Field(default=0, ge=0)
    chunk_type: ChunkType = ChunkType.PARAGRAPH
    metadata: ChunkMetadata


class ChunkingResult(BaseModel):
    """Output of :meth:`DocumentChunker.chunk`."""

    model_config = ConfigDict(frozen=True)

    chunks: list[Chunk] = Field(default_factory=list)
    total_tokens: int = Field(default=0, ge=0)
    avg_chunk_size: float = Field(default=0.0, ge=0.0)
    processing_time: float = Field(default=0.0, ge=0.0, description="Seconds spent chunking.")


# ---------------------------------------------------------------------------
# Embeddings
# ---------------------------------------------------------------------------
class EmbeddingVector(BaseModel):
    """One embedding vector tied to the chunk (or query) it was produced for.

    The model name is kept alongside the values so that vectors produced
    by a different model can be detected before they are compared.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str = Field(default="", description="Chunk id, or empty for query vectors.")
    values: list[float] = Field(description="The embedding values.")
    model: str = Field(description="Embedding model that produced the vector.")


class BatchEmbeddingResult(BaseModel):
    """Result of embedding a batch of texts with per-item failure isolation.

    ``embeddings`` is positionally aligned with the input texts; a ``None``
    entry marks an item that failed.
    """

    model_config = ConfigDict(frozen=True)

    embeddings: list[EmbeddingVector | None] = Field(default_factory=list)
    success_count: int = Field(default=0, ge=0)
    failure_count: int = Field(default=0, ge=0)
    failed_indices: list[int] = Field(default_factory=list)
    total_tokens: int = Field(default=0, ge=0, description="Estimated tokens sent.")
    processing_time: float = Field(default=0.0, ge=0.0)


# ---------------------------------------------------------------------------
# Vector-index records
# ---------------------------------------------------------------------------
class IndexedChunkMetadata(BaseModel):
    """Metadata stored next to each vector.

    Carries everything retrieval needs (including the chunk text) so that a
    search hit never requires a secondary lookup.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    document_id: str
    tenant_id: str = ""
    content: str
    chunk_type: ChunkType
    chunk_index: int = Field(ge=0)
    page_number: int | None = None
    section_title: str | None = None
    token_count: int = Field(default=0, ge=0)
    char_count: int = Field(default=0, ge=0)


class IndexedChunk(BaseModel):
    """A vector-store record: ``id`` equals the chunk id."""

    model_config = ConfigDict(frozen=True)

    id: str
    values: list[float]
    metadata: IndexedChunkMetadata

    @classmethod
    def from_chunk(cls, chunk: Chunk, vector: EmbeddingVector, tenant_id: str = "") -> IndexedChunk:
        """Build an index record from a chunk and its embedding."""
        return cls(
            id=chunk.id,
            values=vector.values,
            metadata=IndexedChunkMetadata(
                document_id=chunk.document_id,
                tenant_id=tenant_id,
                content=chunk.content,
                chunk_type=chunk.chunk_type,
                chunk_index=chunk.chunk_index,
                page_number=chunk.metadata.page_number,
                section_title=chunk.metadata.section_title,
                token_count=chunk.token_count,
                char_count=chunk.char_count,
            ),
        )


# ---------------------------------------------------------------------------
# RetrievalResult -- a search hit from the vector index.
# ---------------------------------------------------------------------------
class RetrievalResult(BaseModel):
    """A chunk returned from a similarity search with its score.

    Content is never truncated at this layer; prompt-budget truncation
    happens in the context builder.
    """

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    document_id: str
    content: str
    chunk_type: ChunkType = ChunkType.PARAGRAPH
    chunk_index: int = Field(default=0, ge=0)
    page_number: int | None = None
    section_title: str | None = None
    similarity_score: float = Field(
        default=0.0,
        ge=-1.0,
        le=1.0,
        description="Cosine similarity between the query and this chunk.",
    )


class IndexStats(BaseModel):
    """Snapshot of the vector index size."""

    model_config = ConfigDict(frozen=True)

    total_vectors: int = Field(default=0, ge=0)
    dimension: int | None = None
    provider: str = ""
