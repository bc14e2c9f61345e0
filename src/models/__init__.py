"""studyRAG domain models -- re-exports all public model classes.

The models are organized across three submodules by domain concern:
    - rag.py          -- extracted text, chunks, embeddings, index records, hits
    - processing.py   -- document registry record and processing state machine
    - conversation.py -- prompt messages, chat completions and answers
"""

from __future__ import annotations

from src.models.conversation import (
    ChatAnswer,
    ChatCompletion,
    ConversationTurn,
    PromptMessage,
)
from src.models.processing import (
    DocumentRecord,
    IngestionResult,
    IngestionStage,
    ProcessingState,
    ProcessingStatus,
)
from src.models.rag import (
    BatchEmbeddingResult,
    Chunk,
    ChunkingResult,
    ChunkMetadata,
    ChunkType,
    EmbeddingVector,
    ExtractedText,
    IndexedChunk,
    IndexedChunkMetadata,
    IndexStats,
    RetrievalResult,
    ValidationReport,
)

__all__ = [
    # conversation
    "ChatAnswer",
    "ChatCompletion",
    "ConversationTurn",
    "PromptMessage",
    # processing
    "DocumentRecord",
    "IngestionResult",
    "IngestionStage",
    "ProcessingState",
    "ProcessingStatus",
    # rag
    "BatchEmbeddingResult",
    "Chunk",
    "ChunkMetadata",
    "ChunkType",
    "ChunkingResult",
    "EmbeddingVector",
    "ExtractedText",
    "IndexStats",
    "IndexedChunk",
    "IndexedChunkMetadata",
    "RetrievalResult",
    "ValidationReport",
]
