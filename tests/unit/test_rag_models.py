"""Unit tests for RAG pipeline Pydantic models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.models.conversation import ChatAnswer, ConversationTurn
from src.models.rag import (
    BatchEmbeddingResult,
    Chunk,
    ChunkMetadata,
    ChunkType,
    EmbeddingVector,
    IndexedChunk,
    IndexedChunkMetadata,
    RetrievalResult,
)


def _chunk(**overrides) -> Chunk:
    fields = {
        "id": "doc-1_chunk_0",
        "document_id": "doc-1",
        "content": "Photosynthesis converts light into chemical energy.",
        "chunk_index": 0,
        "token_count": 13,
        "char_count": 51,
        "chunk_type": ChunkType.PARAGRAPH,
        "metadata": ChunkMetadata(page_number=2, section_title="Plants", original_position=0),
    }
    fields.update(overrides)
    return Chunk(**fields)


class TestChunk:
    def test_creation(self) -> None:
        chunk = _chunk()
        assert chunk.id == "doc-1_chunk_0"
        assert chunk.metadata.page_number == 2

    def test_frozen(self) -> None:
        chunk = _chunk()
        with pytest.raises(ValidationError):
            chunk.content = "changed"

    def test_negative_index_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _chunk(chunk_index=-1)

    def test_metadata_forbids_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            ChunkMetadata(original_position=0, author="someone")

    def test_page_number_starts_at_one(self) -> None:
        with pytest.raises(ValidationError):
            ChunkMetadata(page_number=0, original_position=0)


class TestIndexedChunk:
    def test_from_chunk_copies_retrieval_fields(self) -> None:
        chunk = _chunk(chunk_type=ChunkType.HEADING)
        vector = EmbeddingVector(chunk_id=chunk.id, values=[0.1, 0.2], model="m")

        record = IndexedChunk.from_chunk(chunk, vector, tenant_id="uni-1")

        assert record.id == chunk.id
        assert record.values == [0.1, 0.2]
        assert record.metadata == IndexedChunkMetadata(
            document_id="doc-1",
            tenant_id="uni-1",
            content=chunk.content,
            chunk_type=ChunkType.HEADING,
            chunk_index=0,
            page_number=2,
            section_title="Plants",
            token_count=13,
            char_count=51,
        )

    def test_metadata_is_closed(self) -> None:
        with pytest.raises(ValidationError):
            IndexedChunkMetadata(
                document_id="doc-1",
                content="x",
                chunk_type=ChunkType.TEXT,
                chunk_index=0,
                extra_field="nope",
            )


class TestRetrievalResult:
    def test_defaults(self) -> None:
        result = RetrievalResult(chunk_id="c", document_id="d", content="text")
        assert result.similarity_score == 0.0
        assert result.chunk_type == ChunkType.PARAGRAPH

    def test_similarity_bounds(self) -> None:
        with pytest.raises(ValidationError):
            RetrievalResult(chunk_id="c", document_id="d", content="t", similarity_score=1.5)


class TestBatchEmbeddingResult:
    def test_none_marks_failed_item(self) -> None:
        result = BatchEmbeddingResult(
            embeddings=[EmbeddingVector(values=[1.0], model="m"), None],
            success_count=1,
            failure_count=1,
            failed_indices=[1],
        )
        assert result.embeddings[1] is None


class TestConversationModels:
    def test_unknown_role_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ConversationTurn(role="tool", content="hi")

    def test_answer_defaults_to_ungrounded(self) -> None:
        answer = ChatAnswer(content="Hello")
        assert answer.grounded is False
        assert answer.sources == []
        assert answer.usage is None
