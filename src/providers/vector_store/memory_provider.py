"""In-process vector store with exact cosine search.

Keeps every record in a dict keyed by chunk id.  Used for local runs
without a ChromaDB directory (``VECTOR_STORE_BACKEND=memory``) and as the
index in integration tests.  Contents are lost when the process exits.
"""

from __future__ import annotations

from typing import Any

import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import ChunkType, IndexedChunk, IndexStats, RetrievalResult
from src.services.embedding_generator import cosine_similarity
from src.utils.errors import IndexUnavailableError

logger = structlog.get_logger(logger_name=__name__)


class InMemoryVectorStore(IVectorStoreProvider):
    """Dict-backed :class:`IVectorStoreProvider`."""

    def __init__(self) -> None:
        self._records: dict[str, IndexedChunk] = {}

    async def upsert(self, records: list[IndexedChunk]) -> int:
        if not records:
            return 0
        dimension = self._dimension()
        for record in records:
            if dimension is not None and len(record.values) != dimension:
                raise IndexUnavailableError(
                    message=(
                        f"Vector for {record.id} has {len(record.values)} dimensions, "
                        f"index holds {dimension}"
                    ),
                    provider_name=self.get_provider_name(),
                )
        for record in records:
            self._records[record.id] = record
        logger.debug("memory_upsert", count=len(records), total=len(self._records))
        return len(records)

    async def search(
        self,
        query_vector: list[float],
        document_id: str,
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        if top_k <= 0:
            return []

        hits: list[RetrievalResult] = []
        for record in self._records.values():
            meta = record.metadata
            if meta.document_id != document_id or not self._matches(record, filters):
                continue
            try:
                score = cosine_similarity(query_vector, record.values)
            except ValueError as exc:
                raise IndexUnavailableError(
                    message=f"Query vector does not match index dimension: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            hits.append(
                RetrievalResult(
                    chunk_id=record.id,
                    document_id=meta.document_id,
                    content=meta.content,
                    chunk_type=meta.chunk_type,
                    chunk_index=meta.chunk_index,
                    page_number=meta.page_number,
                    section_title=meta.section_title,
                    similarity_score=score,
                )
            )

        hits.sort(key=lambda r: (-r.similarity_score, r.chunk_index))
        return hits[:top_k]

    async def delete_by_document(self, document_id: str) -> int:
        doomed = [
            chunk_id
            for chunk_id, record in self._records.items()
            if record.metadata.document_id == document_id
        ]
        for chunk_id in doomed:
            del self._records[chunk_id]
        logger.debug("memory_delete_by_document", document_id=document_id, deleted=len(doomed))
        return len(doomed)

    async def count(self, document_id: str | None = None) -> int:
        if document_id is None:
            return len(self._records)
        return sum(1 for r in self._records.values() if r.metadata.document_id == document_id)

    async def get_stats(self) -> IndexStats:
        return IndexStats(
            total_vectors=len(self._records),
            dimension=self._dimension(),
            provider=self.get_provider_name(),
        )

    def get_provider_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return True

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _dimension(self) -> int | None:
        for record in self._records.values():
            return len(record.values)
        return None

    @staticmethod
    def _matches(record: IndexedChunk, filters: dict[str, Any] | None) -> bool:
        if not filters:
            return True
        meta = record.metadata.model_dump()
        for key, expected in filters.items():
            if key == "document_id" or expected is None:
                continue
            actual = meta.get(key)
            if isinstance(actual, ChunkType):
                actual = actual.value
            if isinstance(expected, ChunkType):
                expected = expected.value
            if actual != expected:
                return False
        return True
