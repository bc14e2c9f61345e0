"""ChromaDB vector store provider adapter.

Wraps `chromadb.PersistentClient` to implement :class:`IVectorStoreProvider`.
Uses cosine distance for similarity search.  Fully local, free, and
Python-native -- no external service required.

The chromadb client is synchronous; every collection call is executed via
``asyncio.to_thread`` so a slow disk never stalls the event loop.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  The env var is
# respected by some ChromaDB versions; Settings(anonymized_telemetry=False)
# passed to PersistentClient covers the rest.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import ChunkType, IndexedChunk, IndexStats, RetrievalResult
from src.utils.errors import IndexUnavailableError, RAGError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    studyRAG always passes pre-computed embeddings to ``upsert()`` and
    ``search()``, so ChromaDB's built-in embedding is never invoked.  Without
    this, ChromaDB downloads and loads its default ONNX model on collection
    creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "studyRAG uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBProvider(IVectorStoreProvider):
    """Vector store provider backed by ChromaDB with local persistence.

    Parameters
    ----------
    persist_directory:
        Directory where ChromaDB keeps its SQLite + HNSW files.
    collection_name:
        Name of the cosine collection holding every document's chunks.
    expected_dimension:
        When given, the first stored vector is checked against it at
        startup and a mismatch raises :class:`RAGError`.
    batch_size:
        Maximum records per ``collection.upsert`` call.
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "ai_chat_chunks",
        expected_dimension: int | None = None,
        batch_size: int = 100,
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._batch_size = max(1, batch_size)
        self._client = chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # Newer ChromaDB versions enforce that the embedding function must
        # match the one persisted with the collection.  A collection created
        # with the default function rejects _NoopEmbeddingFunction with a
        # ValueError, in which case it is opened without one.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

        if expected_dimension is not None:
            self._validate_embedding_dimensions(expected_dimension)

    # ------------------------------------------------------------------
    # Startup validation
    # ------------------------------------------------------------------

    def _stored_dimension(self) -> int | None:
        if self._collection.count() == 0:
            return None
        sample = self._collection.peek(limit=1)
        embeddings = sample.get("embeddings") if sample else None
        if embeddings is None or len(embeddings) == 0:
            return None
        return len(embeddings[0])

    def _validate_embedding_dimensions(self, expected_dim: int) -> None:
        """Verify that vectors already in the collection have *expected_dim* values.

        A mismatch means every query would produce garbage results, so it
        fails loud at startup.
        """
        try:
            stored_dim = self._stored_dimension()
        except Exception as exc:
            logger.warning("embedding_dimension_check_skipped", error=str(exc))
            return

        if stored_dim is None:
            return
        if stored_dim != expected_dim:
            logger.error(
                "embedding_dimension_mismatch",
                stored_dim=stored_dim,
                expected_dim=expected_dim,
                collection=self._collection_name,
            )
            raise RAGError(
                message=(
                    f"Embedding dimension mismatch: collection '{self._collection_name}' "
                    f"has {stored_dim}-dim vectors but the embedding model produces "
                    f"{expected_dim}-dim vectors. Set OPENAI_EMBEDDING_MODEL to the "
                    f"model used to build the index."
                ),
                provider_name=self.get_provider_name(),
            )
        logger.info("embedding_dimension_validated", dimension=stored_dim)

    # ------------------------------------------------------------------
    # IVectorStoreProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, records: list[IndexedChunk]) -> int:
        """Upsert *records* in batches; each batch gets one retry."""
        if not records:
            return 0

        total_stored = 0
        for start in range(0, len(records), self._batch_size):
            batch = records[start : start + self._batch_size]
            ids = [r.id for r in batch]
            embeddings = [r.values for r in batch]
            documents = [r.metadata.content for r in batch]
            metadatas = [self._to_metadata(r) for r in batch]

            for attempt in (1, 2):
                try:
                    await asyncio.to_thread(
                        self._collection.upsert,
                        ids=ids,
                        embeddings=embeddings,
                        documents=documents,
                        metadatas=metadatas,
                    )
                    break
                except Exception as exc:
                    if attempt == 1:
                        logger.warning(
                            "chromadb_upsert_retry", batch_start=start, error=str(exc)
                        )
                        continue
                    raise IndexUnavailableError(
                        message=f"ChromaDB upsert failed for batch at {start}: {exc}",
                        provider_name=self.get_provider_name(),
                    ) from exc
            total_stored += len(batch)

        logger.info(
            "chromadb_upsert",
            count=total_stored,
            batches=(len(records) + self._batch_size - 1) // self._batch_size,
        )
        return total_stored

    async def search(
        self,
        query_vector: list[float],
        document_id: str,
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        """Cosine search restricted to one document's chunks."""
        if top_k <= 0:
            return []
        try:
            total = await asyncio.to_thread(self._collection.count)
            if total == 0:
                return []
            results = await asyncio.to_thread(
                self._collection.query,
                query_embeddings=[query_vector],
                n_results=min(top_k, total),
                where=self._build_where(document_id, filters),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        ids = results["ids"][0] if results.get("ids") else []
        if not ids:
            return []
        documents = results["documents"][0] if results.get("documents") else [""] * len(ids)
        metadatas = results["metadatas"][0] if results.get("metadatas") else [{}] * len(ids)
        distances = results["distances"][0] if results.get("distances") else [1.0] * len(ids)

        hits = [
            self._to_result(chunk_id, text, meta or {}, distance)
            for chunk_id, text, meta, distance in zip(ids, documents, metadatas, distances)
        ]
        hits.sort(key=lambda r: (-r.similarity_score, r.chunk_index))

        logger.info(
            "chromadb_query",
            document_id=document_id,
            results_count=len(hits),
            top_score=hits[0].similarity_score if hits else 0.0,
        )
        return hits

    async def delete_by_document(self, document_id: str) -> int:
        """Delete all chunks of *document_id*."""
        where = {"document_id": document_id}
        try:
            existing = await asyncio.to_thread(self._collection.get, where=where, include=[])
            count = len(existing["ids"]) if existing["ids"] else 0
            if count > 0:
                await asyncio.to_thread(self._collection.delete, where=where)
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB delete_by_document failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_by_document", document_id=document_id, deleted_count=count)
        return count

    async def count(self, document_id: str | None = None) -> int:
        try:
            if document_id is None:
                return await asyncio.to_thread(self._collection.count)
            existing = await asyncio.to_thread(
                self._collection.get, where={"document_id": document_id}, include=[]
            )
            return len(existing["ids"]) if existing["ids"] else 0
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB count failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def get_stats(self) -> IndexStats:
        try:
            total = await asyncio.to_thread(self._collection.count)
            dimension = await asyncio.to_thread(self._stored_dimension) if total else None
        except Exception as exc:
            raise IndexUnavailableError(
                message=f"ChromaDB get_stats failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return IndexStats(
            total_vectors=total, dimension=dimension, provider=self.get_provider_name()
        )

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_metadata(record: IndexedChunk) -> dict[str, str | int | float | bool]:
        """Convert record metadata to a ChromaDB-compatible dict.

        ChromaDB metadata values must be str, int, float, or bool and may
        not be ``None``, so unset optional fields are dropped.  The chunk
        text is stored as the Chroma document, not duplicated here.
        """
        meta = record.metadata.model_dump(mode="json", exclude_none=True, exclude={"content"})
        return meta

    @staticmethod
    def _to_result(
        chunk_id: str, text: str | None, meta: dict[str, Any], distance: float
    ) -> RetrievalResult:
        similarity = max(-1.0, min(1.0, 1.0 - float(distance)))
        chunk_type = meta.get("chunk_type", ChunkType.PARAGRAPH.value)
        try:
            parsed_type = ChunkType(chunk_type)
        except ValueError:
            parsed_type = ChunkType.PARAGRAPH
        return RetrievalResult(
            chunk_id=chunk_id,
            document_id=str(meta.get("document_id", "")),
            content=text or "",
            chunk_type=parsed_type,
            chunk_index=int(meta.get("chunk_index", 0)),
            page_number=meta.get("page_number"),
            section_title=meta.get("section_title"),
            similarity_score=similarity,
        )

    @staticmethod
    def _build_where(document_id: str, filters: dict[str, Any] | None) -> dict[str, Any]:
        """AND the mandatory document filter with optional equality filters."""
        clauses: list[dict[str, Any]] = [{"document_id": document_id}]
        for key, value in (filters or {}).items():
            if key == "document_id" or value is None:
                continue
            if isinstance(value, ChunkType):
                value = value.value
            clauses.append({key: value})
        if len(clauses) == 1:
            return clauses[0]
        return {"$and": clauses}
