"""Abstract base class for vector-index providers.

Defines the contract for storing, searching and deleting embedded chunks.
Implementations may wrap ChromaDB (local), Pinecone, Qdrant or an
in-process dict.  The adapter pattern keeps ingestion and retrieval
independent of the chosen backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from src.models.rag import IndexedChunk, IndexStats, RetrievalResult


# Concrete implementations (src/providers/vector_store/):
#   ChromaDBProvider     -- persistent, cosine HNSW collection
#   InMemoryVectorStore  -- exact cosine search over a dict (local runs, tests)
class IVectorStoreProvider(ABC):
    """Contract for the vector index used by the RAG pipeline.

    Every search is scoped to exactly one document: ``document_id`` is a
    required argument, not an optional filter, because returning another
    document's chunks is a correctness bug.

    All methods are async so that network-backed stores never block the
    event loop.
    """

    @abstractmethod
    async def upsert(self, records: list[IndexedChunk]) -> int:
        """Insert or replace records, keyed by ``record.id``.

        Implementations batch internally to the backend's per-call limit.
        A batch that fails is retried once as a whole; if it still fails
        the error is raised -- a batch is never silently half-written.

        Returns
        -------
        int
            The number of records written.

        Raises
        ------
        src.utils.errors.IndexUnavailableError
            If the backend rejects a batch.
        """

    @abstractmethod
    async def search(
        self,
        query_vector: list[float],
        document_id: str,
        top_k: int = 5,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        """Return the *top_k* chunks of *document_id* nearest to *query_vector*.

        Parameters
        ----------
        query_vector:
            Embedding of the query text.
        document_id:
            Only chunks whose metadata ``document_id`` equals this value are
            considered.
        top_k:
            Maximum number of results.
        filters:
            Optional extra equality filters on metadata fields (e.g.
            ``{"chunk_type": "paragraph"}``), AND-ed with the document filter.

        Returns
        -------
        list[RetrievalResult]
            Sorted by descending similarity; equal scores keep chunk order.

        Raises
        ------
        src.utils.errors.IndexUnavailableError
            If the backend query fails.
        """

    @abstractmethod
    async def delete_by_document(self, document_id: str) -> int:
        """Delete every record belonging to *document_id*.

        Returns
        -------
        int
            The number of records deleted.
        """

    @abstractmethod
    async def count(self, document_id: str | None = None) -> int:
        """Return the number of records, optionally for one document."""

    @abstractmethod
    async def get_stats(self) -> IndexStats:
        """Return aggregate statistics about the index."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the store is reachable without running a query."""
