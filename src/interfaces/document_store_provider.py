"""Abstract base class for the relational document store.

Persists, keyed by document id:

* the :class:`~src.models.processing.DocumentRecord` registered at upload,
* the current :class:`~src.models.processing.ProcessingStatus`,
* chunk rows (content and metadata, without vector values) kept for
  auditability and for listing a document's chunks without the index.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.models.processing import DocumentRecord, ProcessingStatus
from src.models.rag import Chunk


# Concrete implementation: SQLiteDocumentStore (src/providers/document_store/)
class IDocumentStore(ABC):
    """Contract for document/status/chunk persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables or other storage structures if missing."""

    @abstractmethod
    async def register_document(self, record: DocumentRecord) -> None:
        """Insert or replace the registry record for ``record.document_id``."""

    @abstractmethod
    async def get_document(self, document_id: str) -> DocumentRecord | None:
        """Return the registry record, or ``None`` if unknown."""

    @abstractmethod
    async def get_status(self, document_id: str) -> ProcessingStatus | None:
        """Return the stored processing status, or ``None`` if unknown."""

    @abstractmethod
    async def save_status(self, status: ProcessingStatus) -> None:
        """Upsert the processing status for ``status.document_id``."""

    @abstractmethod
    async def replace_chunks(self, document_id: str, chunks: list[Chunk]) -> int:
        """Replace every chunk row of *document_id* with *chunks* in one transaction.

        Returns
        -------
        int
            The number of rows written.
        """

    @abstractmethod
    async def get_chunks(self, document_id: str, limit: int = 100) -> list[Chunk]:
        """Return up to *limit* chunk rows ordered by ``chunk_index``."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sqlite"``."""
