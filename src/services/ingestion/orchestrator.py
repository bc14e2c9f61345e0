"""Orchestrator for the document ingestion pipeline.

Pipeline stages: **fetch -> extract -> chunk -> embed -> index**.

The :class:`IngestionOrchestrator` coordinates its collaborators (object
store, text extractor, chunker, embedding generator, vector store and
document store) without any of them knowing about each other, and drives
each document through the processing state machine::

    PENDING ──→ PROCESSING ──→ COMPLETED | FAILED
                    ↑                 │
                    └── RETRYING ←────┘

Failure policy
--------------
- Extraction and chunking quality problems are *warnings*: they are
  logged and reported on the result, and ingestion continues.
- Individual embedding failures are *partial*: the failed chunks are left
  out of the index and counted in ``failed_chunks``.
- Everything else (unreadable file, zero embeddings, index unavailable,
  timeout) fails the run: the document is marked FAILED with the error
  message and can be re-run with :meth:`retry`.  Nothing is retried
  automatically.
- A FAILED document has no vectors and no chunk rows: whatever the run
  (or an earlier one) wrote is removed before the status is saved.
- A PROCESSING status older than ``timeout_seconds`` belongs to a run
  that died with its process; the next ``ingest`` or ``retry`` marks it
  FAILED and carries on.

Re-ingesting a document deletes its old vectors (and waits for the delete)
before the new ones are written, so a reader never sees a mix of old and
new chunks.

All dependencies are injected via constructor, so providers can be swapped
without changing this class.
"""

from __future__ import annotations

import asyncio
import time

import structlog

from src.interfaces.document_store_provider import IDocumentStore
from src.interfaces.object_store_provider import IObjectStoreProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.processing import (
    DocumentRecord,
    IngestionResult,
    IngestionStage,
    ProcessingState,
    ProcessingStatus,
)
from src.models.rag import Chunk, IndexedChunk
from src.pipeline.progress_tracker import ProgressTracker
from src.services.embedding_generator import EmbeddingGenerator
from src.services.ingestion.chunker import DocumentChunker
from src.services.ingestion.text_extractor import TextExtractor
from src.utils.errors import (
    DocumentNotFoundError,
    EmbeddingTotalFailureError,
    ExtractionError,
    IngestionTimeoutError,
    InvalidStateTransitionError,
    StudyRAGError,
)

logger = structlog.get_logger(logger_name=__name__)


class IngestionOrchestrator:
    """Runs documents through fetch -> extract -> chunk -> embed -> index.

    Parameters
    ----------
    document_store:
        Registry, processing status and chunk audit rows.
    object_store:
        Source of the raw uploaded bytes.
    extractor:
        Turns bytes into plain text.
    chunker:
        Splits text into overlapping, size-bounded chunks.
    embedding_generator:
        Embeds chunks with per-item failure isolation.
    vector_store:
        Index receiving the embedded chunks.
    progress_tracker:
        Optional observer notified at each stage.
    timeout_seconds:
        Wall-clock budget for one ingestion run.
    """

    def __init__(
        self,
        document_store: IDocumentStore,
        object_store: IObjectStoreProvider,
        extractor: TextExtractor,
        chunker: DocumentChunker,
        embedding_generator: EmbeddingGenerator,
        vector_store: IVectorStoreProvider,
        progress_tracker: ProgressTracker | None = None,
        timeout_seconds: float = 900.0,
    ) -> None:
        self._document_store = document_store
        self._object_store = object_store
        self._extractor = extractor
        self._chunker = chunker
        self._embedding_generator = embedding_generator
        self._vector_store = vector_store
        self._progress = progress_tracker
        self._timeout = timeout_seconds

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def register(self, record: DocumentRecord) -> ProcessingStatus:
        """Store *record* and give it a PENDING status.

        Re-registering a known document updates the record but keeps its
        existing status.
        """
        await self._document_store.register_document(record)
        existing = await self._document_store.get_status(record.document_id)
        if existing is not None:
            return existing

        status = ProcessingStatus(document_id=record.document_id)
        await self._document_store.save_status(status)
        await self._report(record.document_id, IngestionStage.QUEUED, status.state, 0.0)
        return status

    async def ingest(self, document_id: str) -> IngestionResult:
        """Ingest one document and return the outcome.

        Pipeline failures do not raise: they are recorded on the document's
        status and returned as a FAILED :class:`IngestionResult`.

        Raises
        ------
        DocumentNotFoundError
            If *document_id* was never registered.
        InvalidStateTransitionError
            If the document is already being processed.
        asyncio.CancelledError
            Re-raised after the document has been marked FAILED.
        """
        record = await self._document_store.get_document(document_id)
        if record is None:
            raise DocumentNotFoundError(message=f"Document {document_id} is not registered")

        status = await self._begin(document_id)
        start = time.monotonic()
        warnings: list[str] = []

        logger.info("ingestion_started", document_id=document_id, file_kind=record.file_kind)
        try:
            result = await asyncio.wait_for(
                self._run(record, status, warnings, start), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            timeout_error = IngestionTimeoutError(
                message=f"Ingestion timed out after {self._timeout:g}s"
            )
            return await self._fail(status, str(timeout_error), start, warnings)
        except asyncio.CancelledError:
            await self._fail(status, "Ingestion was cancelled", start, warnings)
            raise
        except StudyRAGError as exc:
            return await self._fail(status, str(exc), start, warnings)
        except Exception as exc:
            logger.exception("ingestion_unexpected_error", document_id=document_id)
            return await self._fail(status, f"Unexpected error: {exc}", start, warnings)

        return result

    async def ingest_many(self, document_ids: list[str]) -> list[IngestionResult | BaseException]:
        """Ingest several independent documents concurrently.

        Results are in input order; per-document exceptions (unknown id,
        already processing) are returned in place rather than raised.
        """
        return await asyncio.gather(
            *(self.ingest(document_id) for document_id in document_ids),
            return_exceptions=True,
        )

    async def retry(self, document_id: str) -> IngestionResult:
        """Move a COMPLETED or FAILED document to RETRYING and re-run it.

        Raises
        ------
        DocumentNotFoundError
            If the document has no status.
        InvalidStateTransitionError
            If the document is PENDING, already RETRYING, or PROCESSING in a
            run that has not outlived the ingestion timeout.
        """
        status = await self._recover_stale(await self.get_status(document_id))
        retrying = status.transition(ProcessingState.RETRYING)
        await self._document_store.save_status(retrying)
        logger.info("ingestion_retry_requested", document_id=document_id, previous=status.state.value)
        return await self.ingest(document_id)

    async def get_status(self, document_id: str) -> ProcessingStatus:
        status = await self._document_store.get_status(document_id)
        if status is None:
            raise DocumentNotFoundError(message=f"Document {document_id} is not registered")
        return status

    async def get_chunks(self, document_id: str, limit: int = 100) -> list[Chunk]:
        """Return the indexed chunk rows of a document, in order."""
        return await self._document_store.get_chunks(document_id, limit=limit)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    async def _begin(self, document_id: str) -> ProcessingStatus:
        """Move the document into PROCESSING, via RETRYING when re-ingesting."""
        status = await self._document_store.get_status(document_id)
        if status is None:
            status = ProcessingStatus(document_id=document_id)
        status = await self._recover_stale(status)

        if status.state == ProcessingState.PROCESSING:
            raise InvalidStateTransitionError(
                message=f"Document {document_id} is already being processed"
            )
        if status.state in (ProcessingState.COMPLETED, ProcessingState.FAILED):
            status = status.transition(ProcessingState.RETRYING)
            await self._document_store.save_status(status)

        status = status.transition(
            ProcessingState.PROCESSING,
            total_chunks=0,
            processed_chunks=0,
            failed_chunks=0,
        )
        await self._document_store.save_status(status)
        return status

    async def _recover_stale(self, status: ProcessingStatus) -> ProcessingStatus:
        """Fail a PROCESSING status left behind by a run that never finished."""
        if not status.is_stale(self._timeout):
            return status
        failed = status.transition(
            ProcessingState.FAILED,
            error_message=f"Stale run: no progress for over {self._timeout:g}s",
        )
        await self._discard_index(status.document_id)
        await self._document_store.save_status(failed)
        logger.warning(
            "stale_run_recovered",
            document_id=status.document_id,
            last_update=status.updated_at.isoformat(),
        )
        return failed

    async def _run(
        self,
        record: DocumentRecord,
        status: ProcessingStatus,
        warnings: list[str],
        start: float,
    ) -> IngestionResult:
        document_id = record.document_id
        processing = ProcessingState.PROCESSING

        # Step 1: fetch + extract.
        await self._report(document_id, IngestionStage.EXTRACT, processing, 5.0, "Downloading")
        data = await self._object_store.fetch_bytes(record.storage_key)
        extracted = await self._extractor.extract(data, record.file_kind)
        extraction_report = self._extractor.validate(extracted)
        if not extraction_report.is_valid:
            logger.warning(
                "extraction_quality_warning",
                document_id=document_id,
                issues=extraction_report.issues,
            )
            warnings.extend(extraction_report.issues)

        # Step 2: chunk.
        await self._report(document_id, IngestionStage.CHUNK, processing, 25.0, "Chunking")
        chunking = self._chunker.chunk(extracted.text, document_id)
        chunks = chunking.chunks
        if not chunks:
            raise ExtractionError(message="Document contains no extractable text")
        chunk_report = self._chunker.validate_chunks(chunks)
        if not chunk_report.is_valid:
            logger.warning(
                "chunking_quality_warning",
                document_id=document_id,
                issues=chunk_report.issues,
            )
            warnings.extend(chunk_report.issues)

        # Step 3: embed.
        await self._report(
            document_id, IngestionStage.EMBED, processing, 40.0, f"Embedding {len(chunks)} chunks"
        )
        records, failed = await self._embed_chunks(record, chunks)
        if not records:
            raise EmbeddingTotalFailureError(
                message=f"All {len(chunks)} chunk embeddings failed"
            )
        if failed:
            logger.warning(
                "embedding_partial_failure",
                document_id=document_id,
                failed=failed,
                total=len(chunks),
            )
            warnings.append(f"{failed} of {len(chunks)} chunks could not be embedded")

        # Step 4: replace the document's vectors, delete acknowledged first.
        # A failure from here on is rolled back by _fail.
        await self._report(document_id, IngestionStage.INDEX, processing, 75.0, "Indexing")
        deleted = await self._vector_store.delete_by_document(document_id)
        stored = await self._vector_store.upsert(records)
        indexed_ids = {r.id for r in records}
        await self._document_store.replace_chunks(
            document_id, [c for c in chunks if c.id in indexed_ids]
        )

        completed = status.transition(
            ProcessingState.COMPLETED,
            total_chunks=len(chunks),
            processed_chunks=stored,
            failed_chunks=failed,
        )
        await self._document_store.save_status(completed)

        elapsed = time.monotonic() - start
        await self._report(document_id, IngestionStage.DONE, completed.state, 100.0, "Completed")
        logger.info(
            "ingestion_complete",
            document_id=document_id,
            chunks=stored,
            failed=failed,
            replaced=deleted,
            tokens=chunking.total_tokens,
            time_s=round(elapsed, 2),
        )
        return IngestionResult(
            document_id=document_id,
            state=completed.state,
            total_chunks=len(chunks),
            processed_chunks=stored,
            failed_chunks=failed,
            total_tokens=chunking.total_tokens,
            ingestion_time=round(elapsed, 2),
            warnings=list(warnings),
        )

    async def _embed_chunks(
        self, record: DocumentRecord, chunks: list[Chunk]
    ) -> tuple[list[IndexedChunk], int]:
        """Embed *chunks*; return index records for the valid vectors and the failure count."""
        batch = await self._embedding_generator.embed_batch(
            [c.content for c in chunks], ids=[c.id for c in chunks]
        )

        records: list[IndexedChunk] = []
        failed = batch.failure_count
        for chunk, vector in zip(chunks, batch.embeddings):
            if vector is None:
                continue
            check = self._embedding_generator.validate_embedding(vector.values)
            if not check.is_valid:
                logger.warning(
                    "embedding_invalid", chunk_id=chunk.id, issues=check.issues
                )
                failed += 1
                continue
            records.append(IndexedChunk.from_chunk(chunk, vector, tenant_id=record.tenant_id))
        return records, failed

    async def _fail(
        self,
        status: ProcessingStatus,
        message: str,
        start: float,
        warnings: list[str],
    ) -> IngestionResult:
        await self._discard_index(status.document_id)
        failed = status.transition(ProcessingState.FAILED, error_message=message)
        await self._document_store.save_status(failed)
        await self._report(
            status.document_id, IngestionStage.DONE, failed.state, 100.0, message
        )
        elapsed = time.monotonic() - start
        logger.error(
            "ingestion_failed",
            document_id=status.document_id,
            error=message,
            time_s=round(elapsed, 2),
        )
        return IngestionResult(
            document_id=status.document_id,
            state=failed.state,
            error_message=message,
            ingestion_time=round(elapsed, 2),
            warnings=list(warnings),
        )

    async def _discard_index(self, document_id: str) -> None:
        """Remove a failed run's vectors and audit rows, logging any error.

        A FAILED document has nothing in the index, so retrieval can never
        ground an answer on a partial chunk set.
        """
        try:
            removed = await self._vector_store.delete_by_document(document_id)
            await self._document_store.replace_chunks(document_id, [])
        except Exception as exc:
            logger.error("index_rollback_failed", document_id=document_id, error=str(exc))
            return
        if removed:
            logger.warning("index_rolled_back", document_id=document_id, removed=removed)

    async def _report(
        self,
        document_id: str,
        stage: IngestionStage,
        state: ProcessingState,
        progress: float,
        message: str = "",
    ) -> None:
        if self._progress is not None:
            await self._progress.update(document_id, stage, state, progress, message)
