"""SQLite-backed document store.

Persists document registry records, processing statuses and chunk audit
rows to a local SQLite database at ``data/documents.db``.  Uses
``aiosqlite`` for async I/O.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import aiosqlite
import structlog

from src.interfaces.document_store_provider import IDocumentStore
from src.models.processing import DocumentRecord, ProcessingState, ProcessingStatus
from src.models.rag import Chunk, ChunkMetadata, ChunkType
from src.utils.errors import ProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/documents.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS documents (
    document_id  TEXT PRIMARY KEY,
    tenant_id    TEXT NOT NULL DEFAULT '',
    storage_key  TEXT NOT NULL,
    file_kind    TEXT NOT NULL,
    title        TEXT NOT NULL DEFAULT '',
    created_at   TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
""",
    """\
CREATE TABLE IF NOT EXISTS processing_status (
    document_id       TEXT PRIMARY KEY,
    state             TEXT    NOT NULL,
    total_chunks      INTEGER NOT NULL DEFAULT 0,
    processed_chunks  INTEGER NOT NULL DEFAULT 0,
    failed_chunks     INTEGER NOT NULL DEFAULT 0,
    error_message     TEXT,
    updated_at        TEXT    NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS document_chunks (
    id                 TEXT PRIMARY KEY,
    document_id        TEXT    NOT NULL,
    chunk_index        INTEGER NOT NULL,
    content            TEXT    NOT NULL,
    token_count        INTEGER NOT NULL,
    char_count         INTEGER NOT NULL,
    chunk_type         TEXT    NOT NULL,
    page_number        INTEGER,
    section_title      TEXT,
    original_position  INTEGER NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON document_chunks(document_id, chunk_index);",
    "CREATE INDEX IF NOT EXISTS idx_status_state ON processing_status(state);",
]

_UPSERT_DOCUMENT_SQL = """\
INSERT INTO documents (document_id, tenant_id, storage_key, file_kind, title)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(document_id)
DO UPDATE SET tenant_id   = excluded.tenant_id,
              storage_key = excluded.storage_key,
              file_kind   = excluded.file_kind,
              title       = excluded.title;
"""

_UPSERT_STATUS_SQL = """\
INSERT INTO processing_status
    (document_id, state, total_chunks, processed_chunks, failed_chunks, error_message, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(document_id)
DO UPDATE SET state            = excluded.state,
              total_chunks     = excluded.total_chunks,
              processed_chunks = excluded.processed_chunks,
              failed_chunks    = excluded.failed_chunks,
              error_message    = excluded.error_message,
              updated_at       = excluded.updated_at;
"""

_INSERT_CHUNK_SQL = """\
INSERT INTO document_chunks
    (id, document_id, chunk_index, content, token_count, char_count,
     chunk_type, page_number, section_title, original_position)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""


class SQLiteDocumentStore(IDocumentStore):
    """SQLite persistence for documents, statuses and chunk rows."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                for table_sql in _CREATE_TABLES_SQL:
                    await db.execute(table_sql)
                for idx_sql in _CREATE_INDICES_SQL:
                    await db.execute(idx_sql)
                await db.commit()
        except aiosqlite.Error as exc:
            raise ProviderUnavailableError(
                message=f"Cannot initialize document store: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("document_db_initialized", path=str(self._db_path))

    # -- Documents --------------------------------------------------------

    async def register_document(self, record: DocumentRecord) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _UPSERT_DOCUMENT_SQL,
                    (
                        record.document_id,
                        record.tenant_id,
                        record.storage_key,
                        record.file_kind,
                        record.title,
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise ProviderUnavailableError(
                message=f"Cannot register document {record.document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("document_registered", document_id=record.document_id)

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    "SELECT document_id, tenant_id, storage_key, file_kind, title "
                    "FROM documents WHERE document_id = ?",
                    (document_id,),
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise ProviderUnavailableError(
                message=f"Cannot read document {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if row is None:
            return None
        return DocumentRecord(**dict(row))

    # -- Processing status ------------------------------------------------

    async def get_status(self, document_id: str) -> ProcessingStatus | None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    "SELECT document_id, state, total_chunks, processed_chunks, failed_chunks, "
                    "error_message, updated_at FROM processing_status WHERE document_id = ?",
                    (document_id,),
                )
                row = await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise ProviderUnavailableError(
                message=f"Cannot read status for {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if row is None:
            return None
        r = dict(row)
        return ProcessingStatus(
            document_id=r["document_id"],
            state=ProcessingState(r["state"]),
            total_chunks=r["total_chunks"],
            processed_chunks=r["processed_chunks"],
            failed_chunks=r["failed_chunks"],
            error_message=r["error_message"],
            updated_at=datetime.fromisoformat(r["updated_at"]),
        )

    async def save_status(self, status: ProcessingStatus) -> None:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                await db.execute(
                    _UPSERT_STATUS_SQL,
                    (
                        status.document_id,
                        status.state.value,
                        status.total_chunks,
                        status.processed_chunks,
                        status.failed_chunks,
                        status.error_message,
                        status.updated_at.isoformat(),
                    ),
                )
                await db.commit()
        except aiosqlite.Error as exc:
            raise ProviderUnavailableError(
                message=f"Cannot save status for {status.document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    # -- Chunk rows -------------------------------------------------------

    async def replace_chunks(self, document_id: str, chunks: list[Chunk]) -> int:
        """Delete and re-insert the chunk rows of *document_id* in one transaction."""
        rows = [
            (
                c.id,
                document_id,
                c.chunk_index,
                c.content,
                c.token_count,
                c.char_count,
                c.chunk_type.value,
                c.metadata.page_number,
                c.metadata.section_title,
                c.metadata.original_position,
            )
            for c in chunks
        ]
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                try:
                    await db.execute(
                        "DELETE FROM document_chunks WHERE document_id = ?", (document_id,)
                    )
                    await db.executemany(_INSERT_CHUNK_SQL, rows)
                    await db.commit()
                except aiosqlite.Error:
                    await db.rollback()
                    raise
        except aiosqlite.Error as exc:
            raise ProviderUnavailableError(
                message=f"Cannot replace chunks for {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("document_chunks_replaced", document_id=document_id, chunks=len(rows))
        return len(rows)

    async def get_chunks(self, document_id: str, limit: int = 100) -> list[Chunk]:
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    "SELECT id, document_id, chunk_index, content, token_count, char_count, "
                    "chunk_type, page_number, section_title, original_position "
                    "FROM document_chunks WHERE document_id = ? ORDER BY chunk_index LIMIT ?",
                    (document_id, limit),
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise ProviderUnavailableError(
                message=f"Cannot read chunks for {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return [self._row_to_chunk(dict(r)) for r in rows]

    def get_provider_name(self) -> str:
        return "sqlite"

    @staticmethod
    def _row_to_chunk(r: dict) -> Chunk:
        return Chunk(
            id=r["id"],
            document_id=r["document_id"],
            content=r["content"],
            chunk_index=r["chunk_index"],
            token_count=r["token_count"],
            char_count=r["char_count"],
            chunk_type=ChunkType(r["chunk_type"]),
            metadata=ChunkMetadata(
                page_number=r["page_number"],
                section_title=r["section_title"],
                original_position=r["original_position"],
            ),
        )
