"""Unit tests for SQLiteDocumentStore, run against a temporary database file."""

from __future__ import annotations

import pytest
import pytest_asyncio

from src.models.processing import DocumentRecord, ProcessingState, ProcessingStatus
from src.models.rag import Chunk, ChunkMetadata, ChunkType
from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from src.utils.errors import ProviderUnavailableError


def _chunk(document_id: str, index: int, content: str = "text") -> Chunk:
    return Chunk(
        id=f"{document_id}_chunk_{index}",
        document_id=document_id,
        content=f"{content} {index}",
        chunk_index=index,
        token_count=2,
        char_count=len(content) + 2,
        chunk_type=ChunkType.LIST if index == 1 else ChunkType.PARAGRAPH,
        metadata=ChunkMetadata(
            page_number=index + 1,
            section_title="Intro" if index == 0 else None,
            original_position=index,
        ),
    )


@pytest_asyncio.fixture
async def store(tmp_path) -> SQLiteDocumentStore:
    db = SQLiteDocumentStore(db_path=tmp_path / "nested" / "documents.db")
    await db.initialize()
    return db


class TestDocuments:
    @pytest.mark.asyncio
    async def test_initialize_creates_parent_directory(self, tmp_path) -> None:
        path = tmp_path / "a" / "b" / "documents.db"
        await SQLiteDocumentStore(db_path=path).initialize()
        assert path.exists()

    @pytest.mark.asyncio
    async def test_initialize_is_idempotent(self, store: SQLiteDocumentStore) -> None:
        await store.initialize()

    @pytest.mark.asyncio
    async def test_register_and_get(self, store: SQLiteDocumentStore) -> None:
        record = DocumentRecord(
            document_id="doc-1", storage_key="lectures/doc-1.pdf", file_kind="pdf", title="L1"
        )
        await store.register_document(record)

        assert await store.get_document("doc-1") == record
        assert await store.get_document("missing") is None

    @pytest.mark.asyncio
    async def test_register_updates_existing(self, store: SQLiteDocumentStore) -> None:
        await store.register_document(
            DocumentRecord(document_id="doc-1", storage_key="old.pdf", file_kind="pdf")
        )
        await store.register_document(
            DocumentRecord(document_id="doc-1", storage_key="new.docx", file_kind="docx")
        )

        fetched = await store.get_document("doc-1")
        assert fetched.storage_key == "new.docx"
        assert fetched.file_kind == "docx"


class TestStatus:
    @pytest.mark.asyncio
    async def test_missing_status(self, store: SQLiteDocumentStore) -> None:
        assert await store.get_status("doc-1") is None

    @pytest.mark.asyncio
    async def test_save_and_overwrite(self, store: SQLiteDocumentStore) -> None:
        pending = ProcessingStatus(document_id="doc-1")
        await store.save_status(pending)
        processing = pending.transition(ProcessingState.PROCESSING)
        failed = processing.transition(
            ProcessingState.FAILED, total_chunks=4, failed_chunks=4, error_message="boom"
        )
        await store.save_status(failed)

        loaded = await store.get_status("doc-1")

        assert loaded.state == ProcessingState.FAILED
        assert loaded.total_chunks == 4
        assert loaded.failed_chunks == 4
        assert loaded.error_message == "boom"
        assert loaded.updated_at == failed.updated_at


class TestChunks:
    @pytest.mark.asyncio
    async def test_replace_and_read_in_order(self, store: SQLiteDocumentStore) -> None:
        chunks = [_chunk("doc-1", i) for i in (2, 0, 1)]

        assert await store.replace_chunks("doc-1", chunks) == 3
        loaded = await store.get_chunks("doc-1")

        assert [c.chunk_index for c in loaded] == [0, 1, 2]
        assert loaded[0] == _chunk("doc-1", 0)
        assert loaded[1].chunk_type == ChunkType.LIST
        assert loaded[1].metadata.section_title is None

    @pytest.mark.asyncio
    async def test_replace_removes_stale_rows(self, store: SQLiteDocumentStore) -> None:
        await store.replace_chunks("doc-1", [_chunk("doc-1", i) for i in range(5)])
        await store.replace_chunks("doc-1", [_chunk("doc-1", i, "new") for i in range(2)])

        loaded = await store.get_chunks("doc-1")
        assert [c.content for c in loaded] == ["new 0", "new 1"]

    @pytest.mark.asyncio
    async def test_documents_are_isolated(self, store: SQLiteDocumentStore) -> None:
        await store.replace_chunks("doc-1", [_chunk("doc-1", 0)])
        await store.replace_chunks("doc-2", [_chunk("doc-2", 0), _chunk("doc-2", 1)])
        await store.replace_chunks("doc-2", [])

        assert len(await store.get_chunks("doc-1")) == 1
        assert await store.get_chunks("doc-2") == []

    @pytest.mark.asyncio
    async def test_limit(self, store: SQLiteDocumentStore) -> None:
        await store.replace_chunks("doc-1", [_chunk("doc-1", i) for i in range(5)])
        assert len(await store.get_chunks("doc-1", limit=2)) == 2

    def test_provider_name(self, tmp_path) -> None:
        assert SQLiteDocumentStore(db_path=tmp_path / "x.db").get_provider_name() == "sqlite"


class TestDatabaseErrors:
    """A store whose tables were never created surfaces every failure as ProviderUnavailableError."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation",
        [
            lambda s: s.register_document(
                DocumentRecord(document_id="doc-1", storage_key="a.pdf", file_kind="pdf")
            ),
            lambda s: s.get_document("doc-1"),
            lambda s: s.get_status("doc-1"),
            lambda s: s.save_status(ProcessingStatus(document_id="doc-1")),
            lambda s: s.replace_chunks("doc-1", [_chunk("doc-1", 0)]),
            lambda s: s.replace_chunks("doc-1", []),
            lambda s: s.get_chunks("doc-1"),
        ],
        ids=[
            "register_document",
            "get_document",
            "get_status",
            "save_status",
            "replace_chunks",
            "clear_chunks",
            "get_chunks",
        ],
    )
    async def test_sqlite_errors_are_wrapped(self, tmp_path, operation) -> None:
        store = SQLiteDocumentStore(db_path=tmp_path / "uninitialized.db")

        with pytest.raises(ProviderUnavailableError) as excinfo:
            await operation(store)

        assert excinfo.value.provider_name == "sqlite"
        assert excinfo.value.__cause__ is not None
