"""Shared pytest fixtures for the studyRAG test suite."""

from __future__ import annotations

import hashlib
import struct
from typing import Any

import pytest

from src.config.settings import Settings
from src.interfaces.document_store_provider import IDocumentStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.object_store_provider import IObjectStoreProvider
from src.models.processing import DocumentRecord, ProcessingStatus
from src.models.rag import Chunk
from src.utils.errors import DocumentNotFoundError, RAGError

EMBEDDING_DIM = 16

# ---------------------------------------------------------------------------
# Sample texts
# ---------------------------------------------------------------------------

PARIS_TEXT = (
    "Paris is the capital of France. It is known for the Eiffel Tower. "
    "The city has a population of over 2 million."
)

LECTURE_TEXT = (
    "Photosynthesis converts light energy into chemical energy. "
    "It takes place in the chloroplasts of plant cells. "
    "Chlorophyll absorbs mostly blue and red light. "
    "The light-dependent reactions produce ATP and NADPH. "
    "The Calvin cycle uses ATP and NADPH to fix carbon dioxide. "
    "Glucose is the main product of the Calvin cycle. "
    "Oxygen is released as a by-product of splitting water. "
    "The rate of photosynthesis depends on light intensity. "
    "Temperature also affects the enzymes involved. "
    "Carbon dioxide concentration can be a limiting factor."
)


def _hash_to_vector(text: str, dim: int = EMBEDDING_DIM) -> list[float]:
    """Deterministic pseudo-embedding: same text, same vector."""
    values: list[float] = []
    counter = 0
    while len(values) < dim:
        digest = hashlib.sha256(f"{counter}:{text}".encode()).digest()
        for offset in range(0, len(digest), 4):
            (raw,) = struct.unpack(">I", digest[offset : offset + 4])
            values.append(raw / 0xFFFFFFFF - 0.5)
        counter += 1
    return values[:dim]


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Hash-based embedding provider that can be told to fail on some inputs.

    Any text containing one of ``fail_markers`` makes ``embed`` raise for the
    whole request and ``embed_single`` raise for that text only, which is how
    a real API behaves when one input in a batch is rejected.
    """

    def __init__(self, dim: int = EMBEDDING_DIM, fail_markers: tuple[str, ...] = ()) -> None:
        self.dim = dim
        self.fail_markers = fail_markers
        self.embed_calls: list[list[str]] = []
        self.single_calls: list[str] = []

    def _should_fail(self, text: str) -> bool:
        return any(marker in text for marker in self.fail_markers)

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.embed_calls.append(list(texts))
        if any(self._should_fail(t) for t in texts):
            raise RAGError(message="rejected input in batch", provider_name="fake")
        return [_hash_to_vector(t, self.dim) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.single_calls.append(text)
        if self._should_fail(text):
            raise RAGError(message="rejected input", provider_name="fake")
        return _hash_to_vector(text, self.dim)

    def get_dimension(self) -> int:
        return self.dim

    def get_model_name(self) -> str:
        return "fake-embedding"

    def get_provider_name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return True


class InMemoryDocumentStore(IDocumentStore):
    """Dict-backed document store with the same contract as the SQLite one."""

    def __init__(self) -> None:
        self.records: dict[str, DocumentRecord] = {}
        self.statuses: dict[str, ProcessingStatus] = {}
        self.status_history: list[ProcessingStatus] = []
        self.chunks: dict[str, list[Chunk]] = {}

    async def initialize(self) -> None:
        return None

    async def register_document(self, record: DocumentRecord) -> None:
        self.records[record.document_id] = record

    async def get_document(self, document_id: str) -> DocumentRecord | None:
        return self.records.get(document_id)

    async def get_status(self, document_id: str) -> ProcessingStatus | None:
        return self.statuses.get(document_id)

    async def save_status(self, status: ProcessingStatus) -> None:
        self.statuses[status.document_id] = status
        self.status_history.append(status)

    async def replace_chunks(self, document_id: str, chunks: list[Chunk]) -> int:
        self.chunks[document_id] = list(chunks)
        return len(chunks)

    async def get_chunks(self, document_id: str, limit: int = 100) -> list[Chunk]:
        rows = sorted(self.chunks.get(document_id, []), key=lambda c: c.chunk_index)
        return rows[:limit]

    def get_provider_name(self) -> str:
        return "memory"


class StaticObjectStore(IObjectStoreProvider):
    """Serves bytes from a dict."""

    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects = dict(objects or {})

    async def fetch_bytes(self, key: str) -> bytes:
        if key not in self.objects:
            raise DocumentNotFoundError(message=f"No object stored under '{key}'")
        return self.objects[key]

    def get_provider_name(self) -> str:
        return "static"


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def make_settings(**overrides: Any) -> Settings:
    """Build Settings with safe test defaults; ``.env`` files are ignored."""
    defaults: dict[str, Any] = {
        "openai_api_key": "",
        "openai_base_url": "",
        "vector_store_backend": "memory",
        "object_store_base_url": "",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def sample_text() -> str:
    return LECTURE_TEXT


@pytest.fixture
def mock_settings() -> Settings:
    return make_settings()
