"""Unit tests for the composition root in src/main.py.

Every component is built for real against temporary paths; OpenAI clients
are constructed but never called.
"""

from __future__ import annotations

import pytest

from src.config.settings import Settings
from src.main import (
    _build_object_store,
    _build_vector_store,
    build_components,
    shutdown,
    startup,
)
from src.providers.object_store.http_provider import HttpObjectStore
from src.providers.object_store.local_provider import LocalObjectStore
from src.providers.vector_store.memory_provider import InMemoryVectorStore
from src.services.chat_service import ChatService
from src.services.ingestion.orchestrator import IngestionOrchestrator
from src.utils.errors import ConfigurationError
from tests.conftest import make_settings


def _settings(tmp_path, **overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "document_db_path": str(tmp_path / "documents.db"),
        "object_store_root": str(tmp_path / "materials"),
        "chromadb_persist_dir": str(tmp_path / "chroma"),
        "app_env": "test",
    }
    defaults.update(overrides)
    return make_settings(**defaults)


# ======================================================================
# _build_vector_store
# ======================================================================


class TestBuildVectorStore:
    def test_memory_backend(self, tmp_path) -> None:
        store = _build_vector_store(_settings(tmp_path, vector_store_backend="memory"), 16)
        assert isinstance(store, InMemoryVectorStore)

    def test_backend_name_is_case_insensitive(self, tmp_path) -> None:
        store = _build_vector_store(_settings(tmp_path, vector_store_backend=" Memory "), 16)
        assert isinstance(store, InMemoryVectorStore)

    def test_chromadb_backend(self, tmp_path) -> None:
        store = _build_vector_store(_settings(tmp_path, vector_store_backend="chromadb"), 16)
        assert store.get_provider_name() == "chromadb"

    def test_unknown_backend(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="pinecone"):
            _build_vector_store(_settings(tmp_path, vector_store_backend="pinecone"), 16)


# ======================================================================
# _build_object_store
# ======================================================================


class TestBuildObjectStore:
    def test_local_by_default(self, tmp_path) -> None:
        store = _build_object_store(_settings(tmp_path), http_client=None)
        assert isinstance(store, LocalObjectStore)

    def test_http_when_base_url_set(self, tmp_path) -> None:
        store = _build_object_store(
            _settings(tmp_path, object_store_base_url="https://files.test"), http_client=None
        )
        assert isinstance(store, HttpObjectStore)
        assert store.resolve_url("a.pdf") == "https://files.test/a.pdf"


# ======================================================================
# build_components / startup / shutdown
# ======================================================================


class TestBuildComponents:
    @pytest.mark.asyncio
    async def test_full_graph(self, tmp_path) -> None:
        components = build_components(_settings(tmp_path))
        try:
            assert isinstance(components["orchestrator"], IngestionOrchestrator)
            assert isinstance(components["chat_service"], ChatService)
            assert isinstance(components["vector_store"], InMemoryVectorStore)
            assert components["provider_registry"] == {
                "embedding": True,
                "llm": True,
                "vector_store": True,
            }
        finally:
            await shutdown(components)

    @pytest.mark.asyncio
    async def test_registry_reflects_missing_key(self, tmp_path) -> None:
        components = build_components(_settings(tmp_path, openai_api_key=""))
        try:
            assert components["provider_registry"]["embedding"] is False
            assert components["provider_registry"]["llm"] is False
        finally:
            await shutdown(components)

    def test_overlap_must_be_below_chunk_size(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="CHUNK_OVERLAP"):
            build_components(_settings(tmp_path, chunk_size=100, chunk_overlap=100))

    @pytest.mark.asyncio
    async def test_startup_creates_database_and_shutdown_closes_client(self, tmp_path) -> None:
        components = build_components(_settings(tmp_path))

        await startup(components)
        await shutdown(components)

        assert (tmp_path / "documents.db").exists()
        assert components["http_client"].is_closed
