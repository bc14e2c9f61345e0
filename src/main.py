"""studyRAG composition root.

Wires together all providers and services via dependency injection.
Clients (OpenAI, ChromaDB, httpx, SQLite) are constructed once here and
handed to the services that need them; nothing below this module builds
its own clients.

Usage from scripts or the CLI::

    components = build_components()
    await startup(components)
    try:
        result = await components["orchestrator"].ingest("doc-1")
    finally:
        await shutdown(components)
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from src.config.loader import load_settings
from src.config.settings import Settings
from src.interfaces.document_store_provider import IDocumentStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.object_store_provider import IObjectStoreProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.pipeline.progress_tracker import ProgressTracker
from src.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.providers.object_store.http_provider import HttpObjectStore
from src.providers.object_store.local_provider import LocalObjectStore
from src.providers.vector_store.memory_provider import InMemoryVectorStore
from src.services.chat_service import ChatService
from src.services.context_builder import ConversationContextBuilder
from src.services.embedding_generator import EmbeddingGenerator
from src.services.ingestion.chunker import DocumentChunker
from src.services.ingestion.orchestrator import IngestionOrchestrator
from src.services.ingestion.text_extractor import TextExtractor
from src.services.retrieval_assembler import RetrievalAssembler
from src.utils.errors import ConfigurationError
from src.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider factories
# ---------------------------------------------------------------------------


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider:
    return OpenAIEmbeddingProvider(settings=app_settings)


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    return OpenAILLMProvider(settings=app_settings)


def _build_vector_store(app_settings: Settings, dimension: int) -> IVectorStoreProvider:
    """Select the vector index by ``VECTOR_STORE_BACKEND``."""
    backend = app_settings.vector_store_backend.strip().lower()
    if backend == "memory":
        return InMemoryVectorStore()
    if backend == "chromadb":
        # Imported lazily: chromadb is heavy and not needed for the memory backend.
        from src.providers.vector_store.chromadb_provider import ChromaDBProvider

        return ChromaDBProvider(
            persist_directory=app_settings.chromadb_persist_dir,
            collection_name=app_settings.chromadb_collection,
            expected_dimension=dimension,
            batch_size=app_settings.upsert_batch_size,
        )
    raise ConfigurationError(
        message=f"Unknown VECTOR_STORE_BACKEND '{app_settings.vector_store_backend}' "
        "(expected 'chromadb' or 'memory')"
    )


def _build_object_store(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> IObjectStoreProvider:
    """HTTP downloads when a base URL is configured, local files otherwise."""
    if app_settings.object_store_base_url:
        return HttpObjectStore(
            http_client=http_client, base_url=app_settings.object_store_base_url
        )
    return LocalObjectStore(root=app_settings.object_store_root)


def _build_document_store(app_settings: Settings) -> IDocumentStore:
    return SQLiteDocumentStore(db_path=app_settings.document_db_path)


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_components(app_settings: Settings | None = None) -> dict[str, Any]:
    """Construct every provider and service instance.

    Parameters
    ----------
    app_settings:
        Application settings.  When omitted, settings are loaded from the
        environment, ``.env`` and ``config/config.yaml``.

    Returns
    -------
    dict
        A flat dict of named components.
    """
    s = app_settings or load_settings()

    if s.chunk_overlap >= s.chunk_size:
        raise ConfigurationError(
            message=f"CHUNK_OVERLAP ({s.chunk_overlap}) must be smaller than "
            f"CHUNK_SIZE ({s.chunk_size})"
        )

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=s.download_timeout_seconds)

    # -- Providers --
    embedding_provider = _build_embedding_provider(s)
    llm = _build_llm_provider(s)
    vector_store = _build_vector_store(s, dimension=embedding_provider.get_dimension())
    object_store = _build_object_store(s, http_client)
    document_store = _build_document_store(s)

    # -- Services --
    embedding_generator = EmbeddingGenerator(
        provider=embedding_provider,
        batch_size=s.embedding_batch_size,
        concurrency=s.embedding_concurrency,
        max_input_tokens=s.embedding_max_input_tokens,
        cache_size=s.query_cache_size,
        cache_ttl_seconds=s.query_cache_ttl_seconds,
    )
    chunker = DocumentChunker(
        chunk_size=s.chunk_size,
        chunk_overlap=s.chunk_overlap,
        min_chunk_size=s.min_chunk_size,
        max_chunk_size=s.max_chunk_size,
    )
    progress_tracker = ProgressTracker()
    orchestrator = IngestionOrchestrator(
        document_store=document_store,
        object_store=object_store,
        extractor=TextExtractor(),
        chunker=chunker,
        embedding_generator=embedding_generator,
        vector_store=vector_store,
        progress_tracker=progress_tracker,
        timeout_seconds=s.ingestion_timeout_seconds,
    )
    retrieval = RetrievalAssembler(
        embedding_generator=embedding_generator,
        vector_store=vector_store,
        top_k=s.retrieval_top_k,
        timeout_seconds=s.retrieval_timeout_seconds,
    )
    context_builder = ConversationContextBuilder(
        chunk_char_limit=s.context_chunk_char_limit,
        history_turn_limit=s.history_turn_limit,
    )
    chat_service = ChatService(
        llm=llm,
        retrieval=retrieval,
        context_builder=context_builder,
        temperature=s.chat_temperature,
        max_tokens=s.chat_max_tokens,
    )

    # -- Provider registry for status output --
    provider_registry: dict[str, bool] = {
        "embedding": embedding_provider.is_available(),
        "llm": llm.is_available(),
        "vector_store": vector_store.is_available(),
    }
    _logger.info(
        "components_built",
        embedding_provider=embedding_provider.get_provider_name(),
        llm=llm.get_provider_name(),
        vector_store=vector_store.get_provider_name(),
        object_store=object_store.get_provider_name(),
        providers=provider_registry,
    )

    return {
        "settings": s,
        "http_client": http_client,
        "embedding_provider": embedding_provider,
        "llm": llm,
        "vector_store": vector_store,
        "object_store": object_store,
        "document_store": document_store,
        "embedding_generator": embedding_generator,
        "progress_tracker": progress_tracker,
        "orchestrator": orchestrator,
        "retrieval": retrieval,
        "context_builder": context_builder,
        "chat_service": chat_service,
        "provider_registry": provider_registry,
    }


async def startup(components: dict[str, Any]) -> None:
    """Prepare persistent stores (create SQLite tables)."""
    document_store: IDocumentStore = components["document_store"]
    await document_store.initialize()
    if not components["provider_registry"]["embedding"]:
        _logger.warning(
            "embedding_provider_unconfigured",
            msg="OPENAI_API_KEY is not set; ingestion and retrieval will fail.",
        )


async def shutdown(components: dict[str, Any]) -> None:
    """Close shared network clients."""
    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("shutdown_complete")
