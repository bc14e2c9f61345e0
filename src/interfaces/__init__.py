"""Public interface definitions for all external service providers.

Every external service in the studyRAG pipeline is accessed exclusively
through the abstract base classes defined in this package.  Concrete
adapters implement these interfaces and are injected at construction time
by the composition root in ``src/main.py``.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in src/providers/)
    ─────────────────────────────────────────────────────────────────────
    IEmbeddingProvider         →  OpenAIEmbeddingProvider
    IVectorStoreProvider       →  ChromaDBProvider, InMemoryVectorStore
    IObjectStoreProvider       →  LocalObjectStore, HttpObjectStore
    IDocumentStore             →  SQLiteDocumentStore
    ILLMProvider               →  OpenAILLMProvider
"""

from src.interfaces.document_store_provider import IDocumentStore
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.interfaces.object_store_provider import IObjectStoreProvider
from src.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IDocumentStore",
    "IEmbeddingProvider",
    "ILLMProvider",
    "IObjectStoreProvider",
    "IVectorStoreProvider",
]
