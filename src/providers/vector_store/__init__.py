"""Vector store provider implementations.

ChromaDBProvider stores chunk embeddings on disk (persistent) and supports
cosine-similarity search with metadata filtering.  Data persists at
CHROMADB_PERSIST_DIR (default: ./data/chromadb).

InMemoryVectorStore is an exact, process-local alternative selected with
VECTOR_STORE_BACKEND=memory.

To swap in another vector database, create a new class implementing
IVectorStoreProvider and register it in main.py.
"""

from src.providers.vector_store.chromadb_provider import ChromaDBProvider
from src.providers.vector_store.memory_provider import InMemoryVectorStore

__all__ = ["ChromaDBProvider", "InMemoryVectorStore"]
