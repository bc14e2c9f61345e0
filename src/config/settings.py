"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# Values are resolved from, highest priority first:
#
#   1. **Environment variables** -- e.g. OPENAI_API_KEY=sk-abc123
#   2. **.env file** -- key=value lines in the project root .env file
#   3. **config/config.yaml** -- only when loaded via
#      ``src.config.loader.load_settings`` (see loader.py)
#   4. The defaults declared below
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """studyRAG application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === OpenAI (embeddings + chat completion) ===
    # Empty string = "not configured".
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = "text-embedding-3-small"
    openai_chat_model: str = "gpt-4o-mini"

    # === Vector index ===
    vector_store_backend: str = "chromadb"  # "chromadb" or "memory"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "ai_chat_chunks"
    upsert_batch_size: int = 100

    # === Document store / object store ===
    document_db_path: str = "data/documents.db"
    object_store_root: str = "data/materials"
    # When set, storage keys are resolved against this URL and downloaded.
    object_store_base_url: str = ""
    download_timeout_seconds: float = 60.0

    # === Chunking (estimated tokens, ceil(chars / 4)) ===
    chunk_size: int = 800
    chunk_overlap: int = 100
    min_chunk_size: int = 50
    max_chunk_size: int = 1200

    # === Embedding ===
    embedding_batch_size: int = 100
    embedding_concurrency: int = 2
    embedding_max_input_tokens: int = 8000
    query_cache_size: int = 256
    query_cache_ttl_seconds: int = 3600

    # === Retrieval / context window ===
    retrieval_top_k: int = 5
    retrieval_timeout_seconds: float = 5.0
    context_chunk_char_limit: int = 500
    history_turn_limit: int = 50

    # === Ingestion ===
    ingestion_timeout_seconds: float = 900.0

    # === Chat completion ===
    chat_temperature: float = 0.7
    chat_max_tokens: int = 1000

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"
