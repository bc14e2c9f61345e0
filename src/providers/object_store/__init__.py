"""Object store implementations that serve raw uploaded document bytes.

    LocalObjectStore -- files below a root directory (OBJECT_STORE_ROOT).
    HttpObjectStore  -- keys resolved against OBJECT_STORE_BASE_URL, or
                       absolute signed/public URLs, fetched with httpx.
"""

from src.providers.object_store.http_provider import HttpObjectStore
from src.providers.object_store.local_provider import LocalObjectStore

__all__ = ["HttpObjectStore", "LocalObjectStore"]
