"""Abstract base class for the object store holding raw uploaded files."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations (src/providers/object_store/):
#   LocalObjectStore  -- files under a root directory
#   HttpObjectStore   -- signed/public URLs fetched with httpx
class IObjectStoreProvider(ABC):
    """Contract for fetching the raw bytes of an uploaded document."""

    @abstractmethod
    async def fetch_bytes(self, key: str) -> bytes:
        """Return the full content stored under *key*.

        Raises
        ------
        src.utils.errors.DocumentNotFoundError
            If nothing is stored under *key*.
        src.utils.errors.ProviderUnavailableError
            If the store cannot be reached.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"local"``."""
