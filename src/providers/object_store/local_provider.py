"""Filesystem-backed object store.

Storage keys are relative paths below a root directory, e.g.
``materials/2024/lecture-01.pdf``.  Keys that would escape the root are
rejected.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from src.interfaces.object_store_provider import IObjectStoreProvider
from src.utils.errors import DocumentNotFoundError, ProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)


class LocalObjectStore(IObjectStoreProvider):
    """Reads document bytes from files below *root*."""

    def __init__(self, root: str | Path = "data/materials") -> None:
        self._root = Path(root).resolve()

    async def fetch_bytes(self, key: str) -> bytes:
        path = self._resolve(key)
        if not path.is_file():
            raise DocumentNotFoundError(
                message=f"No object stored under key '{key}'",
                provider_name=self.get_provider_name(),
            )
        try:
            data = await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise ProviderUnavailableError(
                message=f"Cannot read '{key}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.debug("object_fetched", key=key, size=len(data))
        return data

    def get_provider_name(self) -> str:
        return "local"

    def _resolve(self, key: str) -> Path:
        path = (self._root / key.lstrip("/")).resolve()
        if path != self._root and self._root not in path.parents:
            raise DocumentNotFoundError(
                message=f"Key '{key}' is outside the object store root",
                provider_name=self.get_provider_name(),
            )
        return path
