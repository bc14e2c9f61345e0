"""HTTP object store for signed or public document URLs.

A storage key is either an absolute ``http(s)://`` URL (e.g. a pre-signed
download link) or a path joined onto ``base_url``.  The ``httpx.AsyncClient``
is injected for testability; ``main.py`` builds it with a 60 s timeout.
"""

from __future__ import annotations

import httpx
import structlog

from src.interfaces.object_store_provider import IObjectStoreProvider
from src.utils.errors import DocumentNotFoundError, ProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_USER_AGENT = "studyRAG/0.1.0"


class HttpObjectStore(IObjectStoreProvider):
    """Downloads document bytes over HTTP(S)."""

    def __init__(self, http_client: httpx.AsyncClient, base_url: str = "") -> None:
        self._http = http_client
        self._base_url = base_url.rstrip("/")

    async def fetch_bytes(self, key: str) -> bytes:
        url = self.resolve_url(key)
        try:
            response = await self._http.get(
                url, headers={"User-Agent": _USER_AGENT}, follow_redirects=True
            )
        except httpx.HTTPError as exc:
            logger.warning("object_download_failed", url=url, error=str(exc))
            raise ProviderUnavailableError(
                message=f"Download of '{key}' failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code in (403, 404):
            raise DocumentNotFoundError(
                message=f"Object '{key}' not found (HTTP {response.status_code})",
                provider_name=self.get_provider_name(),
            )
        if response.status_code >= 400:
            raise ProviderUnavailableError(
                message=f"Download of '{key}' failed with HTTP {response.status_code}",
                provider_name=self.get_provider_name(),
            )

        data = response.content
        logger.info("object_downloaded", url=url, size=len(data))
        return data

    def resolve_url(self, key: str) -> str:
        if key.startswith(("http://", "https://")):
            return key
        if not self._base_url:
            raise DocumentNotFoundError(
                message=f"Key '{key}' is not a URL and no base URL is configured",
                provider_name=self.get_provider_name(),
            )
        return f"{self._base_url}/{key.lstrip('/')}"

    def get_provider_name(self) -> str:
        return "http"
