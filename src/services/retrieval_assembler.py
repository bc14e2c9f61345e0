"""Query-time retrieval: embed the question, search one document's chunks.

Retrieval is end-user facing, so it must never fail a chat turn.  Every
failure (query embedding, index search, timeout) is logged as
``retrieval_degraded`` and turned into an empty result, which the chat
layer answers without grounding.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

import structlog

from src.interfaces.vector_store_provider import IVectorStoreProvider
from src.models.rag import RetrievalResult
from src.services.embedding_generator import EmbeddingGenerator

logger = structlog.get_logger(logger_name=__name__)


class RetrievalAssembler:
    """Returns the chunks of one document most similar to a query.

    Parameters
    ----------
    embedding_generator:
        Embeds the query (cached for repeated questions).
    vector_store:
        Index searched with a mandatory ``document_id`` filter.
    top_k:
        Default number of results.
    timeout_seconds:
        Upper bound on embed + search; exceeding it degrades to ``[]``.
    """

    def __init__(
        self,
        embedding_generator: EmbeddingGenerator,
        vector_store: IVectorStoreProvider,
        top_k: int = 5,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._embedding_generator = embedding_generator
        self._vector_store = vector_store
        self._top_k = top_k
        self._timeout = timeout_seconds

    async def assemble(
        self,
        document_id: str,
        query: str,
        top_k: int | None = None,
        filters: dict[str, Any] | None = None,
    ) -> list[RetrievalResult]:
        """Return up to *top_k* chunks of *document_id* relevant to *query*.

        Content is returned untruncated.  Never raises.
        """
        if not query.strip():
            return []

        k = self._top_k if top_k is None else top_k
        start = time.monotonic()
        try:
            results = await asyncio.wait_for(
                self._search(document_id, query, k, filters), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                "retrieval_degraded",
                document_id=document_id,
                reason="timeout",
                timeout_s=self._timeout,
            )
            return []
        except Exception as exc:
            logger.warning(
                "retrieval_degraded",
                document_id=document_id,
                reason=type(exc).__name__,
                error=str(exc),
            )
            return []

        logger.info(
            "retrieval_complete",
            document_id=document_id,
            results=len(results),
            top_score=round(results[0].similarity_score, 4) if results else None,
            time_s=round(time.monotonic() - start, 3),
        )
        return results

    async def _search(
        self,
        document_id: str,
        query: str,
        top_k: int,
        filters: dict[str, Any] | None,
    ) -> list[RetrievalResult]:
        query_vector = await self._embedding_generator.embed(query)
        return await self._vector_store.search(
            query_vector.values, document_id=document_id, top_k=top_k, filters=filters
        )
