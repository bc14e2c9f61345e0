"""Embedding generation with batching and per-item failure isolation.

The :class:`EmbeddingGenerator` sits between the pipeline and an
:class:`~src.interfaces.embedding_provider.IEmbeddingProvider`.  Providers
make exactly one API call per request and raise on failure; this service
adds everything a document-sized workload needs:

- **Truncation** -- inputs are cut to ``max_input_tokens`` estimated tokens
  (``max_input_tokens * 4`` characters) with a ``...`` suffix.
- **Batching** -- texts are sent in sub-batches of ``batch_size``; at most
  ``concurrency`` sub-batches are in flight at once.
- **Isolation** -- a sub-batch that fails is retried one text at a time,
  so a single bad input costs one embedding, not a hundred.
- **Alignment** -- ``BatchEmbeddingResult.embeddings[i]`` always belongs to
  ``texts[i]``; failures are ``None`` and listed in ``failed_indices``.
- **Query cache** -- single-text query embeddings are memoised in a
  ``cachetools.TTLCache`` so repeated questions skip the API.
"""

from __future__ import annotations

import asyncio
import math
import time
from typing import Any

import structlog
from cachetools import TTLCache

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.rag import BatchEmbeddingResult, EmbeddingVector, ValidationReport
from src.utils.concurrency import throttled_gather
from src.utils.errors import RAGError
from src.utils.text_normalizer import chars_for_tokens, estimate_tokens

logger = structlog.get_logger(logger_name=__name__)

_TRUNCATION_SUFFIX = "..."


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Return the cosine similarity of two vectors.

    Returns ``0.0`` when either vector has zero magnitude.

    Raises
    ------
    ValueError
        If the vectors have different dimensions.
    """
    if len(a) != len(b):
        raise ValueError(f"Vector dimensions differ: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return max(-1.0, min(1.0, dot / (norm_a * norm_b)))


class EmbeddingGenerator:
    """Embeds chunk texts in bounded, failure-isolated batches.

    Parameters
    ----------
    provider:
        Backend that turns a list of texts into vectors in one request.
    batch_size:
        Maximum number of texts per provider request.
    concurrency:
        Maximum number of provider requests in flight.
    max_input_tokens:
        Estimated-token limit per input; longer texts are truncated.
    cache_size, cache_ttl_seconds:
        Bounds of the query-embedding cache.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        batch_size: int = 100,
        concurrency: int = 2,
        max_input_tokens: int = 8000,
        cache_size: int = 256,
        cache_ttl_seconds: int = 3600,
    ) -> None:
        self._provider = provider
        self._batch_size = max(1, batch_size)
        self._concurrency = max(1, concurrency)
        self._max_input_tokens = max_input_tokens
        self._query_cache: TTLCache[str, list[float]] = TTLCache(
            maxsize=max(1, cache_size), ttl=cache_ttl_seconds
        )

    @property
    def model_name(self) -> str:
        return self._provider.get_model_name()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str, chunk_id: str = "") -> EmbeddingVector:
        """Embed a single text.

        Query embeddings (no ``chunk_id``) are served from the TTL cache
        when the same text was embedded recently.

        Raises
        ------
        RAGError
            If *text* is empty or the provider call fails.
        """
        prepared = self.truncate(text)
        if not prepared.strip():
            raise RAGError(message="Cannot embed empty text", provider_name="embedding")

        is_query = not chunk_id
        if is_query and prepared in self._query_cache:
            logger.debug("query_embedding_cache_hit", chars=len(prepared))
            return EmbeddingVector(values=self._query_cache[prepared], model=self.model_name)

        values = await self._provider.embed_single(prepared)
        if is_query:
            self._query_cache[prepared] = values
        return EmbeddingVector(chunk_id=chunk_id, values=values, model=self.model_name)

    async def embed_batch(
        self,
        texts: list[str],
        ids: list[str] | None = None,
    ) -> BatchEmbeddingResult:
        """Embed *texts*, isolating failures to the items that caused them.

        Parameters
        ----------
        texts:
            Texts to embed, usually chunk contents.
        ids:
            Optional chunk ids recorded on each vector; must align with
            *texts*.

        Returns
        -------
        BatchEmbeddingResult
            ``embeddings`` is aligned with *texts*; ``None`` marks a failure.
        """
        if ids is not None and len(ids) != len(texts):
            raise ValueError(f"ids ({len(ids)}) and texts ({len(texts)}) must align")

        start = time.monotonic()
        prepared = [self.truncate(t) for t in texts]
        embeddings: list[EmbeddingVector | None] = [None] * len(prepared)

        # Empty inputs fail locally; everything else is sent in order.
        pending = [i for i, t in enumerate(prepared) if t.strip()]
        batches = [
            pending[offset : offset + self._batch_size]
            for offset in range(0, len(pending), self._batch_size)
        ]

        semaphore = asyncio.Semaphore(self._concurrency)
        outcomes = await throttled_gather(
            [self._embed_indices(batch, prepared) for batch in batches],
            semaphore=semaphore,
            return_exceptions=False,
        )

        model = self.model_name
        for batch, outcome in zip(batches, outcomes):
            for index, values in zip(batch, outcome):
                if values is not None:
                    embeddings[index] = EmbeddingVector(
                        chunk_id=ids[index] if ids is not None else "",
                        values=values,
                        model=model,
                    )

        failed = [i for i, e in enumerate(embeddings) if e is None]
        elapsed = time.monotonic() - start
        result = BatchEmbeddingResult(
            embeddings=embeddings,
            success_count=len(embeddings) - len(failed),
            failure_count=len(failed),
            failed_indices=failed,
            total_tokens=sum(estimate_tokens(t) for t in prepared),
            processing_time=elapsed,
        )
        logger.info(
            "embedding_batch_complete",
            model=model,
            texts=len(texts),
            batches=len(batches),
            succeeded=result.success_count,
            failed=result.failure_count,
            time_s=round(elapsed, 3),
        )
        return result

    def truncate(self, text: str) -> str:
        """Cut *text* to the estimated-token input limit, adding ``...``."""
        max_chars = chars_for_tokens(self._max_input_tokens)
        if len(text) <= max_chars:
            return text
        return text[: max_chars - len(_TRUNCATION_SUFFIX)] + _TRUNCATION_SUFFIX

    def validate_embedding(self, values: list[float]) -> ValidationReport:
        """Check a vector's dimension and values before it is indexed."""
        issues: list[str] = []
        if not values:
            issues.append("Embedding is empty")
        else:
            expected = self._provider.get_dimension()
            if len(values) != expected:
                issues.append(f"Dimension mismatch: expected {expected}, got {len(values)}")
            if not all(math.isfinite(v) for v in values):
                issues.append("Embedding contains non-finite values")
            elif all(v == 0.0 for v in values):
                issues.append("Embedding is all zeros")
        return ValidationReport(is_valid=not issues, issues=issues)

    def get_model_info(self) -> dict[str, Any]:
        return {
            "model": self.model_name,
            "provider": self._provider.get_provider_name(),
            "dimension": self._provider.get_dimension(),
            "max_input_tokens": self._max_input_tokens,
            "batch_size": self._batch_size,
            "concurrency": self._concurrency,
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _embed_indices(
        self, indices: list[int], texts: list[str]
    ) -> list[list[float] | None]:
        """Embed one sub-batch, falling back to single requests on failure."""
        batch_texts = [texts[i] for i in indices]
        try:
            vectors = await self._provider.embed(batch_texts)
            if len(vectors) != len(batch_texts):
                raise RAGError(
                    message=f"Provider returned {len(vectors)} vectors for {len(batch_texts)} texts",
                    provider_name=self._provider.get_provider_name(),
                )
            return list(vectors)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "embedding_batch_failed_retrying_items",
                size=len(batch_texts),
                error=str(exc),
            )

        results: list[list[float] | None] = []
        for index, text in zip(indices, batch_texts):
            try:
                results.append(await self._provider.embed_single(text))
            except Exception as exc:  # noqa: BLE001
                logger.warning("embedding_item_failed", index=index, error=str(exc))
                results.append(None)
        return results
