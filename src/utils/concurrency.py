"""Shared concurrency primitives for provider fan-out.

The embedding API and the vector index are shared, rate-limited external
resources.  Anything that fans out calls to them goes through
:func:`throttled_gather`, a drop-in replacement for ``asyncio.gather`` that
wraps each awaitable in a semaphore acquire/release so that at most a small
fixed number of requests are outstanding at once.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

_T = TypeVar("_T")

# Default limit when a caller does not bring its own semaphore.  Two
# outstanding requests keeps well inside OpenAI's per-minute request caps
# for the embeddings endpoint on low tiers.
_PROVIDER_SEMAPHORE = asyncio.Semaphore(2)


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore for concurrency control.  Defaults to the
        module-level ``_PROVIDER_SEMAPHORE``.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        semaphore = _PROVIDER_SEMAPHORE

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)
