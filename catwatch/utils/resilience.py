"""Catwatch — Resilience Utilities.

Bounded retry for the two network edges of the pipeline (listing fetch
and Telegram delivery). Both use the same contract: one initial attempt,
at most `retries` further attempts after a fixed backoff, and only for
errors the caller classifies as transient.

Usage:
    html = await call_with_retry(
        fetch_once, url,
        retries=1, backoff_seconds=2.0,
        should_retry=lambda e: isinstance(e, FetchError) and e.is_transient,
        label="listing page 1",
    )
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

from catwatch.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    retries: int = 1,
    backoff_seconds: float = 2.0,
    should_retry: Callable[[BaseException], bool] = lambda e: True,
    label: str = "",
    **kwargs: Any,
) -> T:
    """Await func(*args, **kwargs), retrying transient failures.

    Args:
        func: Async callable to execute.
        *args: Positional arguments for func.
        retries: Extra attempts allowed after the first one.
        backoff_seconds: Fixed pause before every retry.
        should_retry: Predicate deciding whether an error is worth retrying.
        label: Human-readable name of the operation, for logs.
        **kwargs: Keyword arguments for func.

    Returns:
        The result of the first successful attempt.

    Raises:
        Exception: The last error once attempts are exhausted, or the
            first error that should_retry rejects.
    """
    max_attempts = 1 + max(0, retries)
    name = label or getattr(func, "__name__", "call")
    attempt = 0

    while True:
        attempt += 1
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if attempt >= max_attempts or not should_retry(e):
                if attempt > 1:
                    logger.warning(
                        "%s failed after %d attempts: %s", name, attempt, e,
                    )
                raise
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                name, attempt, max_attempts, backoff_seconds, e,
            )
            if backoff_seconds > 0:
                await asyncio.sleep(backoff_seconds)
