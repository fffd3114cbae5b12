"""
Exponential backoff retry for optimistic-concurrency conflicts.

Payments are not locked in-process. Two webhook deliveries for the same
payment can race, and the loser gets a ``VersionConflictError``. Re-running
the whole unit of work re-reads the payment at its new version and applies
the same change again, which is safe because ledger updates are idempotent
per interaction id. Every other error is permanent and raised immediately.
"""

import asyncio
import logging
from typing import Any, Callable

from connector.engine.errors import ConnectorError

logger = logging.getLogger("connector.retry")

MAX_RETRIES = 3
BASE_DELAY = 0.1
MAX_DELAY = 2.0


async def with_retry(
    func: Callable[..., Any],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any,
) -> Any:
    """
    Execute an async function, retrying retriable connector errors.

    Args:
        func: Async callable to execute. Must be safe to re-run from scratch.
        max_retries: Maximum number of retry attempts.

    Returns:
        The result of the function call.

    Raises:
        ConnectorError: On a permanent error or once retries are exhausted.
    """
    delay = BASE_DELAY

    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except ConnectorError as e:
            if not e.retriable:
                raise

            if attempt >= max_retries:
                logger.error("Exhausted %d retries: %s", max_retries, e)
                raise

            logger.warning(
                "Retriable error on attempt %d/%d: %s, sleeping %.2fs",
                attempt + 1,
                max_retries + 1,
                e,
                delay,
            )
            await asyncio.sleep(delay)
            delay = min(delay * 2, MAX_DELAY)
