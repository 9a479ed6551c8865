"""Retry with exponential backoff for transient collaborator failures.

Domain errors are never retried; only the exception types passed in
``retryable_exceptions`` trigger another attempt.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import TypeVar

from swiftjobs.errors.exceptions import TransientError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_retry(
    max_retries: int = 2,
    retry_delay: float = 0.5,
    exponential_backoff: bool = True,
    retryable_exceptions: tuple[type[BaseException], ...] = (TransientError, TimeoutError, ConnectionError),
):
    """Decorator adding retry logic to an async callable.

    Args:
        max_retries: Attempts after the first one.
        retry_delay: Base delay between attempts (seconds).
        exponential_backoff: Double the delay after every failed attempt.
        retryable_exceptions: Exception types that trigger a retry.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)
                except retryable_exceptions as exc:
                    if attempt >= max_retries:
                        logger.error("%s exhausted %d retries: %s", func.__name__, max_retries, exc)
                        raise
                    delay = retry_delay * (2 ** attempt if exponential_backoff else 1)
                    logger.warning(
                        "[Retry %d/%d] %s failed: %s. Retrying in %.1fs",
                        attempt + 1, max_retries, func.__name__, exc, delay,
                    )
                    await asyncio.sleep(delay)
            raise AssertionError("unreachable")

        return wrapper

    return decorator
