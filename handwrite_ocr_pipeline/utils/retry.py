"""Retry utilities for the Handwrite OCR Pipeline.

This module provides a reusable retry decorator with exponential backoff for
coroutine functions, used to ride out transient failures of backend calls
(rate limits, server errors, dropped connections).
"""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
import logging
from typing import Any

logger = logging.getLogger(__name__)


def retry_with_backoff(
    max_attempts: int,
    initial_delay: float,
    backoff_multiplier: float,
    max_delay: float,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    on_retry: Callable[[int, float, Exception], None] | None = None,
) -> Callable[
    [Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]
]:
    """Decorator that retries a coroutine function with exponential backoff.

    The delay between retries follows the formula:
    delay = min(initial_delay * (backoff_multiplier ** (attempt - 1)), max_delay)

    Waiting uses asyncio.sleep, so other workers keep running while one call
    backs off.

    Args:
        max_attempts: Maximum number of attempts (including the first attempt).
            Must be at least 1.
        initial_delay: Initial delay in seconds before the first retry.
            Must be greater than 0.
        backoff_multiplier: Multiplier for exponential backoff. Must be greater
            than 0.
        max_delay: Maximum delay cap in seconds. Must be greater than or equal
            to initial_delay.
        exceptions: Tuple of exception types to catch and retry on. Only
            exceptions of these types (or their subclasses) trigger retries.
        on_retry: Optional callback called before each retry attempt with the
            attempt number (1-indexed), the delay in seconds, and the exception
            that triggered the retry. If the callback raises, the exception
            propagates and stops the retry loop.

    Returns:
        Decorator function that wraps the target coroutine function.

    Raises:
        The last exception raised by the decorated function if all attempts fail.

    Example:
        >>> @retry_with_backoff(
        ...     max_attempts=3,
        ...     initial_delay=2.0,
        ...     backoff_multiplier=2.0,
        ...     max_delay=16.0,
        ...     exceptions=(errors.APIError,),
        ... )
        ... async def call_model(prompt: str):
        ...     return await client.aio.models.generate_content(...)
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
    if initial_delay <= 0:
        raise ValueError(f"initial_delay must be greater than 0, got {initial_delay}")
    if backoff_multiplier <= 0:
        raise ValueError(
            f"backoff_multiplier must be greater than 0, got {backoff_multiplier}"
        )
    if max_delay <= 0:
        raise ValueError(f"max_delay must be greater than 0, got {max_delay}")
    if max_delay < initial_delay:
        raise ValueError(
            f"max_delay ({max_delay}) must be greater than or equal to "
            f"initial_delay ({initial_delay})"
        )

    def decorator(
        func: Callable[..., Awaitable[Any]],
    ) -> Callable[..., Awaitable[Any]]:
        @wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        raise

                    delay = min(
                        initial_delay * (backoff_multiplier ** (attempt - 1)), max_delay
                    )

                    if on_retry is not None:
                        on_retry(attempt, delay, e)
                    else:
                        logger.warning(
                            f"Attempt {attempt}/{max_attempts} failed: {e}. "
                            f"Retrying in {delay:.1f}s"
                        )

                    await asyncio.sleep(delay)

        return wrapper

    return decorator
