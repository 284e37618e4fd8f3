"""Retry logic with exponential backoff for re-issuing failed read batches."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from defi_positions.core.errors import BatchExecutionError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryConfig:
    """
    Configuration for retry behavior.

    Parameters
    ----------
    max_retries : int
        Maximum number of retry attempts
    base_delay : float
        Initial delay in seconds before first retry
    max_delay : float
        Maximum delay between retries
    exponential_base : float
        Base for exponential backoff calculation

    """

    def __init__(
        self,
        max_retries: int = 2,
        base_delay: float = 0.5,
        max_delay: float = 10.0,
        exponential_base: float = 2.0,
    ) -> None:
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base

    @classmethod
    def from_settings(cls, settings: Any) -> "RetryConfig":
        """Build from a ``RetrySettings`` model (or any object with the same attributes)."""
        return cls(
            max_retries=settings.max_retries,
            base_delay=settings.base_delay,
            max_delay=settings.max_delay,
            exponential_base=settings.exponential_base,
        )

    def get_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given retry attempt using exponential backoff.

        Parameters
        ----------
        attempt : int
            Current attempt number (0-indexed)

        Returns
        -------
        float
            Delay in seconds

        """
        delay = self.base_delay * (self.exponential_base**attempt)
        return min(delay, self.max_delay)


async def retry_async(
    func: Callable[[], Awaitable[T]],
    config: RetryConfig | None = None,
    retry_on: tuple[type[BaseException], ...] = (BatchExecutionError,),
) -> T:
    """
    Await ``func()`` and re-run it after a backoff delay when it raises a retryable error.

    Parameters
    ----------
    func : Callable[[], Awaitable[T]]
        Zero-argument coroutine factory; called once per attempt
    config : RetryConfig | None
        Retry configuration. Uses default config if None.
    retry_on : tuple[type[BaseException], ...]
        Exception types that trigger a retry

    Returns
    -------
    T
        Result of the first successful attempt

    Raises
    ------
    BaseException
        The last error once all attempts are exhausted, or any non-retryable error

    """
    config = config or RetryConfig()

    for attempt in range(config.max_retries + 1):
        try:
            return await func()
        except retry_on as e:
            # Don't retry on last attempt
            if attempt == config.max_retries:
                raise

            delay = config.get_delay(attempt)
            logger.debug(
                "Attempt %d/%d failed (%s), retrying in %.1fs...",
                attempt + 1,
                config.max_retries + 1,
                e,
                delay,
            )
            await asyncio.sleep(delay)

    msg = "unreachable"
    raise AssertionError(msg)
