"""Retry with exponential backoff for flaky network calls."""

import time
from typing import Callable, TypeVar

from loguru import logger

T = TypeVar("T")


def backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float = 30.0,
) -> float:
    """Delay before retry number `attempt` (0-based), capped at max_delay."""
    return min(base_delay * (exponential_base**attempt), max_delay)


def retry_with_backoff(
    func: Callable[[], T],
    max_retries: int = 2,
    base_delay: float = 1.0,
    exponential_base: float = 2.0,
    max_delay: float = 30.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    label: str = "operation",
) -> T:
    """Call func, retrying failures of the given types with backoff.

    Args:
        func: Zero-argument callable to execute
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry, in seconds
        exponential_base: Growth factor between retries
        max_delay: Upper bound for a single delay
        retry_on: Exception types worth retrying; anything else propagates
        label: Short description used in log messages

    Returns:
        Result of the first successful call

    Raises:
        The last exception once all attempts have failed
    """
    attempts = max_retries + 1

    for attempt in range(attempts):
        try:
            return func()
        except retry_on as e:
            if attempt == attempts - 1:
                logger.warning(f"{label} failed after {attempts} attempt(s): {e}")
                raise

            delay = backoff_delay(attempt, base_delay, exponential_base, max_delay)
            logger.debug(
                f"{label} attempt {attempt + 1}/{attempts} failed: {e}. "
                f"Retrying in {delay:.2f}s"
            )
            time.sleep(delay)

    raise RuntimeError(f"{label}: no attempts made")
