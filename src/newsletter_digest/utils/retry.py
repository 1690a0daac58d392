"""
指数退避重试
Bounded retry with exponential backoff.

Both the embedding batches and every text-generation call go through
``with_retry``: a fixed number of attempts, with the delay doubling after
each failure. The last exception is re-raised once attempts run out.
"""

import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0  # seconds


def with_retry(
    fn: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "call",
) -> T:
    """
    Call ``fn`` until it succeeds or ``max_retries`` attempts have failed.

    The delay before attempt ``n + 1`` is ``base_delay * 2 ** (n - 1)``; no
    delay follows the final attempt.

    Args:
        fn: Zero-argument callable to invoke
        max_retries: Total attempt cap (at least 1)
        base_delay: Delay in seconds after the first failure
        sleep: Sleep function, injectable for tests
        description: Label used in log messages

    Returns:
        Whatever ``fn`` returns on the first successful attempt

    Raises:
        Exception: The exception raised by the last failed attempt

    Examples:
        >>> with_retry(lambda: 42)
        42
    """
    attempts = max(1, int(max_retries))

    for attempt in range(attempts):
        try:
            return fn()
        except Exception as e:
            if attempt == attempts - 1:
                logger.error(f"{description} failed after {attempts} attempts: {e}")
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                f"{description} failed (attempt {attempt + 1}/{attempts}): {e}; "
                f"retrying in {delay:.1f}s"
            )
            sleep(delay)

    raise RuntimeError(f"{description}: no attempts were made")
