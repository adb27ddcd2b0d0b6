"""Fixed-delay retry helper for blocking upstream calls."""

import logging
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _always(exc: Exception) -> bool:
    return True


def retry_call(
    fn: Callable[[], T],
    *,
    retries: int = 3,
    delay: float = 5.0,
    is_retryable: Optional[Callable[[Exception], bool]] = None,
    operation: str = "operation",
) -> T:
    """Call ``fn`` once plus up to ``retries`` more times, sleeping ``delay`` between attempts.

    Exceptions rejected by ``is_retryable`` are raised immediately. Once the
    retries are exhausted the last exception is re-raised to the caller.
    """
    classifier = is_retryable or _always
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as exc:
            attempt += 1
            if not classifier(exc):
                logger.error("%s failed with a non-retryable error: %s", operation, exc)
                raise
            if attempt > retries:
                logger.error("%s failed after %d retries: %s", operation, retries, exc)
                raise
            logger.warning("Retrying %s (attempt %d/%d): %s", operation, attempt, retries, exc)
            time.sleep(delay)
