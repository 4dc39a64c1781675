from __future__ import annotations

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from sams_auth.core.exceptions import StoreUnavailableError


def with_retry(max_retries: int = 3, backoff_factor: float = 0.5):
    """Exponential backoff retry decorator for store connectivity checks.

    Only ``StoreUnavailableError`` is retried; a missing schema or bad
    configuration fails on the first attempt.
    """
    return retry(
        retry=retry_if_exception_type(StoreUnavailableError),
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=backoff_factor, min=backoff_factor, max=30),
        reraise=True,
    )
