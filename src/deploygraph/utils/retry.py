"""Retry policy for provider calls."""

import logging
from typing import Callable, Optional, TypeVar
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from .errors import RetryableProviderError
from .logging import get_logger

logger = get_logger("utils.retry")

T = TypeVar("T")


def build_retrying(max_attempts: int = 4, backoff_multiplier: float = 1.0, backoff_max: float = 30.0) -> Retrying:
    """Retry RetryableProviderError with exponential backoff; anything else propagates at once."""
    return Retrying(
        retry=retry_if_exception_type(RetryableProviderError),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=backoff_multiplier, max=backoff_max),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def call_with_retry(func: Callable[[], T], retrying: Optional[Retrying] = None) -> T:
    """Run func under a retry policy (a fresh copy, so statistics are per call)."""
    retrying = (retrying or build_retrying()).copy()
    return retrying(func)
