"""Bounded retry with exponential backoff for optimistic-concurrency conflicts."""

import logging
from typing import Callable, TypeVar

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from claim_lifecycle.config.settings import get_conflict_retry_config
from claim_lifecycle.lifecycle.errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Only save conflicts are retried; lifecycle errors go straight to the caller
RETRYABLE_EXCEPTIONS = (ConflictError,)


def with_conflict_retry(
    max_attempts: int | None = None,
    min_wait: float | None = None,
    max_wait: float | None = None,
    multiplier: float = 1.0,
):
    """Decorator that re-runs a load/transition/save unit when save conflicts.

    The wrapped function must reload the case itself so each attempt
    re-validates against fresh state. After the last attempt the
    ConflictError is re-raised.

    Args:
        max_attempts: Maximum number of attempts (default CLAIM_CONFLICT_MAX_ATTEMPTS).
        min_wait: Minimum wait between attempts in seconds.
        max_wait: Maximum wait between attempts in seconds.
        multiplier: Base multiplier for exponential backoff (default 1).
    """
    config = get_conflict_retry_config()
    attempts = max_attempts if max_attempts is not None else config["max_attempts"]
    lo = min_wait if min_wait is not None else config["min_wait"]
    hi = max_wait if max_wait is not None else config["max_wait"]

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @retry(
            stop=stop_after_attempt(max(1, attempts)),
            wait=wait_exponential(multiplier=multiplier, min=lo, max=hi),
            retry=retry_if_exception_type(RETRYABLE_EXCEPTIONS),
            before_sleep=before_sleep_log(logger, logging.INFO),
            reraise=True,
        )
        def wrapper(*args, **kwargs) -> T:
            return func(*args, **kwargs)

        return wrapper

    return decorator
