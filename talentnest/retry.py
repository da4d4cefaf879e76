"""Retry with exponential backoff for remote calls."""
from __future__ import annotations

import functools
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Tuple, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        delay = min(self.base_delay * (self.backoff_factor ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random()
        return delay


def call_with_retry(
    fn: Callable,
    *args: Any,
    policy: RetryPolicy = RetryPolicy(),
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] | None = None,
    **kwargs: Any,
) -> Any:
    """Call *fn* until it succeeds or *policy* runs out of attempts.

    The last exception is re-raised unchanged so callers can wrap it in
    their own error type.
    """
    name = getattr(fn, "__qualname__", repr(fn))
    sleep = sleep or time.sleep
    attempts = max(1, policy.max_attempts)
    for attempt in range(1, attempts + 1):
        try:
            return fn(*args, **kwargs)
        except retryable as exc:
            if attempt == attempts:
                logger.error("%s failed after %d attempts: %s", name, attempts, exc)
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s attempt %d/%d failed (%s), retrying in %.1fs",
                name,
                attempt,
                attempts,
                exc,
                delay,
            )
            sleep(delay)
    raise AssertionError("unreachable")


def retry(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
) -> Callable:
    """Decorator form of :func:`call_with_retry` with a fixed policy."""
    policy = RetryPolicy(
        max_attempts=max_attempts,
        base_delay=base_delay,
        max_delay=max_delay,
        backoff_factor=backoff_factor,
        jitter=jitter,
    )

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return call_with_retry(fn, *args, policy=policy, retryable=retryable, **kwargs)

        return wrapper

    return decorator
