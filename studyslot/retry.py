"""Exponential backoff retry for optimistic-concurrency conflicts."""

from __future__ import annotations

import random
import time
from typing import TYPE_CHECKING, TypeVar

import structlog

from studyslot.metrics import retry_attempts_total, retry_exhausted_total

if TYPE_CHECKING:
    from collections.abc import Callable

logger = structlog.get_logger()

T = TypeVar("T")


class RetryExhaustedError(Exception):
    """All retry attempts failed."""


def with_retry(
    fn: Callable[[], T],
    max_retries: int = 3,
    base_delay: float = 0.01,
    max_delay: float = 1.0,
    jitter: bool = True,
    retryable: tuple[type[Exception], ...] = (Exception,),
    label: str | None = None,
) -> T:
    """Execute *fn* with exponential backoff retries.

    Only exceptions listed in *retryable* trigger another attempt; anything else
    propagates immediately. Full jitter (delay * random(0.5, 1.5)) spreads out
    concurrent writers that lost the same race.

    Raises RetryExhaustedError after *max_retries* consecutive failures.
    """
    last_exc: Exception | None = None
    fn_label = label or getattr(fn, "__name__", "fn")
    for attempt in range(max_retries + 1):
        try:
            return fn()
        except retryable as exc:
            last_exc = exc
            if attempt == max_retries:
                break
            retry_attempts_total.labels(fn_name=fn_label).inc()
            delay = _backoff(attempt, base_delay, max_delay, jitter)
            logger.debug(
                "retry_scheduled",
                attempt=attempt + 1,
                max_retries=max_retries,
                fn=fn_label,
                delay_s=round(delay, 4),
                error=str(exc),
            )
            time.sleep(delay)
    retry_exhausted_total.labels(fn_name=fn_label).inc()
    raise RetryExhaustedError(f"Failed after {max_retries + 1} attempts") from last_exc


def _backoff(attempt: int, base_delay: float, max_delay: float, jitter: bool) -> float:
    delay = min(base_delay * (2**attempt), max_delay)
    if jitter:
        delay *= 0.5 + random.random()
    return delay
