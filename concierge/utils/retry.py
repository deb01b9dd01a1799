"""Retry with exponential backoff for transient transport failures."""
from __future__ import annotations

import logging
import os
import time
from typing import Callable, Tuple, Type, TypeVar

T = TypeVar("T")

logger = logging.getLogger("concierge")


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (ValueError, TypeError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (ValueError, TypeError):
        return default


RETRY_ATTEMPTS = _env_int("RETRY_ATTEMPTS", 3)
RETRY_BASE_DELAY = _env_float("RETRY_BASE_DELAY", 1.0)


def call_with_retry(
    fn: Callable[[], T],
    *,
    retry_on: Tuple[Type[BaseException], ...],
    attempts: int | None = None,
    base_delay: float | None = None,
    label: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``fn``; on a ``retry_on`` error wait base_delay * 2**attempt and try again.

    The last error is re-raised once attempts are exhausted. Errors outside
    ``retry_on`` propagate immediately.
    """
    attempts = RETRY_ATTEMPTS if attempts is None else attempts
    base_delay = RETRY_BASE_DELAY if base_delay is None else base_delay
    for attempt in range(attempts):
        try:
            return fn()
        except retry_on as exc:
            if attempt == attempts - 1:
                logger.warning({
                    "function": "call_with_retry",
                    "operation": label,
                    "status": "exhausted",
                    "attempts": attempts,
                    "error": type(exc).__name__,
                })
                raise
            delay = base_delay * (2 ** attempt)
            logger.info({
                "function": "call_with_retry",
                "operation": label,
                "status": "retrying",
                "attempt": attempt + 1,
                "delay_s": delay,
            })
            sleep(delay)
    raise RuntimeError("Max retries exceeded")
