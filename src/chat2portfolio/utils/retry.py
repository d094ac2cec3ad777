"""Caller-level retry policy for generator calls."""

import functools
import time
from typing import Callable

import structlog

from chat2portfolio.schemas.envelopes import GenerationResult

logger = structlog.get_logger(__name__)


def with_retry(max_retries: int = 0, delay_seconds: float = 2.0):
    """
    Decorator: repeat a generator call while it ends in ``provider_error``.

    Invalid answers are never retried: the generator did answer, and asking
    again is a cost decision the caller has not made. With ``max_retries=0``
    the call runs exactly once.

    Usage:
        request = with_retry(max_retries=2)(orchestrator.request_chat_turn)
        result = request(history, profile)
    """

    def decorator(func: Callable[..., GenerationResult]) -> Callable[..., GenerationResult]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> GenerationResult:
            result = func(*args, **kwargs)

            for attempt in range(max_retries):
                if result.status != "provider_error":
                    break
                logger.warning(
                    "Generator unavailable, retrying",
                    function=func.__name__,
                    attempt=attempt + 1,
                    max_retries=max_retries,
                    error=result.reason,
                    delay_seconds=delay_seconds,
                )
                time.sleep(delay_seconds)
                result = func(*args, **kwargs)

            if result.status == "provider_error" and max_retries:
                logger.error(
                    "All attempts failed",
                    function=func.__name__,
                    total_attempts=max_retries + 1,
                    error=result.reason,
                )
            return result

        return wrapper

    return decorator
