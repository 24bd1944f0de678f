"""
Retry with exponential backoff for calls to external services
"""
import asyncio
import functools
import inspect
import time
from typing import Any, Callable, Optional, TypeVar

from pairmatch.core.exceptions import RateLimitedError
from pairmatch.core.logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)

T = TypeVar("T")


def is_rate_limited(exc: BaseException) -> bool:
    """Only 429 Too Many Requests is worth another attempt"""
    return isinstance(exc, RateLimitedError)


def compute_backoff_delay(
    attempt: int,
    base_delay: float,
    multiplier: float,
    max_delay: Optional[float] = None,
) -> float:
    """
    Delay to wait after the given (1-based) failed attempt.

    Args:
        attempt: Number of the attempt that just failed
        base_delay: Delay after the first failure, in seconds
        multiplier: Growth factor between consecutive delays
        max_delay: Optional upper bound

    Returns:
        Delay in seconds
    """
    delay = base_delay * (multiplier ** (attempt - 1))
    if max_delay is not None:
        delay = min(delay, max_delay)
    return delay


def retry_with_backoff(
    *,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    multiplier: float = 2.0,
    retry_if: Callable[[BaseException], bool] = is_rate_limited,
    max_delay: Optional[float] = None,
    sleep: Optional[Callable[[float], Any]] = None,
):
    """
    Decorate a sync or async callable so that failures accepted by `retry_if`
    are retried up to `max_attempts` total attempts.

    Any other exception, or the last retryable one, propagates unchanged.
    `sleep` replaces `time.sleep` / `asyncio.sleep` (it may return an awaitable).
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    def decorator(fn: Callable[..., T]) -> Callable[..., T]:
        name = getattr(fn, "__qualname__", repr(fn))

        def _log_retry(attempt: int, delay: float, exc: BaseException):
            logger.warning(
                f"{name} failed on attempt {attempt}/{max_attempts}, retrying in {delay:.2f}s",
                extra={
                    "attempt": attempt,
                    "max_attempts": max_attempts,
                    "delay_seconds": delay,
                    "error_type": type(exc).__name__,
                },
            )

        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                attempt = 1
                while True:
                    try:
                        return await fn(*args, **kwargs)
                    except Exception as exc:
                        if attempt >= max_attempts or not retry_if(exc):
                            raise
                        delay = compute_backoff_delay(attempt, base_delay, multiplier, max_delay)
                        _log_retry(attempt, delay, exc)
                        result = (sleep or asyncio.sleep)(delay)
                        if inspect.isawaitable(result):
                            await result
                        attempt += 1

            return async_wrapper

        @functools.wraps(fn)
        def sync_wrapper(*args, **kwargs):
            attempt = 1
            while True:
                try:
                    return fn(*args, **kwargs)
                except Exception as exc:
                    if attempt >= max_attempts or not retry_if(exc):
                        raise
                    delay = compute_backoff_delay(attempt, base_delay, multiplier, max_delay)
                    _log_retry(attempt, delay, exc)
                    (sleep or time.sleep)(delay)
                    attempt += 1

        return sync_wrapper

    return decorator
