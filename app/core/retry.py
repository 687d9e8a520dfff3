"""
Caller-side retry policy for catalog calls.

The catalog client never retries on its own. Routes and scripts that want
resilience wrap the call here: network failures, timeouts and IGDB 429s are
retried with exponential backoff, everything else (missing credentials,
malformed payloads, other upstream statuses) surfaces immediately.

Usage:
    result = await call_with_backoff(orchestrator.sync, request)
"""
from typing import Any, Awaitable, Callable, Optional, TypeVar

from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.core.logging import get_logger
from app.services.catalog.exceptions import TransportError, UpstreamError

logger = get_logger(__name__)

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    """Transient catalog failures only."""
    if isinstance(exc, TransportError):
        return True
    if isinstance(exc, UpstreamError):
        return exc.retryable
    return False


def _log_retry(retry_state) -> None:
    exc = retry_state.outcome.exception()
    logger.warning(
        f"Catalog call failed (attempt {retry_state.attempt_number}), retrying: {exc}"
    )


async def call_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args: Any,
    attempts: Optional[int] = None,
    max_wait: Optional[float] = None,
    wait=None,
    **kwargs: Any,
) -> T:
    """
    Await ``func(*args, **kwargs)``, retrying transient catalog failures.

    Args:
        func: Coroutine function to call
        attempts: Total attempts (defaults to SYNC_RETRY_ATTEMPTS)
        max_wait: Backoff ceiling in seconds (defaults to SYNC_RETRY_MAX_WAIT)
        wait: tenacity wait strategy override (tests pass ``wait_none()``)

    Returns:
        Whatever ``func`` returns

    Raises:
        The last exception once attempts are exhausted, or the first
        non-retryable one
    """
    from app.core.config import settings

    attempts = attempts or settings.SYNC_RETRY_ATTEMPTS
    max_wait = max_wait if max_wait is not None else settings.SYNC_RETRY_MAX_WAIT

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait or wait_exponential(multiplier=1, min=1, max=max_wait),
        retry=retry_if_exception(is_retryable),
        before_sleep=_log_retry,
        reraise=True,
    ):
        with attempt:
            return await func(*args, **kwargs)
