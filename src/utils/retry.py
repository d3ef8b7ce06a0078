"""Retry policy for calls to the text-generation API, built on tenacity."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import anthropic
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.utils.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable

logger = get_logger(__name__)

RETRYABLE_STATUS_CODES = frozenset({408, 409, 429})


def is_transient_error(exc: BaseException) -> bool:
    """True for dropped connections, timeouts, rate limits and 5xx responses.

    ``APITimeoutError`` is a subclass of ``APIConnectionError``.
    """
    if isinstance(exc, (ConnectionError, TimeoutError, anthropic.APIConnectionError)):
        return True
    if isinstance(exc, anthropic.APIStatusError):
        return exc.status_code in RETRYABLE_STATUS_CODES or exc.status_code >= 500
    return False


def retry_transient(
    operation: str,
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 8,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Retry ``operation`` on transient errors with exponential backoff.

    The last error is re-raised once attempts run out. Notification sinks
    are never wrapped with this.
    """

    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "retrying_operation",
            operation=operation,
            attempt=retry_state.attempt_number,
            max_attempts=max_attempts,
            error=str(error),
        )

    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_retry,
        reraise=True,
    )
