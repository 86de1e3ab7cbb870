"""Exponential backoff for transient generative-AI failures."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.core.exceptions import (
    AIServiceUnavailableError,
    AnalysisError,
    AppException,
)

T = TypeVar("T")

logger = structlog.get_logger()

TRANSIENT_STATUS_CODES = frozenset({503})
TRANSIENT_MESSAGE_MARKERS = ("503", "overloaded", "unavailable")


def _status_code(exc: BaseException) -> int | None:
    """HTTP status exposed by the client exception, if any."""
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    return None


def is_transient_ai_error(exc: BaseException) -> bool:
    """Decide whether an AI call failure is worth retrying.

    A structured status code wins when the client exposes one. Otherwise the
    message is searched (case-insensitively) for overload markers, which is
    the only signal some SDK wrappers keep.
    """
    status = _status_code(exc)
    if status is not None:
        return status in TRANSIENT_STATUS_CODES
    message = str(exc).lower()
    return any(marker in message for marker in TRANSIENT_MESSAGE_MARKERS)


async def _sleep(seconds: float) -> None:
    await asyncio.sleep(seconds)


async def retry_ai_call(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int | None = None,
    initial_delay_ms: int | None = None,
    max_delay_ms: int | None = None,
    backoff_multiplier: float | None = None,
) -> T:
    """Await ``fn()``, retrying transient failures with exponential backoff.

    The delay before retry ``n`` (zero-based) is
    ``min(initial_delay_ms * backoff_multiplier ** n, max_delay_ms)``.
    Non-transient errors, and the last transient one once ``max_retries`` is
    spent, propagate unchanged. Unset options fall back to ``settings.retry``.
    """
    policy = settings.retry
    if max_retries is None:
        max_retries = policy.max_retries
    if initial_delay_ms is None:
        initial_delay_ms = policy.initial_delay_ms
    if max_delay_ms is None:
        max_delay_ms = policy.max_delay_ms
    if backoff_multiplier is None:
        backoff_multiplier = policy.backoff_multiplier

    total_attempts = max_retries + 1

    def _log_retry(retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "Transient AI error, retrying",
            attempt=retry_state.attempt_number,
            max_attempts=total_attempts,
            delay_ms=round(delay * 1000),
            error=str(error),
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(total_attempts),
        wait=wait_exponential(
            multiplier=initial_delay_ms / 1000,
            exp_base=backoff_multiplier,
            max=max_delay_ms / 1000,
        ),
        retry=retry_if_exception(is_transient_ai_error),
        before_sleep=_log_retry,
        sleep=_sleep,
        reraise=True,
    )
    # tenacity only awaits coroutine functions; callers pass plain lambdas.
    async def _attempt() -> T:
        return await fn()

    return await retrying(_attempt)


def ai_error_to_app_exception(exc: Exception) -> AppException:
    """Map a failed AI call to the error the API reports.

    Transient failures that survived every retry become a 503 asking the
    user to try again; anything else is a 502.
    """
    if isinstance(exc, AppException):
        return exc
    if is_transient_ai_error(exc):
        return AIServiceUnavailableError()
    return AnalysisError(str(exc) or exc.__class__.__name__)
