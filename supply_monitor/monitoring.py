"""Monitoring utilities: quota-aware retry, error tracking."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import sentry_sdk
from googleapiclient.errors import HttpError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from supply_monitor.config import Settings
from supply_monitor.errors import RemoteQuotaError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Substrings Google puts in quota / rate-limit error messages
QUOTA_SIGNATURES = (
    "Quota exceeded",
    "quota metric",
    "rateLimitExceeded",
    "RESOURCE_EXHAUSTED",
)


def is_quota_error(error: BaseException) -> bool:
    """True if the error looks like a rate-limit or quota rejection."""
    if isinstance(error, RemoteQuotaError):
        return True
    if isinstance(error, HttpError) and getattr(error.resp, "status", None) == 429:
        return True
    message = str(error)
    return any(signature in message for signature in QUOTA_SIGNATURES)


def _log_retry(max_retries: int) -> Callable[[RetryCallState], None]:
    def before_sleep(retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0
        logger.warning(
            "Quota exceeded, retrying in %.1fs (attempt %d/%d): %s",
            delay,
            retry_state.attempt_number,
            max_retries + 1,
            retry_state.outcome.exception() if retry_state.outcome else "",
        )

    return before_sleep


async def retry_with_backoff(
    fn: Callable[..., Awaitable[T]],
    *args: Any,
    max_retries: int = 3,
    base_delay: float = 1.0,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    **kwargs: Any,
) -> T:
    """
    Call an async function, retrying quota errors with exponential backoff.

    Waits base_delay * 2**attempt seconds between attempts, makes at most
    max_retries + 1 calls, and re-raises anything that is not a quota error
    (or the last quota error once the budget is spent) unchanged.
    """
    retrying = AsyncRetrying(
        retry=retry_if_exception(is_quota_error),
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=base_delay, exp_base=2),
        sleep=sleep or asyncio.sleep,
        before_sleep=_log_retry(max_retries),
        reraise=True,
    )
    return await retrying(fn, *args, **kwargs)


def setup_sentry(settings: Settings) -> None:
    """Initialize Sentry SDK if DSN is configured."""
    if settings.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment=settings.environment,
            traces_sample_rate=0.0,
            send_default_pii=False,
        )
        logger.info("Sentry initialized for environment: %s", settings.environment)


def capture_exception(error: BaseException, context: dict | None = None) -> None:
    """Capture exception to Sentry if it was initialized, and always log it."""
    if sentry_sdk.is_initialized():
        with sentry_sdk.new_scope() as scope:
            for key, value in (context or {}).items():
                scope.set_extra(key, value)
            sentry_sdk.capture_exception(error)
    logger.error(
        "error_captured",
        extra={"error_type": type(error).__name__, "error": str(error), **(context or {})},
        exc_info=error,
    )
