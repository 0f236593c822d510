#!/usr/bin/env python3
# CUI // SP-CTI
"""ssm-testkit Resilience — Bounded Polling.

Calls a function until it returns, the attempt budget runs out, or it raises
an error that is not worth retrying. The delay between attempts is fixed;
there is no backoff.

Usage:
    from ssm_testkit.resilience.retry import do_with_retry

    value = do_with_retry(
        "Waiting for i-0abc to register", max_attempts=30, delay=2.0,
        func=lambda: check_inventory("i-0abc"),
    )
"""

import logging
import time
from datetime import timedelta
from typing import Callable, Optional, Sequence, Type, TypeVar, Union

from ssm_testkit.resilience.errors import RetryExhaustedError

logger = logging.getLogger("ssm_testkit.resilience.retry")

T = TypeVar("T")


def to_seconds(value: Union[int, float, timedelta]) -> float:
    """Normalize a duration given as seconds or a timedelta."""
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def attempts_for_timeout(timeout: Union[int, float, timedelta],
                         interval: Union[int, float, timedelta]) -> int:
    """Number of attempts that fit in ``timeout`` at a fixed ``interval``.

    Truncates, so a 5s timeout at a 2s interval gives 2 attempts.
    """
    interval_s = to_seconds(interval)
    if interval_s <= 0:
        raise ValueError("interval must be positive")
    return int(to_seconds(timeout) // interval_s)


def _is_retryable(exc: BaseException, retryable: tuple) -> bool:
    if not isinstance(exc, retryable):
        return False
    # Errors from our own hierarchy say whether another attempt can help.
    return getattr(exc, "retryable", True) is not False


def do_with_retry(
    description: str,
    max_attempts: int,
    delay: Union[int, float, timedelta],
    func: Callable[[], T],
    retryable_exceptions: Sequence[Type[BaseException]] = (Exception,),
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
) -> T:
    """Run ``func`` until it returns, retrying failures with a fixed delay.

    Args:
        description: Human-readable label used in logs and the final error.
        max_attempts: Total calls to ``func`` allowed. Values below 1 still allow
            exactly one call.
        delay: Seconds (or timedelta) to sleep between attempts.
        func: Zero-argument callable. Returning means success; raising
            means the attempt failed.
        retryable_exceptions: Exception types that trigger another attempt.
            Anything else propagates at once, as does any exception whose
            ``retryable`` attribute is False.
        on_retry: Optional callback(attempt, exc) invoked before each sleep.

    Returns:
        The value returned by the first successful call.

    Raises:
        RetryExhaustedError: every allowed attempt failed with a retryable error.
    """
    delay_s = to_seconds(delay)
    if delay_s < 0:
        raise ValueError("delay must be non-negative")

    attempts = max(1, int(max_attempts))
    retryable = tuple(retryable_exceptions)
    last_exc: Optional[BaseException] = None

    for attempt in range(attempts):
        logger.debug("%s (attempt %d/%d)", description, attempt + 1, attempts)
        try:
            return func()
        except Exception as exc:
            if not _is_retryable(exc, retryable):
                raise
            last_exc = exc

        if attempt + 1 < attempts:
            logger.warning(
                "%s returned an error: %s. Sleeping for %.1fs and will try again.",
                description, last_exc, delay_s,
            )
            if on_retry:
                on_retry(attempt, last_exc)
            time.sleep(delay_s)

    logger.error("%s still failing after %d attempt(s): %s",
                 description, attempts, last_exc)
    raise RetryExhaustedError(description, attempts, last_exc) from last_exc
