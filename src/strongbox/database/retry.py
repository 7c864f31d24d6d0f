"""Bounded exponential-backoff retry for transient lock contention.

Table creation and the journal-mode switch on first launch can race with
filesystem-level lock acquisition on some platforms. Those calls go
through :func:`retry`; every other error propagates on the first failure.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
)

from .. import global_config as g
from .errors import TransientLockError, is_transient

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, TransientLockError) or is_transient(error)


def backoff_delay(attempt: int, base_delay: float = g.DEFAULT_RETRY_BASE_DELAY_S) -> float:
    """Return the wait after failed attempt number ``attempt`` (counted from 1)."""
    return base_delay * (2**attempt)


def retry(
    operation: Callable[[], T],
    max_attempts: int = g.DEFAULT_MAX_ATTEMPTS,
    *,
    base_delay: float = g.DEFAULT_RETRY_BASE_DELAY_S,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Invoke ``operation`` until it succeeds or the attempts run out.

    After the n-th transient failure the policy waits ``base_delay * 2**n``
    before trying again. Non-transient errors are raised immediately.

    Args:
        operation: Zero-argument callable to run.
        max_attempts: Total number of attempts, including the first one.
        base_delay: Back-off time unit in seconds (1 ms by default).
        sleep: Blocking sleep function; tests pass a recorder.

    Returns:
        Whatever ``operation`` returns.

    Raises:
        ValueError: If ``max_attempts`` is less than 1.
        TransientLockError: The final transient error, unchanged, once
            ``max_attempts`` attempts have failed.

    Logs:
        - WARNING: one line per retry with the attempt number and delay.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be >= 1, got {max_attempts}"
        raise ValueError(msg)

    def _wait(retry_state: RetryCallState) -> float:
        return backoff_delay(retry_state.attempt_number, base_delay)

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=_wait,
        retry=retry_if_exception(_is_retryable),
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    return retrying(operation)
