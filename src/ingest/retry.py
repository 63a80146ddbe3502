"""Bounded retry combinator shared by translation and source-fetch call sites.

Wraps ``tenacity.AsyncRetrying`` with a small policy object so every call
site states the same three things: how many extra attempts, the backoff
schedule, and which errors (or results) are worth another attempt.

When the budget runs out the last outcome is handed back as-is: a final
exception is re-raised, a final unacceptable result is returned so the
caller can decide what "still unchanged" means.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and exponential backoff schedule.

    The delay before retry *n* (0-based) is ``base_delay * 2**n``,
    capped at *max_delay*.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


def _return_last_outcome(retry_state: RetryCallState) -> Any:
    """Re-raise the last exception, or return the last result."""
    return retry_state.outcome.result()


def _log_before_sleep(label: str) -> Callable[[RetryCallState], None]:
    def _before_sleep(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome.failed:
            detail = f"{type(outcome.exception()).__name__}: {outcome.exception()}"
        else:
            detail = "result not accepted"
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.info(
            "%s: attempt %d failed (%s); retrying in %.2fs",
            label, retry_state.attempt_number, detail, delay,
        )

    return _before_sleep


async def retry_call(
    fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    retry_on: tuple[type[BaseException], ...] = (),
    give_up_on: tuple[type[BaseException], ...] = (),
    retry_on_result: Callable[[T], bool] | None = None,
    label: str = "call",
) -> T:
    """Await *fn* under *policy*.

    Args:
        fn: Zero-argument callable returning an awaitable, called on
            every attempt.
        policy: Attempt budget and backoff schedule.
        retry_on: Exception types that earn another attempt.
        give_up_on: Terminal exception types. Raised immediately even when
            they also match *retry_on*.
        retry_on_result: Predicate on the returned value; True means the
            result is not acceptable and the call should be retried.
        label: Name used in retry log lines.

    Returns:
        The first acceptable result, or the last result once the budget
        is spent.

    Raises:
        The last exception when the final attempt raised, or any exception
        not covered by *retry_on*.
    """

    def _is_retryable(exc: BaseException) -> bool:
        if give_up_on and isinstance(exc, give_up_on):
            return False
        return isinstance(exc, retry_on)

    condition = retry_if_exception(_is_retryable)
    if retry_on_result is not None:
        condition = condition | retry_if_result(retry_on_result)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(multiplier=policy.base_delay, max=policy.max_delay),
        retry=condition,
        before_sleep=_log_before_sleep(label),
        retry_error_callback=_return_last_outcome,
    )

    # AsyncRetrying only awaits coroutine functions; fn may be a plain
    # callable returning an awaitable.
    async def _attempt() -> T:
        return await fn()

    return await retrying(_attempt)
