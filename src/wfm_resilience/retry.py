from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    stop_never,
    wait_exponential_jitter,
)
from tenacity.retry import retry_base

from wfm_resilience.circuit_breaker import CircuitBreaker, CircuitOpenError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryBackoffPolicy:
    """Configuration for retry attempt count and backoff boundaries."""

    attempts: int | None
    min_seconds: float
    max_seconds: float

    def __post_init__(self) -> None:
        if self.attempts is not None and self.attempts < 1:
            raise ValueError("attempts must be >= 1 when provided")
        if self.min_seconds < 0:
            raise ValueError("min_seconds must be >= 0")
        if self.max_seconds < 0:
            raise ValueError("max_seconds must be >= 0")
        if self.max_seconds < self.min_seconds:
            raise ValueError("max_seconds must be >= min_seconds")


def retry_unless_circuit_open(
    *exception_types: type[BaseException],
) -> retry_base:
    """Retry on ``exception_types`` but never on ``CircuitOpenError``.

    A rejected call means the dependency is already known to be down; retrying
    it only burns attempts until the cooldown elapses.
    """
    retry_on = exception_types or (Exception,)

    def _should_retry(exc: BaseException) -> bool:
        if isinstance(exc, CircuitOpenError):
            return False
        return isinstance(exc, retry_on)

    return retry_if_exception(_should_retry)


def build_exponential_jitter_retrying(
    *,
    retry: retry_base,
    policy: RetryBackoffPolicy,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    before_sleep: Callable[[RetryCallState], None] | None = None,
    reraise: bool = True,
) -> AsyncRetrying:
    """Build an ``AsyncRetrying`` with exponential jitter backoff."""
    stop = (
        stop_never if policy.attempts is None else stop_after_attempt(policy.attempts)
    )
    options: dict[str, object] = {
        "retry": retry,
        "wait": wait_exponential_jitter(
            initial=policy.min_seconds,
            max=policy.max_seconds,
        ),
        "stop": stop,
        "reraise": reraise,
    }
    if sleep is not None:
        options["sleep"] = sleep
    if before_sleep is not None:
        options["before_sleep"] = before_sleep
    return AsyncRetrying(**options)  # type: ignore[arg-type]


async def execute_with_retry(
    breaker: CircuitBreaker,
    operation: Callable[[], Awaitable[T]],
    *,
    policy: RetryBackoffPolicy,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], Awaitable[None]] | None = None,
    before_sleep: Callable[[RetryCallState], None] | None = None,
) -> T:
    """Run ``operation`` through ``breaker`` with retries around each call.

    Every attempt is scored by the breaker. Retries stop as soon as the
    breaker rejects a call, and the ``CircuitOpenError`` is raised to the
    caller.
    """
    retrying = build_exponential_jitter_retrying(
        retry=retry_unless_circuit_open(*retry_on),
        policy=policy,
        sleep=sleep,
        before_sleep=before_sleep,
    )
    async for attempt in retrying:
        with attempt:
            return await breaker.execute(operation)
    raise RuntimeError("Retry loop exited unexpectedly.")
