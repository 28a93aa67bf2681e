"""Core circuit breaker implementation."""

import threading
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import ParamSpec, TypeVar

from wfm_resilience.circuit_breaker.exceptions import CircuitOpenError
from wfm_resilience.circuit_breaker.listeners import BreakerListener, LoggingListener
from wfm_resilience.circuit_breaker.state import (
    BreakerSnapshot,
    CircuitState,
    TransitionEvent,
)
from wfm_resilience.logging import get_logger

T = TypeVar("T")
P = ParamSpec("P")

Clock = Callable[[], datetime]

_logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(slots=True)
class CircuitBreakerConfig:
    """Circuit breaker configuration values.

    Attributes:
        failure_threshold: Consecutive failures while ``CLOSED`` before opening.
        success_threshold: Consecutive successes while ``HALF_OPEN`` before
            closing.
        open_timeout: Seconds to wait while ``OPEN`` before allowing a probe.
        half_open_max_calls: Maximum in-flight probe calls while ``HALF_OPEN``.
            ``None`` admits every call.
        expected_exceptions: Exceptions that count as failures.
        excluded_exceptions: Exceptions that must not count as failures.
    """

    failure_threshold: int = 5
    success_threshold: int = 2
    open_timeout: float = 30.0
    half_open_max_calls: int | None = None
    expected_exceptions: tuple[type[Exception], ...] = (Exception,)
    excluded_exceptions: tuple[type[Exception], ...] = ()

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be >= 1")
        if self.success_threshold < 1:
            raise ValueError("success_threshold must be >= 1")
        if self.open_timeout < 0:
            raise ValueError("open_timeout must be >= 0")
        if self.half_open_max_calls is not None and self.half_open_max_calls < 1:
            raise ValueError("half_open_max_calls must be >= 1 when provided")


@dataclass(frozen=True, slots=True)
class _Admission:
    """Permission to run one call; ``probe_epoch`` is set for limited probes."""

    probe_epoch: int | None = None


@dataclass(frozen=True, slots=True)
class _Rejection:
    retry_at: datetime
    retry_after: float


class CircuitBreaker:
    """Stateful proxy around a dangerous async operation.

    All bookkeeping happens inside a short ``threading.Lock`` section with no
    suspension point, so one instance may be shared by many asyncio tasks and
    by event loops running on different threads. Only the wrapped operation
    and listener hooks are awaited.
    """

    def __init__(
        self,
        name: str,
        *,
        config: CircuitBreakerConfig | None = None,
        listeners: Sequence[BreakerListener] | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Build a circuit breaker with optional custom dependencies.

        Args:
            name: Unique breaker name used for logging and metrics.
            config: Breaker behavior configuration. Defaults to
                ``CircuitBreakerConfig()``.
            listeners: Listener hooks for breaker events. ``None`` installs a
                ``LoggingListener``; pass an empty sequence to disable hooks.
            clock: Callable returning the current timezone-aware instant.
                Defaults to the UTC wall clock.
        """
        self._name = name
        self.config = CircuitBreakerConfig() if config is None else config
        self._listeners: tuple[BreakerListener, ...] = (
            (LoggingListener(),) if listeners is None else tuple(listeners)
        )
        self._clock = _utcnow if clock is None else clock
        self._lock = threading.Lock()

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._next_attempt_at: datetime | None = None
        self._opened_at: datetime | None = None
        self._probe_epoch = 0
        self._probes_in_flight = 0

    def __repr__(self) -> str:
        return f"CircuitBreaker(name={self._name!r}, state={self._state.value!r})"

    @property
    def name(self) -> str:
        """Breaker name."""
        return self._name

    @property
    def state(self) -> CircuitState:
        """Current breaker state."""
        return self._state

    def get_state(self) -> CircuitState:
        """Return the current state without side effects.

        An ``OPEN`` breaker whose cooldown has elapsed still reports ``OPEN``;
        only the next call moves it to ``HALF_OPEN``.
        """
        return self._state

    def snapshot(self) -> BreakerSnapshot:
        """Return a consistent copy of the breaker internals."""
        with self._lock:
            return BreakerSnapshot(
                name=self._name,
                state=self._state,
                failure_count=self._failure_count,
                success_count=self._success_count,
                next_attempt_at=self._next_attempt_at,
                opened_at=self._opened_at,
            )

    async def execute(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run a zero-argument async operation under breaker protection.

        Args:
            operation: Callable producing the awaitable to protect.

        Returns:
            The result of ``operation`` when allowed and successful.

        Raises:
            CircuitOpenError: When the circuit is open and the call is rejected.
            Exception: The original exception from ``operation``, unchanged.
        """
        return await self.call(operation)

    async def call(
        self,
        func: Callable[P, Awaitable[T]],
        *args: P.args,
        **kwargs: P.kwargs,
    ) -> T:
        """Invoke an async callable under circuit breaker protection.

        Args:
            func: Dangerous async callable to execute.
            *args: Positional arguments forwarded to ``func``.
            **kwargs: Keyword arguments forwarded to ``func``.

        Returns:
            The result of ``func`` when allowed and successful.

        Raises:
            CircuitOpenError: When the circuit is open and the call is rejected.
            Exception: The original exception from ``func`` when it is attempted
                and fails.
        """
        decision, events = self._admit()
        if isinstance(decision, _Rejection):
            await self._emit_state_changes(events)
            await self._emit_call_rejected(decision.retry_after)
            raise CircuitOpenError(
                self._name,
                retry_at=decision.retry_at,
                retry_after=decision.retry_after,
            )

        # A limited half-open slot is held from here until the outcome is recorded.
        try:
            await self._emit_state_changes(events)
        except BaseException:
            self._release_unscored(decision)
            raise

        start = time.monotonic()
        try:
            result = await func(*args, **kwargs)
        except self.config.excluded_exceptions:
            self._release_unscored(decision)
            raise
        except self.config.expected_exceptions as exc:
            elapsed = max(time.monotonic() - start, 0.0)
            events = self._record_failure(decision)
            await self._emit_call_failed(exc, elapsed)
            await self._emit_state_changes(events)
            raise
        except BaseException:
            self._release_unscored(decision)
            raise

        elapsed = max(time.monotonic() - start, 0.0)
        events = self._record_success(decision)
        await self._emit_call_succeeded(elapsed)
        await self._emit_state_changes(events)
        return result

    async def reset(self) -> None:
        """Force the breaker ``CLOSED`` and clear counters and cooldown.

        Safe to call in any state and any number of times.
        """
        events: list[TransitionEvent] = []
        with self._lock:
            if self._state != CircuitState.CLOSED:
                events.append(self._transition(CircuitState.CLOSED, self._clock()))
            else:
                self._clear()
        await self._emit_state_changes(events)

    def _clear(self) -> None:
        self._failure_count = 0
        self._success_count = 0
        self._next_attempt_at = None
        self._opened_at = None

    def _transition(self, new: CircuitState, now: datetime) -> TransitionEvent:
        # Caller holds self._lock.
        old = self._state
        self._state = new
        self._probe_epoch += 1
        self._probes_in_flight = 0
        if new == CircuitState.OPEN:
            self._success_count = 0
            self._opened_at = now
            self._next_attempt_at = now + timedelta(seconds=self.config.open_timeout)
        elif new == CircuitState.HALF_OPEN:
            self._success_count = 0
        else:
            self._clear()
        return TransitionEvent(
            name=self._name,
            from_state=old,
            to_state=new,
            failure_count=self._failure_count,
            success_count=self._success_count,
            timestamp=now,
        )

    def _admit(self) -> tuple[_Admission | _Rejection, list[TransitionEvent]]:
        events: list[TransitionEvent] = []
        with self._lock:
            now = self._clock()
            if self._state == CircuitState.OPEN:
                next_attempt_at = self._next_attempt_at
                if next_attempt_at is not None and now < next_attempt_at:
                    retry_after = (next_attempt_at - now).total_seconds()
                    return _Rejection(next_attempt_at, retry_after), events
                events.append(self._transition(CircuitState.HALF_OPEN, now))

            limit = self.config.half_open_max_calls
            if self._state == CircuitState.HALF_OPEN and limit is not None:
                if self._probes_in_flight >= limit:
                    return _Rejection(now, 0.0), events
                self._probes_in_flight += 1
                return _Admission(probe_epoch=self._probe_epoch), events
            return _Admission(), events

    def _release_probe(self, admission: _Admission) -> None:
        # Caller holds self._lock. Slots from an earlier window are void.
        if admission.probe_epoch is None or admission.probe_epoch != self._probe_epoch:
            return
        if self._probes_in_flight > 0:
            self._probes_in_flight -= 1

    def _release_unscored(self, admission: _Admission) -> None:
        with self._lock:
            self._release_probe(admission)

    def _record_success(self, admission: _Admission) -> list[TransitionEvent]:
        events: list[TransitionEvent] = []
        with self._lock:
            self._release_probe(admission)
            if self._state == CircuitState.CLOSED:
                self._failure_count = 0
            elif self._state == CircuitState.HALF_OPEN:
                self._failure_count = 0
                self._success_count += 1
                if self._success_count >= self.config.success_threshold:
                    events.append(
                        self._transition(CircuitState.CLOSED, self._clock())
                    )
        return events

    def _record_failure(self, admission: _Admission) -> list[TransitionEvent]:
        events: list[TransitionEvent] = []
        with self._lock:
            self._release_probe(admission)
            if self._state == CircuitState.CLOSED:
                self._failure_count += 1
                if self._failure_count >= self.config.failure_threshold:
                    events.append(self._transition(CircuitState.OPEN, self._clock()))
            elif self._state == CircuitState.HALF_OPEN:
                self._failure_count += 1
                events.append(self._transition(CircuitState.OPEN, self._clock()))
        return events

    async def _emit_state_changes(self, events: Sequence[TransitionEvent]) -> None:
        for event in events:
            for listener in self._listeners:
                try:
                    await listener.on_state_change(event)
                except Exception:
                    self._log_listener_failure(listener, "on_state_change")

    async def _emit_call_rejected(self, retry_after: float) -> None:
        for listener in self._listeners:
            try:
                await listener.on_call_rejected(self._name, retry_after)
            except Exception:
                self._log_listener_failure(listener, "on_call_rejected")

    async def _emit_call_succeeded(self, elapsed: float) -> None:
        for listener in self._listeners:
            try:
                await listener.on_call_succeeded(self._name, elapsed)
            except Exception:
                self._log_listener_failure(listener, "on_call_succeeded")

    async def _emit_call_failed(self, exc: Exception, elapsed: float) -> None:
        for listener in self._listeners:
            try:
                await listener.on_call_failed(self._name, exc, elapsed)
            except Exception:
                self._log_listener_failure(listener, "on_call_failed")

    def _log_listener_failure(self, listener: BreakerListener, hook: str) -> None:
        _logger.warning(
            "circuit_breaker.listener_failed",
            breaker=self._name,
            listener=listener.__class__.__qualname__,
            hook=hook,
            exc_info=True,
        )
