"""Observability hooks for circuit breakers."""

from __future__ import annotations

from typing import Protocol

from wfm_resilience.circuit_breaker.state import CircuitState, TransitionEvent
from wfm_resilience.logging import (
    AnyLogger,
    get_logger,
    log_error,
    log_info,
    log_warning,
)


class BreakerListener(Protocol):
    """Listener protocol for circuit breaker events.

    Notes:
        Hooks run after the breaker has committed its bookkeeping, so a slow or
        failing listener never changes the outcome of the call it observes.
    """

    async def on_state_change(self, event: TransitionEvent) -> None:
        """Handle circuit state transitions."""

    async def on_call_rejected(self, name: str, retry_after: float) -> None:
        """Handle call rejection while the circuit is open."""

    async def on_call_succeeded(self, name: str, elapsed: float) -> None:
        """Handle successful protected call completion."""

    async def on_call_failed(self, name: str, exc: Exception, elapsed: float) -> None:
        """Handle failed protected call completion."""


class LoggingListener:
    """Write breaker events to a structured logger."""

    def __init__(self, logger: AnyLogger | None = None) -> None:
        self._logger = get_logger(__name__) if logger is None else logger

    async def on_state_change(self, event: TransitionEvent) -> None:
        fields = event.as_log_fields()
        if event.to_state == CircuitState.OPEN:
            log_error(self._logger, "circuit_breaker.opened", **fields)
        elif event.to_state == CircuitState.HALF_OPEN:
            log_info(self._logger, "circuit_breaker.half_open", **fields)
        else:
            log_info(self._logger, "circuit_breaker.closed", **fields)

    async def on_call_rejected(self, name: str, retry_after: float) -> None:
        log_warning(
            self._logger,
            "circuit_breaker.rejected",
            breaker=name,
            retry_after=retry_after,
        )

    async def on_call_succeeded(self, name: str, elapsed: float) -> None:
        _ = (name, elapsed)

    async def on_call_failed(self, name: str, exc: Exception, elapsed: float) -> None:
        log_warning(
            self._logger,
            "circuit_breaker.call_failed",
            breaker=name,
            error_type=exc.__class__.__name__,
            elapsed=elapsed,
        )
