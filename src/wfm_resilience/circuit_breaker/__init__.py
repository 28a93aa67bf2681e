"""Framework-agnostic async circuit breaker.

This package implements the circuit breaker pattern from *Release It!* for
calls to one unreliable downstream dependency per breaker.

Key behavior notes:
  - State is process-local and in memory. A restarted process starts
    ``CLOSED``.
  - Opening is fast: ``failure_threshold`` consecutive failures while
    ``CLOSED`` open the circuit. Closing is slow: ``success_threshold``
    consecutive successes while ``HALF_OPEN`` are required, and any failure
    while ``HALF_OPEN`` reopens the circuit at once.
  - The breaker never retries. Its only fabricated error is
    ``CircuitOpenError``; every other error is the operation's own, re-raised
    unchanged.
"""

from wfm_resilience.circuit_breaker.breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    Clock,
)
from wfm_resilience.circuit_breaker.exceptions import (
    CircuitBreakerError,
    CircuitOpenError,
)
from wfm_resilience.circuit_breaker.listeners import BreakerListener, LoggingListener
from wfm_resilience.circuit_breaker.registry import BreakerRegistry
from wfm_resilience.circuit_breaker.state import (
    BreakerSnapshot,
    CircuitState,
    TransitionEvent,
)

__all__ = [
    "BreakerListener",
    "BreakerRegistry",
    "BreakerSnapshot",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitBreakerError",
    "CircuitOpenError",
    "CircuitState",
    "Clock",
    "LoggingListener",
    "TransitionEvent",
]
