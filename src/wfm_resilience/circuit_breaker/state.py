"""Circuit breaker state primitives."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


class CircuitState(StrEnum):
    """Circuit breaker state values."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class BreakerSnapshot:
    """Point-in-time view of breaker internals useful for metrics/logging.

    Attributes:
        name: Breaker name.
        state: Breaker state when the snapshot was taken.
        failure_count: Consecutive failures since the last close or open.
        success_count: Consecutive successes while ``HALF_OPEN``.
        next_attempt_at: Instant before which calls are rejected, if open.
        opened_at: Instant the breaker last entered ``OPEN``, if open.
    """

    name: str
    state: CircuitState
    failure_count: int
    success_count: int
    next_attempt_at: datetime | None
    opened_at: datetime | None


@dataclass(frozen=True)
class TransitionEvent:
    """Structured record of one breaker state transition."""

    name: str
    from_state: CircuitState
    to_state: CircuitState
    failure_count: int
    success_count: int
    timestamp: datetime

    def as_log_fields(self) -> dict[str, object]:
        """Return flat keyword fields for structured logging."""
        return {
            "breaker": self.name,
            "from_state": str(self.from_state),
            "to_state": str(self.to_state),
            "failure_count": self.failure_count,
            "success_count": self.success_count,
            "timestamp": self.timestamp.isoformat(),
        }
