"""Circuit breaker exceptions.

Callers can distinguish between:
  - A call being rejected because the circuit is open (``CircuitOpenError``).
  - The protected operation's own failure, which is re-raised unchanged.
"""

from datetime import datetime


class CircuitBreakerError(Exception):
    """Base exception for the circuit breaker package."""


class CircuitOpenError(CircuitBreakerError):
    """Raised when a call is rejected because the circuit is open.

    Attributes:
        breaker_name: Name of the breaker rejecting the call.
        retry_at: Instant after which a probe call is permitted.
        retry_after: Seconds from the rejection until ``retry_at``.
    """

    def __init__(
        self,
        breaker_name: str,
        *,
        retry_at: datetime,
        retry_after: float,
    ) -> None:
        """Initialize a circuit-open exception payload.

        Args:
            breaker_name: Breaker rejecting the call.
            retry_at: Instant the next probe window opens.
            retry_after: Seconds until the next probe window opens.
        """
        self.breaker_name = breaker_name
        self.retry_at = retry_at
        self.retry_after = max(retry_after, 0.0)
        super().__init__(
            f"circuit_open: {breaker_name} retry_after={self.retry_after:g}s"
        )
