"""Registry holding one circuit breaker per protected dependency.

Usage:
    registry = BreakerRegistry(config=CircuitBreakerConfig(failure_threshold=3))
    payments = registry.get("payments-api")
    result = await payments.execute(fetch_invoice)
"""

from __future__ import annotations

import threading
from collections.abc import Sequence

from wfm_resilience.circuit_breaker.breaker import (
    CircuitBreaker,
    CircuitBreakerConfig,
    Clock,
)
from wfm_resilience.circuit_breaker.listeners import BreakerListener
from wfm_resilience.circuit_breaker.state import BreakerSnapshot


class BreakerRegistry:
    """Get-or-create cache of named breakers sharing defaults."""

    def __init__(
        self,
        *,
        config: CircuitBreakerConfig | None = None,
        listeners: Sequence[BreakerListener] | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            config: Default configuration for breakers created by ``get``.
            listeners: Listeners attached to every created breaker. ``None``
                keeps the breaker default (a ``LoggingListener``).
            clock: Clock shared by every created breaker.
        """
        self._config = config
        self._listeners = None if listeners is None else tuple(listeners)
        self._clock = clock
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def __contains__(self, name: object) -> bool:
        return name in self._breakers

    def __len__(self) -> int:
        return len(self._breakers)

    def get(
        self,
        name: str,
        *,
        config: CircuitBreakerConfig | None = None,
    ) -> CircuitBreaker:
        """Return the breaker for ``name``, creating it on first use.

        ``config`` only applies when the breaker is created.
        """
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(
                    name,
                    config=config if config is not None else self._config,
                    listeners=self._listeners,
                    clock=self._clock,
                )
                self._breakers[name] = breaker
            return breaker

    def names(self) -> tuple[str, ...]:
        """Return registered breaker names in sorted order."""
        with self._lock:
            return tuple(sorted(self._breakers))

    def breakers(self) -> tuple[CircuitBreaker, ...]:
        """Return registered breakers ordered by name."""
        with self._lock:
            return tuple(self._breakers[name] for name in sorted(self._breakers))

    def snapshots(self) -> tuple[BreakerSnapshot, ...]:
        """Return one snapshot per registered breaker, ordered by name."""
        return tuple(breaker.snapshot() for breaker in self.breakers())

    def remove(self, name: str) -> bool:
        """Discard the breaker for ``name``; return whether it existed."""
        with self._lock:
            return self._breakers.pop(name, None) is not None

    async def reset_all(self) -> None:
        """Administratively reset every registered breaker."""
        for breaker in self.breakers():
            await breaker.reset()
