"""Prometheus collectors fed by circuit breaker events."""

from __future__ import annotations

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

from wfm_resilience.circuit_breaker.state import CircuitState, TransitionEvent

STATE_VALUES: dict[CircuitState, int] = {
    CircuitState.CLOSED: 0,
    CircuitState.HALF_OPEN: 1,
    CircuitState.OPEN: 2,
}


class PrometheusListener:
    """Breaker listener exporting state and call outcomes to Prometheus.

    One listener instance can be shared by every breaker in a process; all
    series are labelled by breaker name. Pass a dedicated ``registry`` when
    more than one listener is created in the same process (for example tests).
    """

    def __init__(
        self,
        *,
        registry: CollectorRegistry | None = None,
        namespace: str = "wfm",
    ) -> None:
        registry = REGISTRY if registry is None else registry
        self.state = Gauge(
            "circuit_breaker_state",
            "Current breaker state (0=closed, 1=half_open, 2=open).",
            labelnames=("breaker",),
            namespace=namespace,
            registry=registry,
        )
        self.transitions = Counter(
            "circuit_breaker_transitions_total",
            "Breaker state transitions grouped by target state.",
            labelnames=("breaker", "from_state", "to_state"),
            namespace=namespace,
            registry=registry,
        )
        self.rejections = Counter(
            "circuit_breaker_rejected_calls_total",
            "Calls rejected without reaching the dependency.",
            labelnames=("breaker",),
            namespace=namespace,
            registry=registry,
        )
        self.calls = Counter(
            "circuit_breaker_calls_total",
            "Protected calls that reached the dependency, by outcome.",
            labelnames=("breaker", "outcome"),
            namespace=namespace,
            registry=registry,
        )
        self.duration = Histogram(
            "circuit_breaker_call_duration_seconds",
            "Time spent in protected calls that reached the dependency.",
            labelnames=("breaker",),
            namespace=namespace,
            registry=registry,
        )

    async def on_state_change(self, event: TransitionEvent) -> None:
        self.state.labels(breaker=event.name).set(STATE_VALUES[event.to_state])
        self.transitions.labels(
            breaker=event.name,
            from_state=event.from_state.value,
            to_state=event.to_state.value,
        ).inc()

    async def on_call_rejected(self, name: str, retry_after: float) -> None:
        _ = retry_after
        self.rejections.labels(breaker=name).inc()

    async def on_call_succeeded(self, name: str, elapsed: float) -> None:
        self.calls.labels(breaker=name, outcome="success").inc()
        self.duration.labels(breaker=name).observe(elapsed)

    async def on_call_failed(self, name: str, exc: Exception, elapsed: float) -> None:
        _ = exc
        self.calls.labels(breaker=name, outcome="failure").inc()
        self.duration.labels(breaker=name).observe(elapsed)
