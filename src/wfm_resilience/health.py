from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from wfm_resilience.circuit_breaker import CircuitBreaker, CircuitState

REASON_READY = "ready"
REASON_CIRCUIT_OPEN = "circuit_open"
REASON_CIRCUIT_HALF_OPEN = "circuit_half_open"
REASON_NO_BREAKERS = "no_breakers"

_REASONS: dict[CircuitState, str] = {
    CircuitState.OPEN: REASON_CIRCUIT_OPEN,
    CircuitState.HALF_OPEN: REASON_CIRCUIT_HALF_OPEN,
}


@dataclass(frozen=True)
class CheckResult:
    """Result of one dependency health check."""

    name: str
    ok: bool
    reason: str | None = None
    detail: str = ""
    data: Mapping[str, object] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Freeze check metadata mapping to keep snapshots read-only."""
        frozen_data = MappingProxyType(dict(self.data))
        object.__setattr__(self, "data", frozen_data)


@dataclass(frozen=True)
class HealthSnapshot:
    """Immutable aggregate of per-breaker health checks."""

    status: str
    ready: bool
    reason: str
    detail: str
    last_checked_at: float
    check_results: tuple[CheckResult, ...]

    def get_check_result(self, name: str) -> CheckResult | None:
        """Return one check result by name."""
        for result in self.check_results:
            if result.name == name:
                return result
        return None


def breaker_check(breaker: CircuitBreaker) -> CheckResult:
    """Report one breaker as healthy only while it is ``CLOSED``."""
    snapshot = breaker.snapshot()
    next_attempt_at = snapshot.next_attempt_at
    data: dict[str, object] = {
        "state": snapshot.state.value,
        "failure_count": snapshot.failure_count,
        "success_count": snapshot.success_count,
        "next_attempt_at": (
            None if next_attempt_at is None else next_attempt_at.isoformat()
        ),
    }
    if snapshot.state == CircuitState.CLOSED:
        return CheckResult(name=snapshot.name, ok=True, data=data)

    if snapshot.state == CircuitState.OPEN:
        detail = f"rejecting calls until {data['next_attempt_at']}"
    else:
        detail = f"probing recovery, {snapshot.success_count} consecutive successes"
    return CheckResult(
        name=snapshot.name,
        ok=False,
        reason=_REASONS[snapshot.state],
        detail=detail,
        data=data,
    )


def evaluate_breaker_health(
    breakers: Iterable[CircuitBreaker],
    *,
    now_fn: Callable[[], float] = time.time,
) -> HealthSnapshot:
    """Evaluate every breaker once and aggregate the results.

    The aggregate reason and detail come from the first unhealthy breaker.
    """
    results = tuple(breaker_check(breaker) for breaker in breakers)
    if not results:
        return HealthSnapshot(
            status="ok",
            ready=True,
            reason=REASON_NO_BREAKERS,
            detail="",
            last_checked_at=now_fn(),
            check_results=(),
        )

    ready = all(result.ok for result in results)
    reason = REASON_READY
    detail = ""
    if not ready:
        first_failure = next(result for result in results if not result.ok)
        reason = first_failure.reason or REASON_CIRCUIT_OPEN
        detail = f"{first_failure.name}: {first_failure.detail}"

    return HealthSnapshot(
        status="ok" if ready else "degraded",
        ready=ready,
        reason=reason,
        detail=detail,
        last_checked_at=now_fn(),
        check_results=results,
    )
