from __future__ import annotations

from collections.abc import Collection

import httpx

from wfm_resilience.circuit_breaker.breaker import CircuitBreaker
from wfm_resilience.errors import UpstreamStatusError

DEFAULT_FAILURE_STATUSES = frozenset({500, 502, 503, 504})
MAX_RESPONSE_BODY_LENGTH = 1024


class BreakerGuardedClient:
    """Send ``httpx`` requests to one downstream service through a breaker.

    Responses whose status is in ``failure_statuses`` raise
    ``UpstreamStatusError`` inside the protected operation so they count as
    breaker failures. Transport errors (``httpx.RequestError``) propagate
    unchanged. Every other response is returned to the caller as-is.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        breaker: CircuitBreaker,
        *,
        failure_statuses: Collection[int] = DEFAULT_FAILURE_STATUSES,
    ) -> None:
        """Bind an HTTP client to a breaker.

        Args:
            client: Shared async HTTP client owned by the caller.
            breaker: Breaker guarding the downstream service.
            failure_statuses: Response statuses scored as failures.
        """
        self._client = client
        self._breaker = breaker
        self._failure_statuses = frozenset(failure_statuses)

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    async def request(self, method: str, url: str, **kwargs: object) -> httpx.Response:
        """Send one request under breaker protection."""

        async def _send() -> httpx.Response:
            response = await self._client.request(method, url, **kwargs)  # type: ignore[arg-type]
            if response.status_code in self._failure_statuses:
                raise UpstreamStatusError(
                    f"{method.upper()} {url} returned HTTP {response.status_code}.",
                    http_status=response.status_code,
                    response_body=response.text[:MAX_RESPONSE_BODY_LENGTH],
                )
            return response

        return await self._breaker.execute(_send)

    async def get(self, url: str, **kwargs: object) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: object) -> httpx.Response:
        return await self.request("POST", url, **kwargs)
