"""Shared error types for wfm_resilience."""


class TransientError(RuntimeError):
    """Generic retry-safe transient dependency failure."""


class UpstreamStatusError(TransientError):
    """Raised when a downstream HTTP dependency answers with a failure status."""

    def __init__(
        self,
        message: str,
        *,
        http_status: int,
        response_body: str | None = None,
    ) -> None:
        """Initialize upstream status metadata.

        Args:
            message: Human-readable error message.
            http_status: HTTP status returned by the dependency.
            response_body: Optional response payload text.
        """
        super().__init__(message)
        self.http_status = http_status
        self.response_body = response_body
