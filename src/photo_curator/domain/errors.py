"""Error taxonomy for the curation pipeline."""


class CurationError(Exception):
    """Base class for pipeline errors."""


class MissingScoreError(CurationError):
    """Raised when a required score dimension is absent."""


class SimilarityError(CurationError):
    """Raised when a cosine similarity cannot be computed."""


class DuplicateTaskError(CurationError):
    """Raised when a task name is submitted twice to one scheduler."""


class InvalidCoordinatesError(CurationError, ValueError):
    """Raised when latitude or longitude is out of range."""


class RemoteCallError(CurationError):
    """Base class for failures of calls into external services."""

    def __init__(self, message: str, *, service: str | None = None) -> None:
        super().__init__(message)
        self.service = service


class RateLimitedError(RemoteCallError):
    """The service asked us to slow down."""

    def __init__(
        self,
        message: str,
        *,
        service: str | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, service=service)
        self.retry_after = retry_after


class RemoteTimeoutError(RemoteCallError):
    """The call did not finish within its deadline."""


class TransientRemoteError(RemoteCallError):
    """A failure that may succeed on retry (5xx, network errors)."""


class PermanentRemoteError(RemoteCallError):
    """A failure that must not be retried (auth, conflict)."""

    def __init__(
        self,
        message: str,
        *,
        service: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, service=service)
        self.status_code = status_code


class MalformedResponseError(PermanentRemoteError):
    """The service answered with a payload we cannot use."""
