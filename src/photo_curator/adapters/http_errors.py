"""Shared httpx request helper that maps failures onto the error taxonomy."""

import httpx

from photo_curator.domain.errors import (
    PermanentRemoteError,
    RateLimitedError,
    RemoteTimeoutError,
    TransientRemoteError,
)

_PERMANENT_STATUSES = {401, 403, 409}


async def send(
    http_client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    service: str,
    **kwargs: object,
) -> httpx.Response:
    """Send a request and raise a RemoteCallError for any failure."""
    try:
        response = await http_client.request(method, url, **kwargs)  # type: ignore[arg-type]
    except httpx.TimeoutException as exc:
        raise RemoteTimeoutError(
            f"{service} request timed out", service=service
        ) from exc
    except httpx.TransportError as exc:
        raise TransientRemoteError(
            f"{service} transport error: {exc}", service=service
        ) from exc
    raise_for_remote_status(response, service=service)
    return response


def raise_for_remote_status(response: httpx.Response, *, service: str) -> None:
    """Classify a non-2xx response."""
    if response.is_success:
        return
    status_code = response.status_code
    message = f"{service} returned {status_code}: {response.text[:200]}"
    if status_code == 429:  # noqa: PLR2004
        raise RateLimitedError(
            message,
            service=service,
            retry_after=parse_retry_after(response.headers.get("retry-after")),
        )
    if status_code in _PERMANENT_STATUSES:
        raise PermanentRemoteError(message, service=service, status_code=status_code)
    raise TransientRemoteError(message, service=service)


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header given in seconds."""
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None
