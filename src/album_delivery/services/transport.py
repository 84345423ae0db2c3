"""Translation of HTTP failures into workflow errors."""

from collections.abc import Iterator
from contextlib import contextmanager

import httpx

from album_delivery.domain.errors import TransportError


def describe_http_error(exc: httpx.HTTPError) -> str:
    """Return a short, user-facing reason for an HTTP failure."""
    if isinstance(exc, httpx.HTTPStatusError):
        try:
            body = exc.response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if isinstance(message, str) and message:
                return message
        return f"Request failed with status {exc.response.status_code}"
    if isinstance(exc, httpx.TimeoutException):
        return "Request timed out"
    return "Network error"


@contextmanager
def transport_errors(*identifiers: str) -> Iterator[None]:
    """Re-raise httpx errors as TransportError for the given identifiers."""
    try:
        yield
    except httpx.HTTPError as exc:
        raise TransportError(describe_http_error(exc), list(identifiers)) from exc
