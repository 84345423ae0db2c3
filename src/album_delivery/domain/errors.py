"""Error taxonomy for the album delivery workflow."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from album_delivery.domain.catalogs import EventDeliveryStatus
    from album_delivery.domain.storage import StorageStats


class AlbumWorkflowError(Exception):
    """Base class for workflow errors."""


class ValidationError(AlbumWorkflowError):
    """Caller supplied an empty or invalid selection or a missing field."""

    def __init__(self, message: str, identifiers: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.identifiers = list(identifiers or [])


class CatalogIntegrityError(AlbumWorkflowError):
    """A status catalog violates its ordering or uniqueness rules."""


class SequenceViolation(AlbumWorkflowError):
    """A delivery status change would skip or regress a step."""

    def __init__(
        self,
        current: EventDeliveryStatus | None,
        target: EventDeliveryStatus,
        expected: EventDeliveryStatus | None,
    ) -> None:
        self.current = current
        self.target = target
        self.expected = expected
        if expected is None:
            detail = "no further status is available"
        else:
            detail = f"the only valid next status is {expected.status_description!r}"
        super().__init__(f"Cannot move to {target.status_description!r}: {detail}.")


class NoApprovedContent(AlbumWorkflowError):
    """Publishing was attempted for an event with no approved images."""

    def __init__(self, client_event_id: str) -> None:
        self.client_event_id = client_event_id
        super().__init__(
            f"Event {client_event_id} has no approved images; approve images first."
        )


class QuotaExceeded(AlbumWorkflowError):
    """The storage quota cannot fit the requested upload."""

    def __init__(self, total_bytes: int, stats: StorageStats | None = None) -> None:
        self.total_bytes = total_bytes
        self.stats = stats
        super().__init__(
            f"Upload of {total_bytes} bytes exceeds the available storage."
        )


class TransportError(AlbumWorkflowError):
    """A network or storage request failed."""

    def __init__(self, message: str, identifiers: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.identifiers = list(identifiers or [])


class NotificationFailure(AlbumWorkflowError):
    """A best-effort notification could not be delivered."""
