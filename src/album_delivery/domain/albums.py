"""Domain models for projects, events and images."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ClientEvent:
    """A deliverable occasion within a project."""

    client_event_id: str
    project_id: str
    event_delivery_status_id: str | None


@dataclass(frozen=True)
class Image:
    """An image in an event gallery, as last reported by the server."""

    image_id: str
    client_event_id: str
    image_status_id: str | None
    file_name: str
    sort_order: int | None = None
    comment: str | None = None
    original_url: str | None = None
    compressed_url: str | None = None
    captured_at: datetime | None = None
    uploaded_at: datetime | None = None

    @property
    def display_url(self) -> str | None:
        """Return the best URL to show for this image."""
        return self.compressed_url or self.original_url
