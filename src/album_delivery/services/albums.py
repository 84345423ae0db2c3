"""Read access to events and images, always fetched fresh."""

import asyncio
from dataclasses import dataclass
from datetime import datetime

from album_delivery.adapters.studio_client import StudioClient
from album_delivery.domain.albums import ClientEvent, Image
from album_delivery.services.transport import transport_errors


@dataclass
class AlbumReader:
    """Fetches server-authoritative event and image state."""

    client: StudioClient

    async def get_event(self, client_event_id: str) -> ClientEvent:
        """Fetch a client event."""
        with transport_errors(client_event_id):
            row = await self.client.get_client_event(client_event_id)
        return parse_client_event(row)

    async def list_images(self, client_event_id: str) -> list[Image]:
        """Fetch an event's images in gallery order."""
        with transport_errors(client_event_id):
            rows = await self.client.get_images(client_event_id)
        return sort_images([parse_image(row) for row in rows])

    async def get_event_with_images(
        self, client_event_id: str
    ) -> tuple[ClientEvent, list[Image]]:
        """Fetch an event and its images concurrently."""
        return await asyncio.gather(
            self.get_event(client_event_id), self.list_images(client_event_id)
        )


def sort_images(images: list[Image], key: str = "custom") -> list[Image]:
    """Order images by a gallery sort key."""
    if key == "file_name":
        return sorted(images, key=lambda image: image.file_name.lower())
    if key == "captured_at":
        return sorted(images, key=lambda image: _timestamp(image.captured_at))
    if key == "uploaded_at":
        return sorted(images, key=lambda image: _timestamp(image.uploaded_at))
    return sorted(
        images,
        key=lambda image: (
            image.sort_order if image.sort_order is not None else float("inf"),
            _timestamp(image.uploaded_at),
        ),
    )


def parse_client_event(row: dict[str, object]) -> ClientEvent:
    """Build a client event from an API row."""
    status_id = row.get("eventDeliveryStatusId")
    return ClientEvent(
        client_event_id=str(row["clientEventId"]),
        project_id=str(row["projectId"]),
        event_delivery_status_id=str(status_id) if status_id else None,
    )


def parse_image(row: dict[str, object]) -> Image:
    """Build an image from an API row."""
    status_id = row.get("imageStatusId")
    sort_order = row.get("sortOrder")
    return Image(
        image_id=str(row["imageId"]),
        client_event_id=str(row.get("clientEventId", "")),
        image_status_id=str(status_id) if status_id else None,
        file_name=str(row.get("fileName", "")),
        sort_order=int(sort_order) if isinstance(sort_order, int | float) else None,
        comment=row.get("comment") or None,
        original_url=row.get("originalUrl") or None,
        compressed_url=row.get("compressedUrl") or None,
        captured_at=_parse_datetime(row.get("capturedAt")),
        uploaded_at=_parse_datetime(row.get("uploadedAt")),
    )


def _parse_datetime(value: object) -> datetime | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _timestamp(value: datetime | None) -> float:
    return value.timestamp() if value is not None else float("inf")
