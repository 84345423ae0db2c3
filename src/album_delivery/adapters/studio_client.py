"""Studio REST API client for catalogs, events and images."""

import json
from dataclasses import dataclass
from typing import Protocol

import httpx

from album_delivery.domain.uploads import LocalFile


class StudioClient(Protocol):
    """Interface for the studio API endpoints used by the workflow."""

    async def get_event_delivery_statuses(self) -> list[dict[str, object]]:
        """Return the raw event delivery status catalog."""

    async def get_image_statuses(self) -> list[dict[str, object]]:
        """Return the raw image status catalog."""

    async def get_client_event(self, client_event_id: str) -> dict[str, object]:
        """Return a client event by id."""

    async def get_images(self, client_event_id: str) -> list[dict[str, object]]:
        """Return the images of a client event."""

    async def update_event_status(
        self, client_event_id: str, status_id: str
    ) -> dict[str, object]:
        """Set the delivery status of a client event."""

    async def bulk_update_images(
        self, image_ids: list[str], image_status_id: str, comment: str | None = None
    ) -> dict[str, object]:
        """Update status (and optional comment) for several images."""

    async def reupload_images(
        self, image_ids: list[str], files: list[LocalFile]
    ) -> dict[str, object]:
        """Replace images with edited files matched by filename."""

    async def approve_images(self, image_ids: list[str]) -> dict[str, object]:
        """Approve several images."""

    async def reorder_images(
        self, client_event_id: str, image_ids: list[str]
    ) -> dict[str, object]:
        """Persist the gallery order of an event."""

    async def update_project_cover(
        self, project_id: str, field_name: str, url: str
    ) -> dict[str, object]:
        """Set one of the project's cover URL fields."""


@dataclass
class HttpxStudioClient(StudioClient):
    """HTTPX-backed studio API client."""

    base_url: str
    token: str
    http_client: httpx.AsyncClient
    timeout: float = 30

    @classmethod
    def create(
        cls, base_url: str, token: str, timeout: float = 30
    ) -> "HttpxStudioClient":
        """Create a studio client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            token=token,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
        )

    async def get_event_delivery_statuses(self) -> list[dict[str, object]]:
        """Fetch the event delivery status catalog."""
        payload = await self._request("GET", "/get-all-event-delivery-statuses")
        return list(payload.get("eventDeliveryStatuses", []))

    async def get_image_statuses(self) -> list[dict[str, object]]:
        """Fetch the image status catalog."""
        payload = await self._request("GET", "/get-all-image-statuses")
        return list(payload.get("imageStatuses", []))

    async def get_client_event(self, client_event_id: str) -> dict[str, object]:
        """Fetch a client event."""
        payload = await self._request("GET", f"/get-client-event/{client_event_id}")
        return dict(payload.get("clientEvent") or payload)

    async def get_images(self, client_event_id: str) -> list[dict[str, object]]:
        """Fetch the images of a client event."""
        payload = await self._request(
            "GET", f"/get-images-by-client-event/{client_event_id}"
        )
        return list(payload.get("images", []))

    async def update_event_status(
        self, client_event_id: str, status_id: str
    ) -> dict[str, object]:
        """Update the delivery status of a client event."""
        return await self._request(
            "PUT",
            f"/update-client-event/{client_event_id}",
            json={"eventDeliveryStatusId": status_id},
        )

    async def bulk_update_images(
        self, image_ids: list[str], image_status_id: str, comment: str | None = None
    ) -> dict[str, object]:
        """Update status and comment for several images."""
        updates: dict[str, object] = {"imageStatusId": image_status_id}
        if comment is not None:
            updates["comment"] = comment
        return await self._request(
            "PUT",
            "/bulk-update-images",
            json={"imageIds": image_ids, "updates": updates},
        )

    async def reupload_images(
        self, image_ids: list[str], files: list[LocalFile]
    ) -> dict[str, object]:
        """Upload edited files that replace existing images."""
        return await self._request(
            "POST",
            "/reupload-images",
            data={"imageIds": json.dumps(image_ids)},
            files=multipart_files(files),
        )

    async def approve_images(self, image_ids: list[str]) -> dict[str, object]:
        """Approve several images."""
        return await self._request(
            "PUT", "/approve-images", json={"imageIds": image_ids}
        )

    async def reorder_images(
        self, client_event_id: str, image_ids: list[str]
    ) -> dict[str, object]:
        """Persist the gallery order."""
        return await self._request(
            "POST",
            "/reorder-images",
            json={"clientEventId": client_event_id, "imageIds": image_ids},
        )

    async def update_project_cover(
        self, project_id: str, field_name: str, url: str
    ) -> dict[str, object]:
        """Set a project cover URL field."""
        return await self._request(
            "PUT", f"/update-project/{project_id}", json={field_name: url}
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _request(
        self, method: str, path: str, **kwargs: object
    ) -> dict[str, object]:
        response = await self.http_client.request(
            method,
            f"{self.base_url}{path}",
            headers={"Authorization": f"Bearer {self.token}"},
            timeout=self.timeout,
            **kwargs,
        )
        response.raise_for_status()
        return response.json()


def multipart_files(
    files: list[LocalFile],
) -> list[tuple[str, tuple[str, bytes, str]]]:
    """Build the multipart payload for the `images` field."""
    return [
        ("images", (file.file_name, file.content, file.content_type)) for file in files
    ]
