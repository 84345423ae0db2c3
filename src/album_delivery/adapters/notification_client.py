"""Notification API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from album_delivery.domain.errors import NotificationFailure


class NotificationClient(Protocol):
    """Interface for fire-and-forget workflow notifications."""

    async def notify_images_uploaded(
        self, project_id: str, client_event_id: str, image_count: int
    ) -> None:
        """Tell editors and admins that images were uploaded."""

    async def notify_re_edit_requested(
        self, project_id: str, client_event_id: str, image_count: int
    ) -> None:
        """Tell the assigned editor that re-edits were requested."""


@dataclass
class HttpxNotificationClient(NotificationClient):
    """Notification client implemented with httpx."""

    base_url: str
    token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, token: str) -> "HttpxNotificationClient":
        """Create a notification client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            token=token,
            http_client=httpx.AsyncClient(),
        )

    async def notify_images_uploaded(
        self, project_id: str, client_event_id: str, image_count: int
    ) -> None:
        """Send the images-uploaded notification."""
        await self._post(
            "/notify-images-uploaded", project_id, client_event_id, image_count
        )

    async def notify_re_edit_requested(
        self, project_id: str, client_event_id: str, image_count: int
    ) -> None:
        """Send the re-edit-requested notification."""
        await self._post(
            "/notify-reedit-requested", project_id, client_event_id, image_count
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _post(
        self, path: str, project_id: str, client_event_id: str, image_count: int
    ) -> None:
        try:
            response = await self.http_client.post(
                f"{self.base_url}{path}",
                headers={"Authorization": f"Bearer {self.token}"},
                json={
                    "projectId": project_id,
                    "clientEventId": client_event_id,
                    "imageCount": image_count,
                },
                timeout=10,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationFailure(f"Notification {path} failed: {exc}") from exc
