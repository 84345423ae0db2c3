"""Storage API client for quota checks and batch uploads."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from album_delivery.adapters.studio_client import multipart_files
from album_delivery.domain.uploads import LocalFile


class StorageClient(Protocol):
    """Interface for storage capacity and upload endpoints."""

    async def check_upload_quota(
        self, tenant_id: str, total_bytes: int
    ) -> dict[str, object]:
        """Return whether the tenant can store total_bytes more."""

    async def get_storage_stats(self, tenant_id: str) -> dict[str, object]:
        """Return plan and usage information for a tenant."""

    async def upload_image_batch(
        self, client_event_id: str, project_id: str, files: list[LocalFile]
    ) -> dict[str, object]:
        """Upload one chunk of images and return per-file results."""


@dataclass
class HttpxStorageClient(StorageClient):
    """HTTPX-backed storage client."""

    base_url: str
    token: str
    http_client: httpx.AsyncClient
    timeout: float = 30
    upload_timeout: float = 300

    @classmethod
    def create(
        cls,
        base_url: str,
        token: str,
        timeout: float = 30,
        upload_timeout: float = 300,
    ) -> "HttpxStorageClient":
        """Create a storage client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            token=token,
            http_client=httpx.AsyncClient(),
            timeout=timeout,
            upload_timeout=upload_timeout,
        )

    async def check_upload_quota(
        self, tenant_id: str, total_bytes: int
    ) -> dict[str, object]:
        """Ask the storage service whether the upload fits."""
        response = await self.http_client.post(
            f"{self.base_url}/storage/check-upload",
            headers=self._headers(),
            json={"tenantId": tenant_id, "uploadSizeBytes": total_bytes},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def get_storage_stats(self, tenant_id: str) -> dict[str, object]:
        """Fetch storage usage for a tenant."""
        response = await self.http_client.get(
            f"{self.base_url}/storage/stats/{tenant_id}",
            headers=self._headers(),
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    async def upload_image_batch(
        self, client_event_id: str, project_id: str, files: list[LocalFile]
    ) -> dict[str, object]:
        """Upload a chunk of images.

        Server-side notifications are suppressed; the caller sends a single
        notification once the whole batch has settled.
        """
        response = await self.http_client.post(
            f"{self.base_url}/upload-batch-images",
            headers=self._headers(),
            data={
                "clientEventId": client_event_id,
                "projectId": project_id,
                "skipNotification": "true",
            },
            files=multipart_files(files),
            timeout=self.upload_timeout,
        )
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}
