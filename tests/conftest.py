"""Shared test fixtures."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import httpx
import pytest

from album_delivery.adapters.notification_client import NotificationClient
from album_delivery.adapters.storage_client import StorageClient
from album_delivery.adapters.studio_client import StudioClient
from album_delivery.config import Settings
from album_delivery.containers import AppContainer, wire_services
from album_delivery.domain.errors import NotificationFailure
from album_delivery.domain.uploads import LocalFile
from album_delivery.services.uploads import PreviewStore

DELIVERY_STATUSES = [
    {
        "statusId": "ds-3",
        "statusCode": "PUBLISHED",
        "statusDescription": "Published",
        "step": 3,
    },
    {
        "statusId": "ds-1",
        "statusCode": "UPLOADED",
        "statusDescription": "Uploaded",
        "step": 1,
    },
    {
        "statusId": "ds-2",
        "statusCode": "REVIEWED",
        "statusDescription": "Reviewed",
        "step": 2,
    },
]

IMAGE_STATUS_CODES = [
    "REVIEW_PENDING",
    "RE_EDIT_SUGGESTED",
    "RE_EDIT_DONE",
    "APPROVED",
    "CLIENT_SELECTED",
    "DISCARDED",
]


def status_id(code: str) -> str:
    """Return the image status id used by the fake catalog."""
    return f"is-{code.lower()}"


def image_row(  # noqa: PLR0913
    image_id: str,
    code: str | None,
    file_name: str | None = None,
    event_id: str = "event-1",
    sort_order: int | None = None,
    uploaded_at: str | None = None,
) -> dict[str, object]:
    """Build an image row as returned by the studio API."""
    return {
        "imageId": image_id,
        "clientEventId": event_id,
        "imageStatusId": status_id(code) if code else None,
        "fileName": file_name or f"{image_id}.jpg",
        "sortOrder": sort_order,
        "compressedUrl": f"https://cdn.test/{image_id}-small.jpg",
        "originalUrl": f"https://cdn.test/{image_id}.jpg",
        "uploadedAt": uploaded_at,
    }


def http_error(
    status_code: int, body: dict[str, object] | None = None
) -> httpx.HTTPError:
    """Build an HTTPStatusError like raise_for_status produces."""
    request = httpx.Request("GET", "https://studio.test/api")
    response = httpx.Response(status_code, json=body or {}, request=request)
    return httpx.HTTPStatusError(
        f"Status {status_code}", request=request, response=response
    )


def local_files(count: int, size: int = 100, prefix: str = "photo") -> list[LocalFile]:
    """Build local files named photo-01.jpg, photo-02.jpg, ..."""
    return [
        LocalFile(file_name=f"{prefix}-{index:02d}.jpg", content=b"x" * size)
        for index in range(1, count + 1)
    ]


@dataclass
class FakeStudioClient(StudioClient):
    """In-memory studio API that applies updates like the real server."""

    delivery_statuses: list[dict[str, object]] = field(
        default_factory=lambda: [dict(row) for row in DELIVERY_STATUSES]
    )
    image_statuses: list[dict[str, object]] = field(
        default_factory=lambda: [
            {
                "statusId": status_id(code),
                "statusCode": code,
                "statusDescription": code.replace("_", " ").title(),
            }
            for code in IMAGE_STATUS_CODES
        ]
    )
    events: dict[str, dict[str, object]] = field(default_factory=dict)
    images: dict[str, dict[str, object]] = field(default_factory=dict)
    projects: dict[str, dict[str, object]] = field(default_factory=dict)
    failures: dict[str, Exception] = field(default_factory=dict)
    ignored_updates: set[str] = field(default_factory=set)
    reupload_failures: dict[str, str] = field(default_factory=dict)
    calls: list[tuple[str, object]] = field(default_factory=list)

    def add_event(
        self, event_id: str, project_id: str = "project-1", status: str | None = None
    ) -> None:
        self.events[event_id] = {
            "clientEventId": event_id,
            "projectId": project_id,
            "eventDeliveryStatusId": status,
        }
        self.projects.setdefault(project_id, {})

    def add_images(self, *rows: dict[str, object]) -> None:
        for row in rows:
            self.images[str(row["imageId"])] = dict(row)

    def code_of(self, image_id: str) -> str | None:
        value = self.images[image_id]["imageStatusId"]
        return str(value)[3:].upper() if value else None

    async def get_event_delivery_statuses(self) -> list[dict[str, object]]:
        self._record("get_event_delivery_statuses", None)
        return list(self.delivery_statuses)

    async def get_image_statuses(self) -> list[dict[str, object]]:
        self._record("get_image_statuses", None)
        return list(self.image_statuses)

    async def get_client_event(self, client_event_id: str) -> dict[str, object]:
        self._record("get_client_event", client_event_id)
        if client_event_id not in self.events:
            raise http_error(404, {"error": "Client event not found"})
        return dict(self.events[client_event_id])

    async def get_images(self, client_event_id: str) -> list[dict[str, object]]:
        self._record("get_images", client_event_id)
        return [
            dict(row)
            for row in self.images.values()
            if row["clientEventId"] == client_event_id
        ]

    async def update_event_status(
        self, client_event_id: str, status_id: str
    ) -> dict[str, object]:
        self._record("update_event_status", (client_event_id, status_id))
        self.events[client_event_id]["eventDeliveryStatusId"] = status_id
        return {"clientEvent": dict(self.events[client_event_id])}

    async def bulk_update_images(
        self, image_ids: list[str], image_status_id: str, comment: str | None = None
    ) -> dict[str, object]:
        self._record("bulk_update_images", (list(image_ids), image_status_id, comment))
        for image_id in image_ids:
            if image_id in self.ignored_updates:
                continue
            self.images[image_id]["imageStatusId"] = image_status_id
            self.images[image_id]["comment"] = comment
        return {"success": True}

    async def reupload_images(
        self, image_ids: list[str], files: list[LocalFile]
    ) -> dict[str, object]:
        self._record(
            "reupload_images", (list(image_ids), [file.file_name for file in files])
        )
        results = []
        for file in files:
            if file.file_name in self.reupload_failures:
                results.append(
                    {
                        "fileName": file.file_name,
                        "success": False,
                        "error": self.reupload_failures[file.file_name],
                    }
                )
                continue
            for image_id in image_ids:
                if self.images[image_id]["fileName"] == file.file_name:
                    self.images[image_id]["imageStatusId"] = status_id("RE_EDIT_DONE")
            results.append(
                {"fileName": file.file_name, "success": True, "message": "Replaced"}
            )
        successful = sum(1 for row in results if row["success"])
        return {
            "successful": successful,
            "failed": len(results) - successful,
            "results": results,
        }

    async def approve_images(self, image_ids: list[str]) -> dict[str, object]:
        self._record("approve_images", list(image_ids))
        for image_id in image_ids:
            if image_id not in self.ignored_updates:
                self.images[image_id]["imageStatusId"] = status_id("APPROVED")
        return {"approvedCount": len(image_ids)}

    async def reorder_images(
        self, client_event_id: str, image_ids: list[str]
    ) -> dict[str, object]:
        self._record("reorder_images", (client_event_id, list(image_ids)))
        for index, image_id in enumerate(image_ids):
            self.images[image_id]["sortOrder"] = index
        return {"success": True}

    async def update_project_cover(
        self, project_id: str, field_name: str, url: str
    ) -> dict[str, object]:
        self._record("update_project_cover", (project_id, field_name, url))
        self.projects.setdefault(project_id, {})[field_name] = url
        return {"project": dict(self.projects[project_id])}

    def calls_to(self, name: str) -> list[object]:
        return [args for call, args in self.calls if call == name]

    def _record(self, name: str, args: object) -> None:
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]


@dataclass
class FakeStorageClient(StorageClient):
    """Storage API fake with scripted quota and per-chunk outcomes."""

    can_upload: bool = True
    stats: dict[str, object] = field(
        default_factory=lambda: {
            "planName": "Starter",
            "storageUsedGB": 9.8,
            "storageLimitGB": 10,
            "percentageUsed": 98,
            "remainingGB": 0.2,
            "isNearLimit": True,
            "isOverLimit": False,
        }
    )
    quota_error: Exception | None = None
    chunk_errors: dict[int, Exception] = field(default_factory=dict)
    failed_files: dict[int, list[str]] = field(default_factory=dict)
    before_chunk: Callable[[int], Awaitable[None]] | None = None
    quota_calls: list[tuple[str, int]] = field(default_factory=list)
    stats_calls: int = 0
    chunks: list[list[str]] = field(default_factory=list)

    async def check_upload_quota(
        self, tenant_id: str, total_bytes: int
    ) -> dict[str, object]:
        self.quota_calls.append((tenant_id, total_bytes))
        if self.quota_error is not None:
            raise self.quota_error
        return {"canUpload": self.can_upload, "remainingGB": 0.2}

    async def get_storage_stats(self, tenant_id: str) -> dict[str, object]:
        self.stats_calls += 1
        return dict(self.stats)

    async def upload_image_batch(
        self, client_event_id: str, project_id: str, files: list[LocalFile]
    ) -> dict[str, object]:
        names = [file.file_name for file in files]
        self.chunks.append(names)
        index = len(self.chunks)
        if self.before_chunk is not None:
            await self.before_chunk(index)
        if index in self.chunk_errors:
            raise self.chunk_errors[index]
        failed = self.failed_files.get(index, [])
        return {
            "successful": [
                {"fileName": name, "success": True}
                for name in names
                if name not in failed
            ],
            "failed": [{"fileName": name, "error": "Corrupt file"} for name in failed],
            "stats": {"successful": len(names) - len(failed), "failed": len(failed)},
        }

    @property
    def uploaded_names(self) -> list[str]:
        return [name for chunk in self.chunks for name in chunk]


@dataclass
class FakeNotificationClient(NotificationClient):
    """Notification fake that records every call."""

    fail: bool = False
    uploaded: list[tuple[str, str, int]] = field(default_factory=list)
    re_edit: list[tuple[str, str, int]] = field(default_factory=list)

    async def notify_images_uploaded(
        self, project_id: str, client_event_id: str, image_count: int
    ) -> None:
        self.uploaded.append((project_id, client_event_id, image_count))
        if self.fail:
            raise NotificationFailure("notification service unavailable")

    async def notify_re_edit_requested(
        self, project_id: str, client_event_id: str, image_count: int
    ) -> None:
        self.re_edit.append((project_id, client_event_id, image_count))
        if self.fail:
            raise NotificationFailure("notification service unavailable")


@dataclass
class RecordingPreviewStore(PreviewStore):
    """Preview store that records creation and every revoke call."""

    created: list[str] = field(default_factory=list)
    revoked: list[str] = field(default_factory=list)

    def create(self, file: LocalFile) -> str:
        url = f"preview://{len(self.created) + 1}/{file.file_name}"
        self.created.append(url)
        return url

    def revoke(self, url: str) -> None:
        self.revoked.append(url)

    def assert_each_revoked_once(self) -> None:
        assert sorted(self.revoked) == sorted(self.created)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        studio_api_base_url="https://studio.test/api",
        studio_api_token="studio-token",
        tenant_id="tenant-1",
        admin_token="admin-token",
    )


@pytest.fixture
def studio_client() -> FakeStudioClient:
    client = FakeStudioClient()
    client.add_event("event-1", status="ds-1")
    client.add_images(
        image_row("img-1", "REVIEW_PENDING", "a.jpg", sort_order=0),
        image_row("img-2", "RE_EDIT_SUGGESTED", "b.jpg", sort_order=1),
        image_row("img-3", "RE_EDIT_SUGGESTED", "c.jpg", sort_order=2),
        image_row("img-4", "APPROVED", "d.jpg", sort_order=3),
        image_row("img-5", "DISCARDED", "e.jpg", sort_order=4),
    )
    return client


@pytest.fixture
def storage_client() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def notification_client() -> FakeNotificationClient:
    return FakeNotificationClient()


@pytest.fixture
def container(
    settings: Settings,
    studio_client: FakeStudioClient,
    storage_client: FakeStorageClient,
    notification_client: FakeNotificationClient,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return wire_services(
        settings,
        studio_client,
        storage_client,
        notification_client,
        close_resources,
    )
