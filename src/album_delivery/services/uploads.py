"""Chunked, cancellable image upload pipeline with a storage quota gate."""

import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Protocol
from uuid import uuid4

import httpx

from album_delivery.adapters.storage_client import StorageClient
from album_delivery.domain.errors import QuotaExceeded, ValidationError
from album_delivery.domain.storage import QuotaCheck, StorageStats
from album_delivery.domain.uploads import (
    ABORTED,
    CHECKING_QUOTA,
    COMPLETED,
    FAILED,
    IDLE,
    PARTIALLY_FAILED,
    QUEUED,
    REJECTED,
    UPLOADED,
    UPLOADING,
    LocalFile,
    UploadItem,
    UploadProgress,
    UploadReport,
)
from album_delivery.services.cancellation import CancellationToken, OperationCancelled
from album_delivery.services.notifications import Notifier
from album_delivery.services.transport import describe_http_error, transport_errors

DEFAULT_CHUNK_SIZE = 10

_logger = logging.getLogger(__name__)


class PreviewStore(Protocol):
    """Creates and releases local preview URLs for selected files."""

    def create(self, file: LocalFile) -> str:
        """Create a preview URL for a file."""

    def revoke(self, url: str) -> None:
        """Release a preview URL."""


@dataclass
class InMemoryPreviewStore(PreviewStore):
    """Preview store that keeps file contents in memory."""

    active: dict[str, LocalFile] = field(default_factory=dict)

    def create(self, file: LocalFile) -> str:
        """Register a file and return its preview URL."""
        url = f"preview://{uuid4().hex}/{file.file_name}"
        self.active[url] = file
        return url

    def revoke(self, url: str) -> None:
        """Release a preview URL; releasing twice is an error."""
        if self.active.pop(url, None) is None:
            raise RuntimeError(f"Preview URL {url} is not active")


def chunked(items: Sequence[UploadItem], size: int) -> Iterator[list[UploadItem]]:
    """Split items into consecutive chunks of at most size items."""
    if size < 1:
        raise ValueError("Chunk size must be at least 1")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


@dataclass
class UploadBatch:
    """One upload session for an event.

    Chunks are sent one at a time. A single notification is sent once the
    batch settles, and every preview URL is released exactly once.
    """

    storage: StorageClient
    notifier: Notifier
    previews: PreviewStore
    tenant_id: str
    client_event_id: str
    project_id: str
    chunk_size: int = DEFAULT_CHUNK_SIZE
    on_progress: Callable[[UploadProgress], None] | None = None
    items: list[UploadItem] = field(default_factory=list)
    state: str = IDLE
    _token: CancellationToken | None = field(default=None, repr=False)

    @property
    def running(self) -> bool:
        """Return True while the quota check or upload is in progress."""
        return self.state in {CHECKING_QUOTA, UPLOADING}

    @property
    def progress(self) -> UploadProgress:
        """Return a snapshot of batch progress."""
        return UploadProgress(
            state=self.state,
            total=len(self.items),
            uploaded=sum(1 for item in self.items if item.status == UPLOADED),
            failed=sum(1 for item in self.items if item.status == FAILED),
        )

    def add_files(self, files: Sequence[LocalFile]) -> list[UploadItem]:
        """Queue files and create their previews."""
        if self.running:
            raise ValidationError("Files cannot be added while uploading.")
        added = [
            UploadItem(
                id=uuid4().hex, file=file, preview_url=self.previews.create(file)
            )
            for file in files
        ]
        self.items.extend(added)
        return added

    def remove(self, item_id: str) -> None:
        """Remove a queued or failed item and release its preview."""
        if self.running:
            raise ValidationError("Files cannot be removed while uploading.")
        for item in self.items:
            if item.id == item_id:
                self._release(item)
                self.items.remove(item)
                return
        raise ValidationError(f"Unknown upload item {item_id}", [item_id])

    def cancel(self) -> None:
        """Stop after the in-flight chunk is aborted; finished chunks stay."""
        if self._token is not None and self.running:
            _logger.info("Upload cancel requested: event=%s", self.client_event_id)
            self._token.cancel()

    def clear(self) -> None:
        """End the session: cancel any run and release every preview."""
        self.cancel()
        for item in self.items:
            self._release(item)
        self.items = []
        if not self.running:
            self.state = IDLE

    async def start(self) -> UploadReport:
        """Check the quota, then upload pending items chunk by chunk.

        Raises QuotaExceeded before any image bytes are sent if the
        batch does not fit the tenant's storage.
        """
        if self.running:
            raise ValidationError("An upload is already in progress.")
        pending = [item for item in self.items if item.status != UPLOADED]
        if not pending:
            raise ValidationError("Select images to upload.")
        for item in pending:
            item.status = QUEUED
            item.error = None

        token = CancellationToken()
        self._token = token
        total_bytes = sum(item.file.size for item in pending)
        self._set_state(CHECKING_QUOTA)
        try:
            quota = await token.run(self._check_quota(total_bytes))
        except OperationCancelled:
            return await self._finish(pending, aborted=True)
        except BaseException:
            self._token = None
            self._set_state(IDLE)
            raise
        if not quota.can_upload:
            self._token = None
            self._set_state(REJECTED)
            stats = await self._storage_stats()
            _logger.warning(
                "Upload rejected by quota: event=%s bytes=%s",
                self.client_event_id,
                total_bytes,
            )
            raise QuotaExceeded(total_bytes, stats)

        self._set_state(UPLOADING)
        try:
            aborted = await self._upload_chunks(pending, token)
        except BaseException:
            self._token = None
            self._set_state(IDLE)
            raise
        return await self._finish(pending, aborted=aborted)

    async def _upload_chunks(
        self, pending: list[UploadItem], token: CancellationToken
    ) -> bool:
        """Send pending items chunk by chunk; return True if cancelled."""
        for chunk in chunked(pending, self.chunk_size):
            if token.cancelled:
                return True
            try:
                payload = await token.run(
                    self.storage.upload_image_batch(
                        self.client_event_id,
                        self.project_id,
                        [item.file for item in chunk],
                    )
                )
                failed = failed_files_of(payload)
            except OperationCancelled:
                return True
            except httpx.HTTPError as exc:
                self._fail_chunk(chunk, describe_http_error(exc))
            except Exception:
                _logger.exception(
                    "Upload chunk crashed: event=%s items=%s",
                    self.client_event_id,
                    len(chunk),
                )
                self._fail_chunk(chunk, "Upload failed")
            else:
                self._apply_chunk_result(chunk, failed)
            if self.on_progress is not None:
                self.on_progress(self.progress)
        return False

    def _fail_chunk(self, chunk: list[UploadItem], reason: str) -> None:
        _logger.warning(
            "Upload chunk failed: event=%s items=%s error=%s",
            self.client_event_id,
            len(chunk),
            reason,
        )
        for item in chunk:
            item.status = FAILED
            item.error = reason

    async def _check_quota(self, total_bytes: int) -> QuotaCheck:
        with transport_errors(self.client_event_id):
            payload = await self.storage.check_upload_quota(
                self.tenant_id, total_bytes
            )
        remaining = payload.get("remainingGB")
        return QuotaCheck(
            can_upload=bool(payload.get("canUpload")),
            remaining_gb=float(remaining)
            if isinstance(remaining, int | float)
            else None,
        )

    async def _storage_stats(self) -> StorageStats | None:
        try:
            payload = await self.storage.get_storage_stats(self.tenant_id)
        except httpx.HTTPError:
            _logger.exception("Failed to load storage stats: tenant=%s", self.tenant_id)
            return None
        return parse_storage_stats(payload)

    def _apply_chunk_result(
        self, chunk: list[UploadItem], failed: dict[str, str]
    ) -> None:
        for item in chunk:
            if item.file.file_name in failed:
                item.status = FAILED
                item.error = failed[item.file.file_name]
            else:
                item.status = UPLOADED
                self._release(item)
        _logger.info(
            "Upload chunk finished: event=%s uploaded=%s failed=%s",
            self.client_event_id,
            len(chunk) - sum(1 for item in chunk if item.status == FAILED),
            sum(1 for item in chunk if item.status == FAILED),
        )

    async def _finish(self, pending: list[UploadItem], aborted: bool) -> UploadReport:
        uploaded = sum(1 for item in pending if item.status == UPLOADED)
        failed_files = [
            item.file.file_name for item in pending if item.status == FAILED
        ]
        if aborted:
            self._set_state(ABORTED)
            for item in self.items:
                self._release(item)
        elif failed_files:
            self._set_state(PARTIALLY_FAILED)
        else:
            self._set_state(COMPLETED)
        self._token = None
        notified = False
        if uploaded:
            notified = await self.notifier.images_uploaded(
                self.project_id, self.client_event_id, uploaded
            )
        report = UploadReport(
            state=self.state,
            total=len(pending),
            uploaded=uploaded,
            failed_files=failed_files,
            notified=notified,
        )
        _logger.info(
            "Upload finished: event=%s state=%s uploaded=%s failed=%s",
            self.client_event_id,
            report.state,
            report.uploaded,
            len(report.failed_files),
        )
        return report

    def _release(self, item: UploadItem) -> None:
        if item.preview_url is not None:
            url, item.preview_url = item.preview_url, None
            self.previews.revoke(url)

    def _set_state(self, state: str) -> None:
        _logger.debug(
            "Upload state: event=%s %s -> %s", self.client_event_id, self.state, state
        )
        self.state = state


def failed_files_of(payload: object) -> dict[str, str]:
    """Map file names the storage API rejected to their error messages.

    Raises ValueError if the response is not an upload result object.
    """
    if not isinstance(payload, dict):
        raise ValueError(f"Unexpected upload response: {type(payload).__name__}")
    failed: dict[str, str] = {}
    for row in payload.get("failed") or []:
        if isinstance(row, dict) and row.get("fileName"):
            failed[str(row["fileName"])] = str(row.get("error") or "Upload failed")
    return failed


def parse_storage_stats(payload: dict[str, object]) -> StorageStats:
    """Build storage stats from an API payload."""
    return StorageStats(
        plan_name=str(payload.get("planName") or "Unknown"),
        storage_used_gb=float(payload.get("storageUsedGB") or 0),
        storage_limit_gb=float(payload.get("storageLimitGB") or 0),
        percentage_used=float(payload.get("percentageUsed") or 0),
        is_near_limit=bool(payload.get("isNearLimit")),
        is_over_limit=bool(payload.get("isOverLimit")),
    )


@dataclass
class UploadService:
    """Creates upload sessions for events."""

    storage: StorageClient
    notifier: Notifier
    tenant_id: str
    chunk_size: int = DEFAULT_CHUNK_SIZE
    preview_factory: Callable[[], PreviewStore] = InMemoryPreviewStore

    def new_batch(
        self,
        client_event_id: str,
        project_id: str,
        on_progress: Callable[[UploadProgress], None] | None = None,
    ) -> UploadBatch:
        """Start a fresh upload session for an event."""
        return UploadBatch(
            storage=self.storage,
            notifier=self.notifier,
            previews=self.preview_factory(),
            tenant_id=self.tenant_id,
            client_event_id=client_event_id,
            project_id=project_id,
            chunk_size=self.chunk_size,
            on_progress=on_progress,
        )
