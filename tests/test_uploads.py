"""Tests for the chunked upload pipeline."""

import asyncio

import pytest

from album_delivery.domain.errors import QuotaExceeded, TransportError, ValidationError
from album_delivery.domain.uploads import (
    ABORTED,
    COMPLETED,
    FAILED,
    PARTIALLY_FAILED,
    QUEUED,
    REJECTED,
    UPLOADED,
)
from album_delivery.services.uploads import (
    InMemoryPreviewStore,
    UploadBatch,
    chunked,
)
from tests.conftest import RecordingPreviewStore, http_error, local_files


def _batch(container, previews=None) -> UploadBatch:
    batch = container.upload_service.new_batch("event-1", "project-1")
    if previews is not None:
        batch.previews = previews
    return batch


def test_partial_chunk_failure_is_isolated(
    container, storage_client, notification_client
) -> None:
    chunk_two = [f"photo-{index:02d}.jpg" for index in (12, 15, 19)]
    storage_client.failed_files[2] = chunk_two
    batch = _batch(container)
    batch.add_files(local_files(25))

    report = asyncio.run(batch.start())

    assert [len(chunk) for chunk in storage_client.chunks] == [10, 10, 5]
    assert report.uploaded == 22
    assert report.failed_files == chunk_two
    assert report.state == PARTIALLY_FAILED
    assert report.outcome == "partial"
    assert notification_client.uploaded == [("project-1", "event-1", 22)]
    assert storage_client.quota_calls == [("tenant-1", 2500)]


def test_chunk_transport_failure_marks_whole_chunk(
    container, storage_client, notification_client
) -> None:
    storage_client.chunk_errors[2] = http_error(502)
    batch = _batch(container)
    batch.add_files(local_files(25))

    report = asyncio.run(batch.start())

    assert report.uploaded == 15
    assert len(report.failed_files) == 10
    assert len(storage_client.chunks) == 3
    assert {item.error for item in batch.items if item.status == FAILED} == {
        "Request failed with status 502"
    }
    assert notification_client.uploaded == [("project-1", "event-1", 15)]


def test_unexpected_chunk_error_fails_only_that_chunk(
    container, storage_client, notification_client
) -> None:
    storage_client.chunk_errors[2] = ValueError("malformed response body")
    batch = _batch(container)
    batch.add_files(local_files(25))

    report = asyncio.run(batch.start())

    assert report.state == PARTIALLY_FAILED
    assert report.uploaded == 15
    assert report.failed_files == [f"photo-{index:02d}.jpg" for index in range(11, 21)]
    assert len(storage_client.chunks) == 3
    assert not batch.running
    assert notification_client.uploaded == [("project-1", "event-1", 15)]

    retry = asyncio.run(batch.start())

    assert retry.state == COMPLETED
    assert storage_client.chunks[-1] == report.failed_files


def test_non_object_chunk_response_fails_the_chunk(container, storage_client) -> None:
    async def upload_image_batch(*args, **kwargs):  # type: ignore[no-untyped-def]
        return ["unexpected"]

    storage_client.upload_image_batch = upload_image_batch
    batch = _batch(container)
    batch.add_files(local_files(2))

    report = asyncio.run(batch.start())

    assert report.uploaded == 0
    assert report.state == PARTIALLY_FAILED
    assert {item.error for item in batch.items} == {"Upload failed"}


def test_crash_during_upload_settles_batch(container, storage_client) -> None:
    previews = RecordingPreviewStore()
    batch = _batch(container, previews)

    def on_progress(progress) -> None:  # type: ignore[no-untyped-def]
        raise RuntimeError("progress listener broke")

    batch.on_progress = on_progress
    batch.add_files(local_files(15))

    with pytest.raises(RuntimeError):
        asyncio.run(batch.start())

    assert batch.state == "idle"
    assert not batch.running
    batch.add_files(local_files(1, prefix="extra"))
    batch.clear()
    assert batch.items == []
    previews.assert_each_revoked_once()


def test_quota_rejection_sends_no_chunk(
    container, storage_client, notification_client
) -> None:
    storage_client.can_upload = False
    previews = RecordingPreviewStore()
    batch = _batch(container, previews)
    batch.add_files(local_files(5, size=1024 * 1024))

    with pytest.raises(QuotaExceeded) as excinfo:
        asyncio.run(batch.start())

    assert batch.state == REJECTED
    assert storage_client.chunks == []
    assert excinfo.value.total_bytes == 5 * 1024 * 1024
    assert excinfo.value.stats is not None
    assert excinfo.value.stats.plan_name == "Starter"
    assert notification_client.uploaded == []
    batch.clear()
    previews.assert_each_revoked_once()


def test_quota_check_failure_returns_to_idle(container, storage_client) -> None:
    storage_client.quota_error = http_error(500)
    batch = _batch(container)
    batch.add_files(local_files(3))

    with pytest.raises(TransportError):
        asyncio.run(batch.start())

    assert batch.state == "idle"
    assert storage_client.chunks == []


def test_cancel_between_chunks_keeps_finished_chunks(
    container, storage_client, notification_client
) -> None:
    batch = _batch(container)

    def on_progress(progress) -> None:  # type: ignore[no-untyped-def]
        if progress.uploaded == 20:
            batch.cancel()

    batch.on_progress = on_progress
    batch.add_files(local_files(25))

    report = asyncio.run(batch.start())

    assert report.state == ABORTED
    assert report.uploaded == 20
    assert len(storage_client.chunks) == 2
    assert [item.status for item in batch.items[20:]] == [QUEUED] * 5
    assert report.failed_files == []
    assert "20 of 25" in report.summary()
    assert notification_client.uploaded == [("project-1", "event-1", 20)]


def test_cancel_aborts_in_flight_chunk(
    container, storage_client, notification_client
) -> None:
    batch = _batch(container)

    async def before_chunk(index: int) -> None:
        if index == 2:
            batch.cancel()
            await asyncio.sleep(0)

    storage_client.before_chunk = before_chunk
    batch.add_files(local_files(25))

    report = asyncio.run(batch.start())

    assert report.state == ABORTED
    assert report.uploaded == 10
    assert [item.status for item in batch.items].count(UPLOADED) == 10
    assert [item.status for item in batch.items].count(QUEUED) == 15
    assert len(storage_client.chunks) == 2
    assert len(notification_client.uploaded) == 1


def test_every_preview_is_revoked_once(container, storage_client) -> None:
    previews = RecordingPreviewStore()
    storage_client.failed_files[1] = ["photo-03.jpg"]
    batch = _batch(container, previews)
    items = batch.add_files(local_files(5))

    batch.remove(items[0].id)
    assert previews.revoked == [previews.created[0]]
    assert items[0].preview_url is None

    asyncio.run(batch.start())
    assert len(previews.revoked) == 4
    batch.clear()

    previews.assert_each_revoked_once()
    assert batch.items == []


def test_retry_only_resends_failed_items(
    container, storage_client, notification_client
) -> None:
    storage_client.failed_files[1] = ["photo-02.jpg"]
    batch = _batch(container)
    batch.add_files(local_files(3))

    first = asyncio.run(batch.start())
    second = asyncio.run(batch.start())

    assert first.uploaded == 2
    assert second.uploaded == 1
    assert second.state == COMPLETED
    assert storage_client.chunks[-1] == ["photo-02.jpg"]
    assert [count for *_, count in notification_client.uploaded] == [2, 1]


def test_notification_failure_is_swallowed(container, notification_client) -> None:
    notification_client.fail = True
    batch = _batch(container)
    batch.add_files(local_files(2))

    report = asyncio.run(batch.start())

    assert report.state == COMPLETED
    assert not report.notified


def test_start_requires_files(container) -> None:
    with pytest.raises(ValidationError):
        asyncio.run(_batch(container).start())


def test_progress_reports_counts(container, storage_client) -> None:
    storage_client.failed_files[1] = ["photo-01.jpg"]
    batch = _batch(container)
    batch.add_files(local_files(4))

    asyncio.run(batch.start())
    progress = batch.progress

    assert (progress.total, progress.uploaded, progress.failed) == (4, 3, 1)
    assert progress.fraction == 0.75


def test_chunked_splits_in_order() -> None:
    assert [len(chunk) for chunk in chunked(list(range(23)), 10)] == [10, 10, 3]
    with pytest.raises(ValueError):
        list(chunked([1], 0))


def test_in_memory_preview_store_rejects_double_revoke() -> None:
    store = InMemoryPreviewStore()
    url = store.create(local_files(1)[0])

    store.revoke(url)

    with pytest.raises(RuntimeError):
        store.revoke(url)
