"""Pydantic request and response models for the console API."""

from pydantic import BaseModel, ConfigDict, Field

from album_delivery.domain.albums import ClientEvent
from album_delivery.domain.catalogs import EventDeliveryStatus
from album_delivery.domain.results import BulkActionResult
from album_delivery.domain.storage import StorageStats
from album_delivery.domain.uploads import UploadReport


class ApiModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


class DeliveryStatusModel(ApiModel):
    """A delivery status catalog entry."""

    status_id: str = Field(alias="statusId")
    status_code: str = Field(alias="statusCode")
    status_description: str = Field(alias="statusDescription")
    step: int

    @classmethod
    def from_status(
        cls, status: EventDeliveryStatus | None
    ) -> "DeliveryStatusModel | None":
        if status is None:
            return None
        return cls(
            status_id=status.status_id,
            status_code=status.status_code,
            status_description=status.status_description,
            step=status.step,
        )


class DeliveryStateResponse(ApiModel):
    """Current delivery state of an event."""

    client_event_id: str = Field(alias="clientEventId")
    current: DeliveryStatusModel | None = None
    next: DeliveryStatusModel | None = None
    publishable: bool


class ClientEventResponse(ApiModel):
    """A client event after a status change."""

    client_event_id: str = Field(alias="clientEventId")
    project_id: str = Field(alias="projectId")
    event_delivery_status_id: str | None = Field(
        default=None, alias="eventDeliveryStatusId"
    )

    @classmethod
    def from_event(cls, event: ClientEvent) -> "ClientEventResponse":
        return cls(
            client_event_id=event.client_event_id,
            project_id=event.project_id,
            event_delivery_status_id=event.event_delivery_status_id,
        )


class AdvanceRequest(ApiModel):
    """Target of a delivery status change; empty means the next step."""

    target_status_id: str | None = Field(default=None, alias="targetStatusId")


class ApproveRequest(ApiModel):
    """Approve a selection, optionally publishing afterwards."""

    image_ids: list[str] = Field(alias="imageIds")
    publish_after: bool = Field(default=False, alias="publishAfter")


class ReEditRequest(ApiModel):
    """Request re-edits for a selection."""

    image_ids: list[str] = Field(alias="imageIds")
    comment: str | None = None


class CoverRequest(ApiModel):
    """Use one image as a project cover."""

    image_ids: list[str] = Field(alias="imageIds")
    slot: str


class ItemFailureModel(ApiModel):
    identifier: str
    reason: str


class BulkActionResponse(ApiModel):
    """Outcome of a bulk image action."""

    action: str
    outcome: str
    success_count: int = Field(alias="successCount")
    failures: list[ItemFailureModel]
    published: bool = False
    publish_error: str | None = Field(default=None, alias="publishError")
    summary: str

    @classmethod
    def from_result(cls, result: BulkActionResult) -> "BulkActionResponse":
        return cls(
            action=result.action,
            outcome=result.outcome,
            success_count=result.success_count,
            failures=[
                ItemFailureModel(identifier=f.identifier, reason=f.reason)
                for f in result.failures
            ],
            published=result.published,
            publish_error=result.publish_error,
            summary=result.summary(),
        )


class UploadReportResponse(ApiModel):
    """Outcome of an upload session."""

    state: str
    outcome: str
    total: int
    uploaded: int
    failed_files: list[str] = Field(alias="failedFiles")
    notified: bool
    summary: str

    @classmethod
    def from_report(cls, report: UploadReport) -> "UploadReportResponse":
        return cls(
            state=report.state,
            outcome=report.outcome,
            total=report.total,
            uploaded=report.uploaded,
            failed_files=list(report.failed_files),
            notified=report.notified,
            summary=report.summary(),
        )


class StorageStatsModel(ApiModel):
    """Plan and usage shown with an upgrade prompt."""

    plan_name: str = Field(alias="planName")
    storage_used_gb: float = Field(alias="storageUsedGB")
    storage_limit_gb: float = Field(alias="storageLimitGB")
    percentage_used: float = Field(alias="percentageUsed")
    is_near_limit: bool = Field(alias="isNearLimit")
    is_over_limit: bool = Field(alias="isOverLimit")

    @classmethod
    def from_stats(cls, stats: StorageStats) -> "StorageStatsModel":
        return cls(
            plan_name=stats.plan_name,
            storage_used_gb=stats.storage_used_gb,
            storage_limit_gb=stats.storage_limit_gb,
            percentage_used=stats.percentage_used,
            is_near_limit=stats.is_near_limit,
            is_over_limit=stats.is_over_limit,
        )
