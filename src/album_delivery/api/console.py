"""Console API endpoints with simple token auth."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    Header,
    HTTPException,
    Request,
    UploadFile,
    status,
)

from album_delivery.api.models import (
    AdvanceRequest,
    ApproveRequest,
    BulkActionResponse,
    ClientEventResponse,
    CoverRequest,
    DeliveryStateResponse,
    DeliveryStatusModel,
    ReEditRequest,
    UploadReportResponse,
)
from album_delivery.domain.errors import ValidationError
from album_delivery.domain.uploads import LocalFile
from album_delivery.services.delivery import is_publishable, next_available_status

if TYPE_CHECKING:
    from album_delivery.containers import AppContainer

router = APIRouter(prefix="/events", tags=["events"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/{client_event_id}/delivery", dependencies=[Depends(require_admin)])
async def delivery_state(
    client_event_id: str, request: Request
) -> DeliveryStateResponse:
    """Return the current and next delivery status of an event."""
    container: AppContainer = request.app.state.container
    catalogs = await container.catalog_service.load()
    event = await container.album_reader.get_event(client_event_id)
    current_id = event.event_delivery_status_id
    return DeliveryStateResponse(
        client_event_id=client_event_id,
        current=DeliveryStatusModel.from_status(catalogs.delivery.get(current_id)),
        next=DeliveryStatusModel.from_status(
            next_available_status(catalogs.delivery, current_id)
        ),
        publishable=is_publishable(catalogs.delivery, current_id),
    )


@router.post(
    "/{client_event_id}/delivery/advance", dependencies=[Depends(require_admin)]
)
async def advance_delivery(
    client_event_id: str, payload: AdvanceRequest, request: Request
) -> ClientEventResponse:
    """Move an event one delivery step forward."""
    container: AppContainer = request.app.state.container
    if payload.target_status_id is None:
        event = await container.delivery_service.advance_to_next(client_event_id)
    else:
        event = await container.delivery_service.advance(
            client_event_id, payload.target_status_id
        )
    return ClientEventResponse.from_event(event)


@router.post("/{client_event_id}/publish", dependencies=[Depends(require_admin)])
async def publish_event(client_event_id: str, request: Request) -> ClientEventResponse:
    """Publish an event to the customer."""
    container: AppContainer = request.app.state.container
    event = await container.delivery_service.publish(client_event_id)
    return ClientEventResponse.from_event(event)


@router.post(
    "/{client_event_id}/images/approve", dependencies=[Depends(require_admin)]
)
async def approve_images(
    client_event_id: str, payload: ApproveRequest, request: Request
) -> BulkActionResponse:
    """Approve images; publishAfter doubles as the publish confirmation."""
    container: AppContainer = request.app.state.container
    result = await container.bulk_actions.approve(
        client_event_id, payload.image_ids, publish_after=payload.publish_after
    )
    return BulkActionResponse.from_result(result)


@router.post(
    "/{client_event_id}/images/re-edit", dependencies=[Depends(require_admin)]
)
async def request_re_edit(
    client_event_id: str, payload: ReEditRequest, request: Request
) -> BulkActionResponse:
    """Request re-edits with a comment."""
    container: AppContainer = request.app.state.container
    result = await container.bulk_actions.request_re_edit(
        client_event_id, payload.image_ids, payload.comment
    )
    return BulkActionResponse.from_result(result)


@router.post(
    "/{client_event_id}/images/reupload", dependencies=[Depends(require_admin)]
)
async def reupload_images(
    client_event_id: str,
    request: Request,
    image_ids: str = Form(alias="imageIds"),
    images: list[UploadFile] = File(),
) -> BulkActionResponse:
    """Replace re-edit images with edited files."""
    container: AppContainer = request.app.state.container
    result = await container.bulk_actions.reupload(
        client_event_id, _parse_ids(image_ids), await _read_files(images)
    )
    return BulkActionResponse.from_result(result)


@router.post("/{client_event_id}/images/cover", dependencies=[Depends(require_admin)])
async def set_cover(
    client_event_id: str, payload: CoverRequest, request: Request
) -> BulkActionResponse:
    """Use one image as a project cover."""
    container: AppContainer = request.app.state.container
    result = await container.bulk_actions.set_cover(
        client_event_id, payload.image_ids, payload.slot
    )
    return BulkActionResponse.from_result(result)


@router.post("/{client_event_id}/uploads", dependencies=[Depends(require_admin)])
async def upload_images(
    client_event_id: str,
    request: Request,
    images: list[UploadFile] = File(),
) -> UploadReportResponse:
    """Upload new images to an event in chunks."""
    container: AppContainer = request.app.state.container
    event = await container.album_reader.get_event(client_event_id)
    batch = container.upload_service.new_batch(client_event_id, event.project_id)
    batch.add_files(await _read_files(images))
    try:
        report = await batch.start()
    finally:
        batch.clear()
    return UploadReportResponse.from_report(report)


def _parse_ids(raw: str) -> list[str]:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        value = [part.strip() for part in raw.split(",") if part.strip()]
    if not isinstance(value, list):
        raise ValidationError("imageIds must be a list of image ids.")
    return [str(item) for item in value]


async def _read_files(uploads: list[UploadFile]) -> list[LocalFile]:
    return [
        LocalFile(
            file_name=upload.filename or "",
            content=await upload.read(),
            content_type=upload.content_type or "application/octet-stream",
        )
        for upload in uploads
    ]
