"""Bulk actions over a selection of event images."""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Protocol

import httpx

from album_delivery.adapters.studio_client import StudioClient
from album_delivery.domain.albums import ClientEvent, Image
from album_delivery.domain.catalogs import APPROVED, RE_EDIT_SUGGESTED
from album_delivery.domain.errors import AlbumWorkflowError, ValidationError
from album_delivery.domain.results import BulkActionResult, ItemFailure
from album_delivery.domain.uploads import LocalFile
from album_delivery.services.albums import AlbumReader
from album_delivery.services.catalogs import CatalogService, StatusCatalogs
from album_delivery.services.delivery import DeliveryService, is_publishable
from album_delivery.services.image_workflow import (
    COVER_SLOTS,
    can_approve,
    can_request_re_edit,
    can_reupload,
    can_set_cover,
)
from album_delivery.services.notifications import Notifier
from album_delivery.services.transport import describe_http_error

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfirmationRequest:
    """A question the user must answer before a follow-up action runs."""

    title: str
    message: str
    confirm_label: str = "Confirm"


class Confirmer(Protocol):
    """Asks the user to confirm an action and awaits the answer."""

    async def confirm(self, request: ConfirmationRequest) -> bool:
        """Return True if the user confirmed."""


@dataclass
class BulkActionCoordinator:
    """Validates selections and runs best-effort bulk image actions."""

    client: StudioClient
    catalogs: CatalogService
    reader: AlbumReader
    delivery: DeliveryService
    notifier: Notifier

    async def request_re_edit(
        self, client_event_id: str, image_ids: list[str], comment: str | None
    ) -> BulkActionResult:
        """Mark images as needing a re-edit with a mandatory comment."""
        catalogs, event, selection = await self._load_selection(
            client_event_id, image_ids
        )
        can_request_re_edit(selection, catalogs.images, comment).require()
        target = catalogs.images.by_code(RE_EDIT_SUGGESTED)
        result = BulkActionResult(action="Request re-edit")
        ids = [image.image_id for image in selection]
        try:
            await self.client.bulk_update_images(
                ids, target.status_id, comment.strip() if comment else None
            )
        except httpx.HTTPError as exc:
            return self._fail_all(result, ids, describe_http_error(exc))
        await self._verify_status(result, client_event_id, ids, target.status_id)
        if result.success_count:
            await self.notifier.re_edit_requested(
                event.project_id, client_event_id, result.success_count
            )
        self._log(result, client_event_id)
        return result

    async def approve(
        self,
        client_event_id: str,
        image_ids: list[str],
        publish_after: bool = False,
        confirmer: Confirmer | None = None,
    ) -> BulkActionResult:
        """Approve images and optionally publish the event afterwards."""
        catalogs, _event, selection = await self._load_selection(
            client_event_id, image_ids
        )
        can_approve(selection, catalogs.images).require()
        approved = catalogs.images.by_code(APPROVED)
        result = BulkActionResult(action="Approve")
        ids = [image.image_id for image in selection]
        try:
            payload = await self.client.approve_images(ids)
        except httpx.HTTPError as exc:
            return self._fail_all(result, ids, describe_http_error(exc))
        _logger.info(
            "Approve acknowledged: event=%s approved=%s",
            client_event_id,
            payload.get("approvedCount") if isinstance(payload, dict) else None,
        )
        await self._verify_status(result, client_event_id, ids, approved.status_id)
        self._log(result, client_event_id)
        if publish_after and result.success_count:
            await self._publish_after_approval(result, client_event_id, confirmer)
        return result

    async def reupload(
        self, client_event_id: str, image_ids: list[str], files: list[LocalFile]
    ) -> BulkActionResult:
        """Replace re-edit images with edited files matched by filename."""
        catalogs, _event, selection = await self._load_selection(
            client_event_id, image_ids
        )
        can_reupload(selection, catalogs.images).require()
        if not files:
            raise ValidationError("Select the edited files to upload.")
        result = BulkActionResult(action="Re-upload")
        images_by_name: dict[str, list[Image]] = defaultdict(list)
        for image in selection:
            images_by_name[image.file_name].append(image)
        files_by_name: dict[str, list[LocalFile]] = defaultdict(list)
        for file in files:
            files_by_name[file.file_name].append(file)
        for name, named_files in files_by_name.items():
            if name not in images_by_name:
                result.failures.extend(
                    ItemFailure(name, "No matching image found") for _ in named_files
                )
        matched: list[str] = []
        for name, images in images_by_name.items():
            named_files = files_by_name.get(name, [])
            if not named_files:
                reason = f"No file named {name}"
            elif len(images) > 1 or len(named_files) > 1:
                reason = f"Duplicate file name {name}"
            else:
                matched.append(name)
                continue
            result.failures.extend(
                ItemFailure(image.image_id, reason) for image in images
            )
        if not matched:
            self._log(result, client_event_id)
            return result
        try:
            payload = await self.client.reupload_images(
                [images_by_name[name][0].image_id for name in matched],
                [files_by_name[name][0] for name in matched],
            )
        except httpx.HTTPError as exc:
            return self._fail_all(result, matched, describe_http_error(exc))
        outcomes = {
            str(row.get("fileName")): row
            for row in payload.get("results", [])
            if isinstance(row, dict)
        }
        for name in matched:
            row = outcomes.get(name)
            if row is not None and row.get("success"):
                result.success_count += 1
            else:
                reason = "No result returned"
                if row is not None:
                    reason = str(row.get("message") or row.get("error") or "Failed")
                result.failures.append(ItemFailure(name, reason))
        self._log(result, client_event_id)
        return result

    async def set_cover(
        self, client_event_id: str, image_ids: list[str], slot: str
    ) -> BulkActionResult:
        """Use one image as the project's cover for a device slot."""
        _catalogs, event, selection = await self._load_selection(
            client_event_id, image_ids
        )
        can_set_cover(selection, slot).require()
        image = selection[0]
        result = BulkActionResult(action="Set cover")
        try:
            await self.client.update_project_cover(
                event.project_id, COVER_SLOTS[slot], image.display_url or ""
            )
        except httpx.HTTPError as exc:
            return self._fail_all(result, [image.image_id], describe_http_error(exc))
        result.success_count = 1
        self._log(result, client_event_id)
        return result

    async def _load_selection(
        self, client_event_id: str, image_ids: list[str]
    ) -> tuple[StatusCatalogs, ClientEvent, list[Image]]:
        catalogs = await self.catalogs.load()
        event, images = await self.reader.get_event_with_images(client_event_id)
        by_id = {image.image_id: image for image in images}
        missing = [image_id for image_id in image_ids if image_id not in by_id]
        if missing:
            raise ValidationError(
                "Some selected images no longer exist. Refresh and try again.",
                missing,
            )
        unique_ids = list(dict.fromkeys(image_ids))
        return catalogs, event, [by_id[image_id] for image_id in unique_ids]

    async def _verify_status(
        self,
        result: BulkActionResult,
        client_event_id: str,
        image_ids: list[str],
        status_id: str,
    ) -> None:
        """Count successes from the server's view of the images."""
        try:
            refreshed = await self.reader.list_images(client_event_id)
        except AlbumWorkflowError:
            _logger.warning(
                "Could not verify bulk update; trusting acknowledgement: event=%s",
                client_event_id,
            )
            result.success_count += len(image_ids)
            return
        statuses = {image.image_id: image.image_status_id for image in refreshed}
        for image_id in image_ids:
            if statuses.get(image_id) == status_id:
                result.success_count += 1
            else:
                result.failures.append(
                    ItemFailure(image_id, "Status was not updated")
                )

    async def _publish_after_approval(
        self,
        result: BulkActionResult,
        client_event_id: str,
        confirmer: Confirmer | None,
    ) -> None:
        catalogs = await self.catalogs.load()
        event = await self.reader.get_event(client_event_id)
        if not is_publishable(catalogs.delivery, event.event_delivery_status_id):
            return
        if confirmer is not None:
            confirmed = await confirmer.confirm(
                ConfirmationRequest(
                    title="Publish to customer",
                    message="Images approved. Publish this event to the customer now?",
                    confirm_label="Publish",
                )
            )
            if not confirmed:
                return
        try:
            await self.delivery.publish(client_event_id)
        except AlbumWorkflowError as exc:
            _logger.warning(
                "Publish after approval failed: event=%s error=%s",
                client_event_id,
                exc,
            )
            result.publish_error = str(exc)
            return
        result.published = True

    @staticmethod
    def _fail_all(
        result: BulkActionResult, identifiers: list[str], reason: str
    ) -> BulkActionResult:
        result.failures.extend(
            ItemFailure(identifier, reason) for identifier in identifiers
        )
        _logger.warning(
            "%s failed for %s item(s): %s", result.action, len(identifiers), reason
        )
        return result

    @staticmethod
    def _log(result: BulkActionResult, client_event_id: str) -> None:
        _logger.info(
            "%s finished: event=%s succeeded=%s failed=%s",
            result.action,
            client_event_id,
            result.success_count,
            len(result.failures),
        )
