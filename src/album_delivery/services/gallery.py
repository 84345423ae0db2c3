"""Screen-level gallery state for one event."""

import asyncio
import logging
from dataclasses import dataclass, field

from album_delivery.adapters.studio_client import StudioClient
from album_delivery.domain.albums import ClientEvent, Image
from album_delivery.domain.catalogs import EventDeliveryStatus
from album_delivery.domain.errors import ValidationError
from album_delivery.domain.results import SUCCESS, BulkActionResult
from album_delivery.domain.uploads import LocalFile
from album_delivery.services.albums import AlbumReader, sort_images
from album_delivery.services.bulk_actions import BulkActionCoordinator, Confirmer
from album_delivery.services.catalogs import CatalogService, StatusCatalogs
from album_delivery.services.delivery import (
    DeliveryService,
    is_publishable,
    next_available_status,
)
from album_delivery.services.image_workflow import filter_by_status
from album_delivery.services.transport import transport_errors

SORT_KEYS = ("custom", "file_name", "captured_at", "uploaded_at")

_logger = logging.getLogger(__name__)


@dataclass
class GalleryCache:
    """Server-authoritative state; replaced wholesale on every fetch."""

    catalogs: StatusCatalogs | None = None
    event: ClientEvent | None = None
    images: list[Image] = field(default_factory=list)


@dataclass
class GalleryUiState:
    """Local-only state that survives refreshes."""

    selection: set[str] = field(default_factory=set)
    pending_order: list[str] | None = None
    status_filter: set[str] | None = None
    sort_key: str = "custom"

    @property
    def has_unsaved_order(self) -> bool:
        """Return True if the gallery was rearranged but not saved."""
        return self.pending_order is not None


@dataclass
class AlbumGallery:
    """Combines catalogs, event state and UI state for the gallery screen."""

    client_event_id: str
    client: StudioClient
    catalogs: CatalogService
    reader: AlbumReader
    delivery: DeliveryService
    actions: BulkActionCoordinator
    cache: GalleryCache = field(default_factory=GalleryCache)
    ui: GalleryUiState = field(default_factory=GalleryUiState)

    async def load(self) -> None:
        """Fetch everything for a fresh visit and reset UI state."""
        catalogs, (event, images) = await asyncio.gather(
            self.catalogs.load(),
            self.reader.get_event_with_images(self.client_event_id),
        )
        self.cache = GalleryCache(catalogs=catalogs, event=event, images=images)
        self.ui = GalleryUiState()

    async def refresh(self) -> None:
        """Re-fetch server state, keeping UI state where it still applies."""
        event, images = await self.reader.get_event_with_images(self.client_event_id)
        before = {image.image_id for image in self.cache.images}
        after = {image.image_id for image in images}
        self.cache.event = event
        self.cache.images = images
        if before != after:
            self.ui.selection.clear()
            self.ui.pending_order = None

    @property
    def catalog(self) -> StatusCatalogs:
        """Return the loaded catalogs."""
        if self.cache.catalogs is None:
            raise ValidationError("The gallery has not been loaded yet.")
        return self.cache.catalogs

    @property
    def event(self) -> ClientEvent:
        """Return the loaded event."""
        if self.cache.event is None:
            raise ValidationError("The gallery has not been loaded yet.")
        return self.cache.event

    @property
    def ordered_images(self) -> list[Image]:
        """Return every image in display order, discarded ones included."""
        if self.ui.pending_order is not None and self.ui.sort_key == "custom":
            by_id = {image.image_id: image for image in self.cache.images}
            return [by_id[image_id] for image_id in self.ui.pending_order]
        return sort_images(self.cache.images, self.ui.sort_key)

    @property
    def visible_images(self) -> list[Image]:
        """Return the ordered images after the status filter."""
        return filter_by_status(
            self.ordered_images, self.catalog.images, self.ui.status_filter
        )

    @property
    def selected_images(self) -> list[Image]:
        """Return the selected images in display order."""
        return [
            image
            for image in self.ordered_images
            if image.image_id in self.ui.selection
        ]

    @property
    def next_status(self) -> EventDeliveryStatus | None:
        """Return the only status the event may advance to."""
        return next_available_status(
            self.catalog.delivery, self.event.event_delivery_status_id
        )

    @property
    def publishable(self) -> bool:
        """Return True if publishing to the customer is currently allowed."""
        return is_publishable(
            self.catalog.delivery, self.event.event_delivery_status_id
        )

    def set_sort_key(self, key: str) -> None:
        if key not in SORT_KEYS:
            raise ValidationError(f"Unknown sort key {key!r}")
        self.ui.sort_key = key

    def set_status_filter(self, codes: set[str] | None) -> None:
        for code in codes or ():
            self.catalog.images.by_code(code)
        self.ui.status_filter = set(codes) if codes else None

    def select(self, image_ids: list[str]) -> None:
        """Add images to the selection."""
        known = {image.image_id for image in self.cache.images}
        self.ui.selection.update(
            image_id for image_id in image_ids if image_id in known
        )

    def toggle(self, image_id: str) -> None:
        if image_id in self.ui.selection:
            self.ui.selection.discard(image_id)
        else:
            self.select([image_id])

    def select_all(self) -> None:
        """Select every visible image."""
        self.ui.selection = {image.image_id for image in self.visible_images}

    def clear_selection(self) -> None:
        self.ui.selection.clear()

    def move(self, from_index: int, to_index: int) -> None:
        """Move an image within the custom order without saving."""
        if self.ui.sort_key != "custom":
            raise ValidationError("Switch to the custom order to rearrange images.")
        order = [image.image_id for image in self.ordered_images]
        if not (0 <= from_index < len(order) and 0 <= to_index < len(order)):
            raise ValidationError("Image position is out of range.")
        order.insert(to_index, order.pop(from_index))
        self.ui.pending_order = order

    def discard_order(self) -> None:
        self.ui.pending_order = None

    async def save_order(self) -> None:
        """Persist the pending order; the server assigns dense sort orders."""
        if self.ui.pending_order is None:
            return
        with transport_errors(self.client_event_id):
            await self.client.reorder_images(
                self.client_event_id, list(self.ui.pending_order)
            )
        _logger.info(
            "Gallery order saved: event=%s images=%s",
            self.client_event_id,
            len(self.ui.pending_order),
        )
        self.ui.pending_order = None
        await self.refresh()

    def drop_images(self, image_ids: list[str]) -> None:
        """Forget images that were deleted elsewhere."""
        removed = set(image_ids)
        self.cache.images = [
            image for image in self.cache.images if image.image_id not in removed
        ]
        self.ui.selection -= removed
        if self.ui.pending_order is not None:
            self.ui.pending_order = [
                image_id
                for image_id in self.ui.pending_order
                if image_id not in removed
            ]

    async def approve(
        self, publish_after: bool = False, confirmer: Confirmer | None = None
    ) -> BulkActionResult:
        result = await self.actions.approve(
            self.client_event_id,
            self._selected_ids(),
            publish_after=publish_after,
            confirmer=confirmer,
        )
        return await self._after_action(result)

    async def request_re_edit(self, comment: str | None) -> BulkActionResult:
        result = await self.actions.request_re_edit(
            self.client_event_id, self._selected_ids(), comment
        )
        return await self._after_action(result)

    async def reupload(self, files: list[LocalFile]) -> BulkActionResult:
        result = await self.actions.reupload(
            self.client_event_id, self._selected_ids(), files
        )
        return await self._after_action(result)

    async def set_cover(self, slot: str) -> BulkActionResult:
        result = await self.actions.set_cover(
            self.client_event_id, self._selected_ids(), slot
        )
        if result.outcome == SUCCESS:
            self.ui.selection.clear()
        return result

    async def publish(self) -> ClientEvent:
        """Publish the event to the customer and refresh."""
        event = await self.delivery.publish(self.client_event_id)
        await self.refresh()
        return event

    async def advance(self) -> ClientEvent:
        """Move the event to its next delivery status and refresh."""
        event = await self.delivery.advance_to_next(self.client_event_id)
        await self.refresh()
        return event

    def _selected_ids(self) -> list[str]:
        return [image.image_id for image in self.selected_images]

    async def _after_action(self, result: BulkActionResult) -> BulkActionResult:
        if result.success_count:
            await self.refresh()
        if result.outcome == SUCCESS:
            self.ui.selection.clear()
        return result
