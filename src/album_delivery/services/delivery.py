"""Sequential event delivery status progression."""

import logging
from dataclasses import dataclass

from album_delivery.adapters.studio_client import StudioClient
from album_delivery.domain.albums import ClientEvent
from album_delivery.domain.catalogs import APPROVED, PUBLISHED, EventDeliveryStatus
from album_delivery.domain.errors import (
    NoApprovedContent,
    SequenceViolation,
    ValidationError,
)
from album_delivery.services.albums import AlbumReader, parse_client_event
from album_delivery.services.catalogs import CatalogService, DeliveryStatusCatalog
from album_delivery.services.transport import transport_errors

_logger = logging.getLogger(__name__)


def _current_step(
    catalog: DeliveryStatusCatalog, current_status_id: str | None
) -> int:
    current = catalog.get(current_status_id)
    return current.step if current is not None else 0


def next_available_status(
    catalog: DeliveryStatusCatalog, current_status_id: str | None
) -> EventDeliveryStatus | None:
    """Return the status one step after the current one.

    An event without a status can only move to step 1. Returns None at the
    last step.
    """
    return catalog.at_step(_current_step(catalog, current_status_id) + 1)


def validate_transition(
    catalog: DeliveryStatusCatalog,
    current_status_id: str | None,
    target_status_id: str,
) -> EventDeliveryStatus:
    """Return the target status if it is exactly one step ahead.

    Raises SequenceViolation for any skip, regression or repeat.
    """
    target = catalog.get(target_status_id)
    if target is None:
        raise ValidationError("A target delivery status is required.")
    if target.step != _current_step(catalog, current_status_id) + 1:
        raise SequenceViolation(
            current=catalog.get(current_status_id),
            target=target,
            expected=next_available_status(catalog, current_status_id),
        )
    return target


def is_publishable(
    catalog: DeliveryStatusCatalog, current_status_id: str | None
) -> bool:
    """Return True if the event sits before the PUBLISHED step."""
    published = catalog.published
    if published is None:
        return False
    return _current_step(catalog, current_status_id) < published.step


@dataclass
class DeliveryService:
    """Applies delivery status changes against fresh server state."""

    client: StudioClient
    catalogs: CatalogService
    reader: AlbumReader

    async def advance(
        self, client_event_id: str, target_status_id: str
    ) -> ClientEvent:
        """Move an event one step forward to target_status_id."""
        catalogs = await self.catalogs.load()
        event = await self.reader.get_event(client_event_id)
        target = validate_transition(
            catalogs.delivery, event.event_delivery_status_id, target_status_id
        )
        updated = await self._set_status(event, target)
        _logger.info(
            "Delivery status advanced: event=%s step=%s code=%s",
            client_event_id,
            target.step,
            target.status_code,
        )
        return updated

    async def advance_to_next(self, client_event_id: str) -> ClientEvent:
        """Move an event to its next available status."""
        catalogs = await self.catalogs.load()
        event = await self.reader.get_event(client_event_id)
        target = next_available_status(
            catalogs.delivery, event.event_delivery_status_id
        )
        if target is None:
            raise ValidationError("The event is already at its final status.")
        return await self.advance(client_event_id, target.status_id)

    async def publish(self, client_event_id: str) -> ClientEvent:
        """Jump an event straight to PUBLISHED from any earlier step.

        This is the one transition allowed to skip steps. It requires at
        least one approved image and never moves an event backwards.
        """
        catalogs = await self.catalogs.load()
        published = catalogs.delivery.published
        if published is None:
            raise ValidationError(f"No {PUBLISHED} status is configured.")
        event, images = await self.reader.get_event_with_images(client_event_id)
        if not any(
            catalogs.images.code_of(image.image_status_id) == APPROVED
            for image in images
        ):
            raise NoApprovedContent(client_event_id)
        if event.event_delivery_status_id == published.status_id:
            _logger.info("Event already published: event=%s", client_event_id)
            return event
        if not is_publishable(catalogs.delivery, event.event_delivery_status_id):
            raise SequenceViolation(
                current=catalogs.delivery.get(event.event_delivery_status_id),
                target=published,
                expected=None,
            )
        updated = await self._set_status(event, published)
        _logger.info("Event published: event=%s", client_event_id)
        return updated

    async def _set_status(
        self, event: ClientEvent, status: EventDeliveryStatus
    ) -> ClientEvent:
        with transport_errors(event.client_event_id):
            payload = await self.client.update_event_status(
                event.client_event_id, status.status_id
            )
        row = payload.get("clientEvent") if isinstance(payload, dict) else None
        if isinstance(row, dict):
            return parse_client_event(row)
        return ClientEvent(
            client_event_id=event.client_event_id,
            project_id=event.project_id,
            event_delivery_status_id=status.status_id,
        )
