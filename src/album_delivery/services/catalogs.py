"""Status catalogs for event delivery and image review."""

import asyncio
import bisect
import logging
from dataclasses import dataclass, field

from album_delivery.adapters.studio_client import StudioClient
from album_delivery.domain.catalogs import (
    IMAGE_STATUS_CODES,
    PUBLISHED,
    REVIEW_PENDING,
    EventDeliveryStatus,
    ImageStatus,
)
from album_delivery.domain.errors import CatalogIntegrityError, ValidationError
from album_delivery.services.transport import transport_errors

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryStatusCatalog:
    """Event delivery statuses ordered by step."""

    statuses: tuple[EventDeliveryStatus, ...]
    _steps: tuple[int, ...] = field(init=False, repr=False, compare=False)
    _by_id: dict[str, EventDeliveryStatus] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.statuses, key=lambda status: status.step))
        steps = tuple(status.step for status in ordered)
        if ordered and steps != tuple(range(1, len(ordered) + 1)):
            raise CatalogIntegrityError(
                f"Delivery steps must be unique and contiguous from 1, got {steps}"
            )
        published = [s for s in ordered if s.status_code == PUBLISHED]
        if len(published) > 1:
            raise CatalogIntegrityError("More than one PUBLISHED delivery status")
        object.__setattr__(self, "statuses", ordered)
        object.__setattr__(self, "_steps", steps)
        object.__setattr__(self, "_by_id", {s.status_id: s for s in ordered})

    def __len__(self) -> int:
        return len(self.statuses)

    def get(self, status_id: str | None) -> EventDeliveryStatus | None:
        """Return a status by id; None for an absent id.

        Raises ValidationError if the id is not in the catalog.
        """
        if status_id is None:
            return None
        status = self._by_id.get(status_id)
        if status is None:
            raise ValidationError(f"Unknown delivery status {status_id!r}")
        return status

    def at_step(self, step: int) -> EventDeliveryStatus | None:
        """Return the status at a given step, if any."""
        index = bisect.bisect_left(self._steps, step)
        if index < len(self._steps) and self._steps[index] == step:
            return self.statuses[index]
        return None

    @property
    def published(self) -> EventDeliveryStatus | None:
        """Return the PUBLISHED status, if the catalog has one."""
        for status in self.statuses:
            if status.status_code == PUBLISHED:
                return status
        return None

    @property
    def max_step(self) -> int:
        """Return the highest step number, or 0 for an empty catalog."""
        return self._steps[-1] if self._steps else 0


@dataclass(frozen=True)
class ImageStatusCatalog:
    """Fixed set of image review statuses."""

    statuses: tuple[ImageStatus, ...]
    _by_id: dict[str, ImageStatus] = field(init=False, repr=False, compare=False)
    _by_code: dict[str, ImageStatus] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_code = {status.status_code: status for status in self.statuses}
        missing = sorted(IMAGE_STATUS_CODES - by_code.keys())
        if missing:
            raise CatalogIntegrityError(f"Image status catalog is missing {missing}")
        object.__setattr__(self, "_by_code", by_code)
        object.__setattr__(self, "_by_id", {s.status_id: s for s in self.statuses})

    def by_code(self, code: str) -> ImageStatus:
        """Return the status with the given code."""
        try:
            return self._by_code[code]
        except KeyError:
            raise ValidationError(f"Unknown image status code {code!r}") from None

    def code_of(self, status_id: str | None) -> str:
        """Return the code for a status id; images without one are pending."""
        if status_id is None:
            return REVIEW_PENDING
        status = self._by_id.get(status_id)
        if status is None:
            raise ValidationError(f"Unknown image status {status_id!r}")
        return status.status_code


@dataclass(frozen=True)
class StatusCatalogs:
    """Both catalogs, loaded together."""

    delivery: DeliveryStatusCatalog
    images: ImageStatusCatalog


@dataclass
class CatalogService:
    """Loads status catalogs once per session."""

    client: StudioClient
    _cached: StatusCatalogs | None = None

    async def load(self, refresh: bool = False) -> StatusCatalogs:
        """Fetch both catalogs concurrently and validate them together."""
        if self._cached is not None and not refresh:
            return self._cached
        with transport_errors():
            delivery_raw, image_raw = await asyncio.gather(
                self.client.get_event_delivery_statuses(),
                self.client.get_image_statuses(),
            )
        catalogs = StatusCatalogs(
            delivery=DeliveryStatusCatalog(
                tuple(parse_delivery_status(row) for row in delivery_raw)
            ),
            images=ImageStatusCatalog(
                tuple(parse_image_status(row) for row in image_raw)
            ),
        )
        _logger.info(
            "Loaded status catalogs: delivery=%s image=%s",
            len(catalogs.delivery),
            len(catalogs.images.statuses),
        )
        self._cached = catalogs
        return catalogs


def parse_delivery_status(row: dict[str, object]) -> EventDeliveryStatus:
    """Build a delivery status from an API row."""
    return EventDeliveryStatus(
        status_id=str(row["statusId"]),
        status_code=str(row["statusCode"]),
        status_description=str(row.get("statusDescription", "")),
        step=int(row["step"]),
    )


def parse_image_status(row: dict[str, object]) -> ImageStatus:
    """Build an image status from an API row."""
    return ImageStatus(
        status_id=str(row["statusId"]),
        status_code=str(row["statusCode"]),
        status_description=str(row.get("statusDescription", "")),
    )
