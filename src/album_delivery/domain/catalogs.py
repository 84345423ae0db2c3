"""Status catalog domain models."""

from dataclasses import dataclass

PUBLISHED = "PUBLISHED"

REVIEW_PENDING = "REVIEW_PENDING"
RE_EDIT_SUGGESTED = "RE_EDIT_SUGGESTED"
RE_EDIT_DONE = "RE_EDIT_DONE"
APPROVED = "APPROVED"
CLIENT_SELECTED = "CLIENT_SELECTED"
DISCARDED = "DISCARDED"

IMAGE_STATUS_CODES = frozenset(
    {
        REVIEW_PENDING,
        RE_EDIT_SUGGESTED,
        RE_EDIT_DONE,
        APPROVED,
        CLIENT_SELECTED,
        DISCARDED,
    }
)


@dataclass(frozen=True)
class EventDeliveryStatus:
    """A step in the event delivery pipeline."""

    status_id: str
    status_code: str
    status_description: str
    step: int


@dataclass(frozen=True)
class ImageStatus:
    """A per-image review status."""

    status_id: str
    status_code: str
    status_description: str
