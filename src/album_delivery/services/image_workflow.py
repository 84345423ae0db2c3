"""Image review state machine and bulk-action eligibility rules."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from album_delivery.domain.albums import Image
from album_delivery.domain.catalogs import (
    APPROVED,
    CLIENT_SELECTED,
    DISCARDED,
    RE_EDIT_DONE,
    RE_EDIT_SUGGESTED,
    REVIEW_PENDING,
)
from album_delivery.domain.errors import ValidationError
from album_delivery.services.catalogs import ImageStatusCatalog

TRANSITIONS: dict[str, frozenset[str]] = {
    REVIEW_PENDING: frozenset({RE_EDIT_SUGGESTED, APPROVED}),
    RE_EDIT_SUGGESTED: frozenset({RE_EDIT_DONE}),
    RE_EDIT_DONE: frozenset({APPROVED, RE_EDIT_SUGGESTED}),
    APPROVED: frozenset({CLIENT_SELECTED}),
    CLIENT_SELECTED: frozenset(),
    DISCARDED: frozenset(),
}

COVER_SLOTS: dict[str, str] = {
    "mobile": "mobileCoverUrl",
    "tablet": "tabletCoverUrl",
    "desktop": "desktopCoverUrl",
}


def can_transition(current_code: str, target_code: str) -> bool:
    """Return True if an image may move from one status code to another."""
    return target_code in TRANSITIONS.get(current_code, frozenset())


@dataclass(frozen=True)
class Eligibility:
    """Whether a bulk action is legal for a selection."""

    allowed: bool
    reason: str | None = None
    ineligible: tuple[str, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return self.allowed

    def require(self) -> None:
        """Raise ValidationError when the action is not allowed."""
        if not self.allowed:
            raise ValidationError(
                self.reason or "Action not allowed", list(self.ineligible)
            )


_ALLOWED = Eligibility(allowed=True)


def can_request_re_edit(
    selection: Sequence[Image], catalog: ImageStatusCatalog, comment: str | None
) -> Eligibility:
    """Check a re-edit request; every selected image gets the comment."""
    if not selection:
        return Eligibility(False, "Select at least one image to request a re-edit.")
    if not comment or not comment.strip():
        return Eligibility(False, "A comment is required when requesting a re-edit.")
    discarded = _with_code(selection, catalog, {DISCARDED})
    if discarded:
        return Eligibility(False, "Discarded images cannot be re-edited.", discarded)
    return _ALLOWED


def can_reupload(
    selection: Sequence[Image], catalog: ImageStatusCatalog
) -> Eligibility:
    """Check a re-upload: every selected image must await a re-edit."""
    if not selection:
        return Eligibility(False, "Select at least one image to re-upload.")
    ineligible = tuple(
        image.image_id
        for image in selection
        if not can_transition(catalog.code_of(image.image_status_id), RE_EDIT_DONE)
    )
    if ineligible:
        return Eligibility(
            False,
            "Only images marked for re-edit can be re-uploaded.",
            ineligible,
        )
    return _ALLOWED


def can_approve(
    selection: Sequence[Image], catalog: ImageStatusCatalog
) -> Eligibility:
    """Check an approval: any non-discarded image may be approved."""
    if not selection:
        return Eligibility(False, "Select at least one image to approve.")
    discarded = _with_code(selection, catalog, {DISCARDED})
    if discarded:
        return Eligibility(False, "Discarded images cannot be approved.", discarded)
    return _ALLOWED


def can_set_cover(selection: Sequence[Image], slot: str | None = None) -> Eligibility:
    """Check a cover assignment: exactly one image and a known slot."""
    if len(selection) != 1:
        return Eligibility(False, "Select exactly one image to use as a cover.")
    if slot is not None and slot not in COVER_SLOTS:
        return Eligibility(False, f"Unknown cover slot {slot!r}.")
    if selection[0].display_url is None:
        return Eligibility(
            False, "The image has no URL yet.", (selection[0].image_id,)
        )
    return _ALLOWED


def filter_by_status(
    images: Iterable[Image],
    catalog: ImageStatusCatalog,
    codes: set[str] | None = None,
    include_discarded: bool = False,
) -> list[Image]:
    """Return images whose status is in codes; discarded ones are hidden."""
    result = []
    for image in images:
        code = catalog.code_of(image.image_status_id)
        if code == DISCARDED and not include_discarded:
            continue
        if codes is None or code in codes:
            result.append(image)
    return result


def _with_code(
    selection: Sequence[Image], catalog: ImageStatusCatalog, codes: set[str]
) -> tuple[str, ...]:
    return tuple(
        image.image_id
        for image in selection
        if catalog.code_of(image.image_status_id) in codes
    )
