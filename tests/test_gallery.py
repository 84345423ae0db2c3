"""Tests for the gallery view state."""

import asyncio

import pytest

from album_delivery.domain.errors import ValidationError
from tests.conftest import image_row


def _loaded(container):  # type: ignore[no-untyped-def]
    gallery = container.open_gallery("event-1")
    asyncio.run(gallery.load())
    return gallery


def _ids(images) -> list[str]:  # type: ignore[no-untyped-def]
    return [image.image_id for image in images]


def test_load_hides_discarded_images(container) -> None:
    gallery = _loaded(container)

    assert _ids(gallery.visible_images) == ["img-1", "img-2", "img-3", "img-4"]
    assert len(gallery.ordered_images) == 5
    assert gallery.next_status is not None
    assert gallery.next_status.status_id == "ds-2"
    assert gallery.publishable


def test_status_filter_and_sort_key(container) -> None:
    gallery = _loaded(container)

    gallery.set_status_filter({"RE_EDIT_SUGGESTED"})
    assert _ids(gallery.visible_images) == ["img-2", "img-3"]

    gallery.set_status_filter(None)
    gallery.set_sort_key("file_name")
    assert _ids(gallery.visible_images)[0] == "img-1"
    with pytest.raises(ValidationError):
        gallery.set_sort_key("random")
    with pytest.raises(ValidationError):
        gallery.set_status_filter({"ARCHIVED"})


def test_move_and_save_order(container, studio_client) -> None:
    gallery = _loaded(container)

    gallery.move(0, 2)

    assert gallery.ui.has_unsaved_order
    assert _ids(gallery.ordered_images)[:3] == ["img-2", "img-3", "img-1"]
    assert studio_client.images["img-1"]["sortOrder"] == 0

    asyncio.run(gallery.save_order())

    assert not gallery.ui.has_unsaved_order
    assert studio_client.calls_to("reorder_images") == [
        ("event-1", ["img-2", "img-3", "img-1", "img-4", "img-5"])
    ]
    assert studio_client.images["img-1"]["sortOrder"] == 2
    assert _ids(gallery.ordered_images)[:3] == ["img-2", "img-3", "img-1"]


def test_move_requires_custom_order(container) -> None:
    gallery = _loaded(container)
    gallery.set_sort_key("uploaded_at")

    with pytest.raises(ValidationError):
        gallery.move(0, 1)


def test_refresh_keeps_ui_state_when_images_unchanged(container) -> None:
    gallery = _loaded(container)
    gallery.select(["img-1", "img-2"])
    gallery.move(3, 0)

    asyncio.run(gallery.refresh())

    assert gallery.ui.selection == {"img-1", "img-2"}
    assert gallery.ui.has_unsaved_order


def test_refresh_clears_selection_when_images_change(container, studio_client) -> None:
    gallery = _loaded(container)
    gallery.select(["img-1"])
    studio_client.add_images(image_row("img-6", None))

    asyncio.run(gallery.refresh())

    assert gallery.ui.selection == set()
    assert "img-6" in _ids(gallery.visible_images)


def test_successful_action_refreshes_and_clears_selection(
    container, studio_client
) -> None:
    gallery = _loaded(container)
    gallery.select(["img-1", "img-2"])

    result = asyncio.run(gallery.approve())

    assert result.outcome == "success"
    assert gallery.ui.selection == set()
    codes = {
        image.image_id: gallery.catalog.images.code_of(image.image_status_id)
        for image in gallery.cache.images
    }
    assert codes["img-1"] == "APPROVED"
    assert codes["img-2"] == "APPROVED"


def test_partial_action_keeps_selection(container, studio_client) -> None:
    gallery = _loaded(container)
    gallery.select(["img-1", "img-4"])
    studio_client.ignored_updates.add("img-4")

    result = asyncio.run(gallery.request_re_edit("Warmer tones"))

    assert result.outcome == "partial"
    assert gallery.ui.selection == {"img-1", "img-4"}


def test_selection_helpers(container) -> None:
    gallery = _loaded(container)

    gallery.select(["img-1", "missing"])
    assert gallery.ui.selection == {"img-1"}
    gallery.toggle("img-1")
    gallery.toggle("img-2")
    assert gallery.ui.selection == {"img-2"}
    gallery.select_all()
    assert gallery.ui.selection == {"img-1", "img-2", "img-3", "img-4"}
    gallery.clear_selection()
    assert gallery.ui.selection == set()


def test_drop_images_forgets_deleted_images(container) -> None:
    gallery = _loaded(container)
    gallery.select(["img-1", "img-2"])
    gallery.move(0, 1)

    gallery.drop_images(["img-1"])

    assert gallery.ui.selection == {"img-2"}
    assert "img-1" not in _ids(gallery.ordered_images)


def test_publish_refreshes_event(container) -> None:
    gallery = _loaded(container)

    asyncio.run(gallery.publish())

    assert gallery.event.event_delivery_status_id == "ds-3"
    assert not gallery.publishable
    assert gallery.next_status is None
