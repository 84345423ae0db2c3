"""ASGI entrypoint for the album delivery console API."""

from album_delivery.api.app import create_app
from album_delivery.containers import build_container

app = create_app(build_container())
