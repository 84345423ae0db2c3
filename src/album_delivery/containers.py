"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from album_delivery.adapters.notification_client import (
    HttpxNotificationClient,
    NotificationClient,
)
from album_delivery.adapters.storage_client import HttpxStorageClient, StorageClient
from album_delivery.adapters.studio_client import HttpxStudioClient, StudioClient
from album_delivery.config import Settings
from album_delivery.services.albums import AlbumReader
from album_delivery.services.bulk_actions import BulkActionCoordinator
from album_delivery.services.catalogs import CatalogService
from album_delivery.services.delivery import DeliveryService
from album_delivery.services.gallery import AlbumGallery
from album_delivery.services.notifications import Notifier
from album_delivery.services.uploads import UploadService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    studio_client: StudioClient
    storage_client: StorageClient
    notification_client: NotificationClient
    catalog_service: CatalogService
    album_reader: AlbumReader
    delivery_service: DeliveryService
    bulk_actions: BulkActionCoordinator
    upload_service: UploadService
    close_resources: Callable[[], Awaitable[None]]

    def open_gallery(self, client_event_id: str) -> AlbumGallery:
        """Create the gallery state for one event."""
        return AlbumGallery(
            client_event_id=client_event_id,
            client=self.studio_client,
            catalogs=self.catalog_service,
            reader=self.album_reader,
            delivery=self.delivery_service,
            actions=self.bulk_actions,
        )


def wire_services(
    settings: Settings,
    studio_client: StudioClient,
    storage_client: StorageClient,
    notification_client: NotificationClient,
    close_resources: Callable[[], Awaitable[None]],
) -> AppContainer:
    """Build the service graph on top of the given collaborators."""
    catalog_service = CatalogService(studio_client)
    album_reader = AlbumReader(studio_client)
    delivery_service = DeliveryService(
        client=studio_client, catalogs=catalog_service, reader=album_reader
    )
    notifier = Notifier(notification_client)
    bulk_actions = BulkActionCoordinator(
        client=studio_client,
        catalogs=catalog_service,
        reader=album_reader,
        delivery=delivery_service,
        notifier=notifier,
    )
    upload_service = UploadService(
        storage=storage_client,
        notifier=notifier,
        tenant_id=settings.tenant_id,
        chunk_size=settings.upload_chunk_size,
    )
    return AppContainer(
        settings=settings,
        studio_client=studio_client,
        storage_client=storage_client,
        notification_client=notification_client,
        catalog_service=catalog_service,
        album_reader=album_reader,
        delivery_service=delivery_service,
        bulk_actions=bulk_actions,
        upload_service=upload_service,
        close_resources=close_resources,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    studio_client = HttpxStudioClient.create(
        resolved_settings.studio_api_base_url,
        resolved_settings.studio_api_token,
        timeout=resolved_settings.request_timeout_seconds,
    )
    storage_client = HttpxStorageClient.create(
        resolved_settings.studio_api_base_url,
        resolved_settings.studio_api_token,
        timeout=resolved_settings.request_timeout_seconds,
        upload_timeout=resolved_settings.upload_timeout_seconds,
    )
    notification_client = HttpxNotificationClient.create(
        resolved_settings.studio_api_base_url, resolved_settings.studio_api_token
    )

    async def close_resources() -> None:
        await studio_client.close()
        await storage_client.close()
        await notification_client.close()

    return wire_services(
        resolved_settings,
        studio_client,
        storage_client,
        notification_client,
        close_resources,
    )
