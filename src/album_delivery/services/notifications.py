"""Best-effort workflow notifications."""

import logging
from dataclasses import dataclass

from album_delivery.adapters.notification_client import NotificationClient

_logger = logging.getLogger(__name__)


@dataclass
class Notifier:
    """Sends notifications without ever failing the primary operation."""

    client: NotificationClient

    async def images_uploaded(
        self, project_id: str, client_event_id: str, image_count: int
    ) -> bool:
        """Notify that images were uploaded; return True if delivered."""
        try:
            await self.client.notify_images_uploaded(
                project_id, client_event_id, image_count
            )
        except Exception:
            _logger.exception(
                "Failed to send upload notification: event=%s count=%s",
                client_event_id,
                image_count,
            )
            return False
        return True

    async def re_edit_requested(
        self, project_id: str, client_event_id: str, image_count: int
    ) -> bool:
        """Notify that re-edits were requested; return True if delivered."""
        try:
            await self.client.notify_re_edit_requested(
                project_id, client_event_id, image_count
            )
        except Exception:
            _logger.exception(
                "Failed to send re-edit notification: event=%s count=%s",
                client_event_id,
                image_count,
            )
            return False
        return True
