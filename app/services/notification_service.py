"""
Notification dispatcher for review, auto-processing and alert messages.
"""

import logging
from typing import Optional

import httpx

from app.core.config import settings
from app.core.exceptions import NotificationException
from app.schemas.alerts import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Deliver titled messages to the configured webhook channel."""

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the notification service."""
        self.webhook_url = webhook_url if webhook_url is not None else settings.NOTIFICATION_WEBHOOK_URL
        self.token = token if token is not None else settings.NOTIFICATION_WEBHOOK_TOKEN
        self.timeout = timeout if timeout is not None else settings.NOTIFICATION_TIMEOUT_SECONDS
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def send(self, notification: Notification) -> None:
        """
        Deliver one notification.

        Without a configured webhook the notification is only logged.
        Delivery failures raise NotificationException; callers decide
        whether to swallow them.
        """
        if not self.enabled:
            logger.info(
                f"Notification ({notification.type}/{notification.priority}): "
                f"{notification.title} - {notification.message}"
            )
            return

        payload = notification.model_dump(mode="json")
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.webhook_url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationException(
                f"Notification webhook returned {e.response.status_code}",
                details={"title": notification.title},
            )
        except httpx.TimeoutException:
            raise NotificationException(
                f"Notification webhook timed out after {self.timeout} seconds",
                details={"title": notification.title},
            )
        except httpx.HTTPError as e:
            raise NotificationException(
                f"Notification delivery failed: {str(e)}",
                details={"title": notification.title},
            )

        logger.debug(f"Notification delivered: {notification.title}")
