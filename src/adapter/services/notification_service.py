"""Notification Service Implementations

Provides concrete implementations for publishing notifications.
"""

import logging
from typing import Optional
import httpx
from src.app.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


class LoggingNotificationService(NotificationService):
    """
    Notification service that logs messages

    Useful for development and testing, or as a fallback.
    """

    async def publish(self, subject: str, body: str) -> bool:
        logger.warning(f"[NOTIFICATION] {subject}: {body}")
        return True


class WebhookNotificationService(NotificationService):
    """
    Notification service that posts messages to an HTTP webhook

    Sends {"subject": ..., "body": ...} as JSON to the configured URL.
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0):
        """
        Initialize webhook notification service

        Args:
            webhook_url: URL to POST notifications to
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def publish(self, subject: str, body: str) -> bool:
        """
        Publish notification via webhook

        Returns:
            True if webhook call succeeded, False otherwise
        """
        payload = {"subject": subject, "body": body}

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                logger.info(f"Webhook notification '{subject}' sent to {self.webhook_url}")
                return True
        except httpx.HTTPError as e:
            logger.error(f"Failed to send webhook notification '{subject}': {e}")
            return False
        except Exception as e:
            logger.error(f"Unexpected error sending webhook notification '{subject}': {e}")
            return False


class CompositeNotificationService(NotificationService):
    """
    Notification service that delegates to multiple services

    Useful for sending to multiple channels (e.g., log + webhook).
    """

    def __init__(self, services: list[NotificationService]):
        self.services = services

    async def publish(self, subject: str, body: str) -> bool:
        """
        Publish to all configured services

        Returns:
            True if at least one service succeeded, False otherwise
        """
        success = False
        for service in self.services:
            try:
                if await service.publish(subject, body):
                    success = True
            except Exception as e:
                logger.error(f"Notification service {type(service).__name__} failed: {e}")
        return success


def create_notification_service(webhook_url: Optional[str] = None) -> NotificationService:
    """
    Factory function to create appropriate notification service

    Args:
        webhook_url: Optional webhook URL. If provided, creates composite
                     service with logging + webhook. Otherwise, just logging.

    Returns:
        Configured NotificationService
    """
    services: list[NotificationService] = [LoggingNotificationService()]

    if webhook_url:
        services.append(WebhookNotificationService(webhook_url))

    if len(services) == 1:
        return services[0]

    return CompositeNotificationService(services)
