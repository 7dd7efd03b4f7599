"""Notification Service Interface

Defines the contract for publishing merchant and operator notifications.
"""

from abc import ABC, abstractmethod


class NotificationService(ABC):
    """
    Abstract notification service

    Publishing is fire-and-forget: implementations report failure through
    the return value and never raise, so a lost notification cannot fail the
    business operation that triggered it.

    Implementations can send notifications via:
    - Log output
    - Webhook (HTTP POST)
    - etc.
    """

    @abstractmethod
    async def publish(self, subject: str, body: str) -> bool:
        """
        Publish a notification

        Args:
            subject: Short subject line
            body: Message body

        Returns:
            True if notification sent successfully, False otherwise
        """
        pass
