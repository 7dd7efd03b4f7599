"""Invoice Event Repository Interface

Change feed over invoice writes.
"""

from abc import ABC, abstractmethod
from typing import List
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.invoice_event import InvoiceEvent, InvoiceEventType


class InvoiceEventRepository(ABC):
    """Append and consume invoice change events"""

    @abstractmethod
    async def append(self, event_type: InvoiceEventType, invoice: Invoice) -> InvoiceEvent:
        """
        Append an event describing the invoice's current state

        Args:
            event_type: insert or modify
            invoice: Invoice after the change

        Returns:
            Created InvoiceEvent
        """
        pass

    @abstractmethod
    async def get_undelivered(
        self,
        status: InvoiceStatus,
        max_attempts: int,
        limit: int = 10,
    ) -> List[InvoiceEvent]:
        """
        Retrieve undelivered events whose new status equals status

        Events that already failed max_attempts times are excluded.
        Ordered by feed position.
        """
        pass

    @abstractmethod
    async def mark_delivered(self, event_id: int) -> None:
        """Acknowledge an event"""
        pass

    @abstractmethod
    async def record_failure(self, event_id: int, error: str) -> None:
        """Increment the attempt counter and store the error"""
        pass
