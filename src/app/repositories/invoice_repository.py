"""Invoice Repository Interface

Defines the contract for invoice persistence operations.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional
from src.domain.invoice import Invoice, InvoiceStatus


class InvoiceRepository(ABC):
    """
    Repository interface for Invoice persistence

    Every write that changes an invoice also appends an InvoiceEvent to the
    change feed in the same transaction.
    """

    @abstractmethod
    async def create_if_absent(self, invoice: Invoice) -> Invoice:
        """
        Persist a new invoice

        Args:
            invoice: Invoice entity to persist

        Returns:
            Created Invoice

        Raises:
            DuplicateInvoiceError: If the id or address is already taken
        """
        pass

    @abstractmethod
    async def get_by_id(self, invoice_id: str) -> Optional[Invoice]:
        """
        Retrieve invoice by ID

        Args:
            invoice_id: Invoice ID

        Returns:
            Invoice if found, None otherwise
        """
        pass

    @abstractmethod
    async def list(
        self,
        status: Optional[InvoiceStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Invoice]:
        """
        List invoices, newest first

        Args:
            status: Optional filter by status
            limit: Maximum number of invoices to return
            offset: Offset for pagination

        Returns:
            List of invoices
        """
        pass

    @abstractmethod
    async def count(self, status: Optional[InvoiceStatus] = None) -> int:
        """Count invoices, optionally filtered by status"""
        pass

    @abstractmethod
    async def get_by_status(self, status: InvoiceStatus) -> List[Invoice]:
        """
        Retrieve all invoices in a status, oldest first

        Used by the payment watcher to fetch pending invoices.
        """
        pass

    @abstractmethod
    async def conditional_update(
        self,
        invoice_id: str,
        expected_status: InvoiceStatus,
        changes: Dict[str, Any],
    ) -> Optional[Invoice]:
        """
        Apply changes only if the invoice still has expected_status

        Args:
            invoice_id: Invoice ID
            expected_status: Status the record must currently have
            changes: Column values to write

        Returns:
            Updated Invoice, or None if the record is missing or its status
            changed (conflict)
        """
        pass

    @abstractmethod
    async def delete(
        self, invoice_id: str, expected_status_in: Iterable[InvoiceStatus]
    ) -> bool:
        """
        Delete an invoice only if its status is in expected_status_in

        Returns:
            True if a record was deleted, False otherwise
        """
        pass
