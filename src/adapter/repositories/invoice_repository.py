"""SQLAlchemy Invoice Repository Implementation

Implements invoice persistence using SQLAlchemy async session.
"""

from typing import Any, Dict, Iterable, List, Optional
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.invoice_repository import InvoiceRepository
from src.adapter.repositories.invoice_event_repository import SqlAlchemyInvoiceEventRepository
from src.domain.errors import DuplicateInvoiceError
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.invoice_event import InvoiceEventType


class SqlAlchemyInvoiceRepository(InvoiceRepository):
    """
    SQLAlchemy implementation of InvoiceRepository

    Features:
    - Conditional updates (UPDATE ... WHERE status = expected)
    - Conditional deletes (DELETE ... WHERE status IN expected)
    - Change events appended in the same transaction as each write
    """

    def __init__(self, session: AsyncSession, event_repo: Optional[SqlAlchemyInvoiceEventRepository] = None):
        self.session = session
        self.event_repo = event_repo or SqlAlchemyInvoiceEventRepository(session)

    async def create_if_absent(self, invoice: Invoice) -> Invoice:
        """
        Create a new invoice

        Args:
            invoice: Invoice entity to persist

        Returns:
            Created Invoice

        Raises:
            DuplicateInvoiceError: If the id or address already exists
        """
        for field, column, value in (
            ("id", Invoice.id, invoice.id),
            ("address", Invoice.address, invoice.address),
        ):
            statement = select(func.count()).select_from(Invoice).where(column == value)
            result = await self.session.execute(statement)
            if result.scalar_one() > 0:
                raise DuplicateInvoiceError(f"Invoice {field} {value} already exists", field=field)

        self.session.add(invoice)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise DuplicateInvoiceError(
                f"Invoice {invoice.id} or address {invoice.address} already exists"
            ) from e
        await self.session.refresh(invoice)

        await self.event_repo.append(InvoiceEventType.INSERT, invoice)
        return invoice

    async def get_by_id(self, invoice_id: str) -> Optional[Invoice]:
        """
        Retrieve invoice by ID

        Args:
            invoice_id: Invoice ID

        Returns:
            Invoice if found, None otherwise
        """
        statement = (
            select(Invoice)
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

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
        statement = select(Invoice)

        if status:
            statement = statement.where(Invoice.status == status)

        statement = statement.order_by(Invoice.created_at.desc(), Invoice.derivation_index.desc())
        statement = statement.limit(limit).offset(offset)

        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def count(self, status: Optional[InvoiceStatus] = None) -> int:
        statement = select(func.count()).select_from(Invoice)
        if status:
            statement = statement.where(Invoice.status == status)
        result = await self.session.execute(statement)
        return result.scalar_one()

    async def get_by_status(self, status: InvoiceStatus) -> List[Invoice]:
        """
        Retrieve all invoices in a status, oldest first

        Uses the status index rather than a full scan.
        """
        statement = (
            select(Invoice)
            .where(Invoice.status == status)
            .order_by(Invoice.created_at, Invoice.derivation_index)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def conditional_update(
        self,
        invoice_id: str,
        expected_status: InvoiceStatus,
        changes: Dict[str, Any],
    ) -> Optional[Invoice]:
        """
        Apply changes only if the invoice still has expected_status

        Returns:
            Updated Invoice, or None on conflict / missing record
        """
        statement = (
            update(Invoice)
            .where(Invoice.id == invoice_id)
            .where(Invoice.status == expected_status)
            .values(**changes)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        if result.rowcount != 1:
            return None

        invoice = await self.get_by_id(invoice_id)
        await self.event_repo.append(InvoiceEventType.MODIFY, invoice)
        return invoice

    async def delete(
        self, invoice_id: str, expected_status_in: Iterable[InvoiceStatus]
    ) -> bool:
        """
        Delete an invoice only if its status is in expected_status_in

        Returns:
            True if deleted, False otherwise
        """
        statement = (
            delete(Invoice)
            .where(Invoice.id == invoice_id)
            .where(Invoice.status.in_(list(expected_status_in)))
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1
