"""SQLAlchemy Invoice Event Repository Implementation

Change feed stored in the invoice_events table.
"""

from datetime import datetime
from typing import List
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.invoice_event_repository import InvoiceEventRepository
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.invoice_event import InvoiceEvent, InvoiceEventType


class SqlAlchemyInvoiceEventRepository(InvoiceEventRepository):
    """
    SQLAlchemy implementation of InvoiceEventRepository

    Events are appended on the caller's session so they commit or roll back
    together with the invoice write they describe.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def append(self, event_type: InvoiceEventType, invoice: Invoice) -> InvoiceEvent:
        event = InvoiceEvent(
            invoice_id=invoice.id,
            event_type=event_type,
            status=invoice.status,
            snapshot=invoice.model_dump(mode="json"),
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_undelivered(
        self,
        status: InvoiceStatus,
        max_attempts: int,
        limit: int = 10,
    ) -> List[InvoiceEvent]:
        statement = (
            select(InvoiceEvent)
            .where(InvoiceEvent.status == status)
            .where(InvoiceEvent.delivered_at.is_(None))
            .where(InvoiceEvent.attempts < max_attempts)
            .order_by(InvoiceEvent.id)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def mark_delivered(self, event_id: int) -> None:
        statement = (
            update(InvoiceEvent)
            .where(InvoiceEvent.id == event_id)
            .values(delivered_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(statement)

    async def record_failure(self, event_id: int, error: str) -> None:
        statement = (
            update(InvoiceEvent)
            .where(InvoiceEvent.id == event_id)
            .values(attempts=InvoiceEvent.attempts + 1, last_error=error[:2000])
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(statement)
