"""RedeliverPaidEvent Use Case

Recovery for invoices stuck in paid (sweep failed past its retries, or
skipped for lack of funds that have since been topped up manually). Appends
a fresh paid event so the idempotent sweeper handles the invoice again.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.invoice_repository import InvoiceRepository
from src.app.repositories.invoice_event_repository import InvoiceEventRepository
from src.domain.invoice import InvoiceStatus
from src.domain.invoice_event import InvoiceEventType
from .dtos import RedeliverResponseDTO

logger = logging.getLogger(__name__)


class RedeliverPaidEvent:
    """Use Case: Re-queue a paid invoice for sweeping"""

    def __init__(
        self,
        uow: UnitOfWork,
        invoice_repo: InvoiceRepository,
        event_repo: InvoiceEventRepository,
    ):
        self.uow = uow
        self.invoice_repo = invoice_repo
        self.event_repo = event_repo

    async def execute(self, invoice_id: str) -> Result[RedeliverResponseDTO]:
        try:
            invoice = await self.invoice_repo.get_by_id(invoice_id)
            if not invoice:
                return Return.err(
                    Error(
                        code="INVOICE_NOT_FOUND",
                        message=f"Invoice with ID {invoice_id} not found",
                        reason="Invoice does not exist or was deleted",
                    )
                )

            if invoice.status != InvoiceStatus.PAID:
                return Return.err(
                    Error(
                        code="INVOICE_NOT_PAID",
                        message="Only paid invoices can be re-queued for sweeping",
                        reason=f"Invoice {invoice_id} is {InvoiceStatus(invoice.status).value}",
                    )
                )

            event = await self.event_repo.append(InvoiceEventType.MODIFY, invoice)
            await self.uow.commit()
            logger.info(f"Re-queued paid invoice {invoice_id} for sweeping (event {event.id})")

            return Return.ok(
                RedeliverResponseDTO(invoice_id=invoice_id, event_id=event.id, status=InvoiceStatus(invoice.status).value)
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="REDELIVER_FAILED", message="Failed to re-queue invoice", reason=str(e))
            )
