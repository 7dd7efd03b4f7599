"""DeleteInvoice Use Case

Only pending and cancelled invoices can be deleted. The derivation index of
a deleted invoice is never handed out again.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.invoice import InvoiceStatus
from src.domain.invoice_lifecycle import DELETABLE_STATUSES, is_deletable
from .dtos import DeleteInvoiceResponseDTO

logger = logging.getLogger(__name__)


class DeleteInvoice:
    """Use Case: Delete an unpaid invoice"""

    def __init__(self, uow: UnitOfWork, invoice_repo: InvoiceRepository):
        self.uow = uow
        self.invoice_repo = invoice_repo

    async def execute(self, invoice_id: str) -> Result[DeleteInvoiceResponseDTO]:
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

            if not is_deletable(invoice.status):
                return Return.err(
                    Error(
                        code="INVOICE_NOT_DELETABLE",
                        message="Only pending and cancelled invoices can be deleted",
                        reason=f"Invoice {invoice_id} is {InvoiceStatus(invoice.status).value}",
                    )
                )

            # Conditional on status so a payment detected in between wins
            deleted = await self.invoice_repo.delete(invoice_id, DELETABLE_STATUSES)
            if not deleted:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="INVOICE_NOT_DELETABLE",
                        message="Only pending and cancelled invoices can be deleted",
                        reason=f"Invoice {invoice_id} changed status concurrently",
                    )
                )

            await self.uow.commit()
            logger.info(f"Invoice {invoice_id} deleted")

            return Return.ok(
                DeleteInvoiceResponseDTO(invoice_id=invoice_id, message="Invoice deleted successfully")
            )

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="DELETE_INVOICE_FAILED", message="Failed to delete invoice", reason=str(e))
            )
