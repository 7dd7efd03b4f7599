"""GetInvoice Use Case"""

from libs.result import Result, Return, Error
from src.app.repositories.invoice_repository import InvoiceRepository
from .dtos import InvoiceResponseDTO, to_invoice_response


class GetInvoice:
    """Use Case: Read one invoice as last persisted"""

    def __init__(self, invoice_repo: InvoiceRepository):
        self.invoice_repo = invoice_repo

    async def execute(self, invoice_id: str) -> Result[InvoiceResponseDTO]:
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
            return Return.ok(to_invoice_response(invoice))
        except Exception as e:
            return Return.err(
                Error(code="GET_INVOICE_FAILED", message="Failed to retrieve invoice", reason=str(e))
            )
