"""ListInvoices Use Case

Paginated administrative listing with optional status filter.
"""

from typing import Optional
from libs.result import Result, Return, Error
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.invoice import InvoiceStatus
from .dtos import ListInvoicesResponseDTO, to_invoice_response

MAX_PAGE_SIZE = 100


class ListInvoices:
    """
    Use Case: List invoices

    Business Rules:
    1. Newest invoices first
    2. limit must be between 1 and MAX_PAGE_SIZE, offset >= 0
    """

    def __init__(self, invoice_repo: InvoiceRepository):
        self.invoice_repo = invoice_repo

    async def execute(
        self,
        status: Optional[InvoiceStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Result[ListInvoicesResponseDTO]:
        if limit < 1 or limit > MAX_PAGE_SIZE or offset < 0:
            return Return.err(
                Error(
                    code="INVALID_PAGINATION",
                    message=f"limit must be 1-{MAX_PAGE_SIZE} and offset >= 0",
                    reason=f"limit={limit}, offset={offset}",
                )
            )

        try:
            invoices = await self.invoice_repo.list(status=status, limit=limit, offset=offset)
            total = await self.invoice_repo.count(status=status)

            return Return.ok(
                ListInvoicesResponseDTO(
                    invoices=[to_invoice_response(invoice) for invoice in invoices],
                    total=total,
                    limit=limit,
                    offset=offset,
                    has_more=offset + len(invoices) < total,
                )
            )
        except Exception as e:
            return Return.err(
                Error(code="LIST_INVOICES_FAILED", message="Failed to list invoices", reason=str(e))
            )
