"""UpdateInvoiceStatus Use Case

Administrative status change. Only pending <-> cancelled is allowed; the
current status is re-read and re-validated on every call, so a client can
never forge paid or swept.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.invoice import InvoiceStatus
from src.domain.invoice_lifecycle import LifecycleActor, allowed_targets, can_transition, transition_changes
from .dtos import UpdateInvoiceStatusCommandDTO, InvoiceResponseDTO, to_invoice_response

logger = logging.getLogger(__name__)


class UpdateInvoiceStatus:
    """
    Use Case: Change invoice status on behalf of an administrator

    Business Rules:
    1. Allowed: pending -> cancelled, cancelled -> pending
    2. Paid and swept invoices are immutable to administrators
    3. Update is conditional on the status read in step 1

    Flow:
    1. Load invoice
    2. Validate transition against the lifecycle table
    3. Conditional update (expected status = current status)
    4. Commit transaction
    """

    def __init__(self, uow: UnitOfWork, invoice_repo: InvoiceRepository):
        self.uow = uow
        self.invoice_repo = invoice_repo

    async def execute(self, command: UpdateInvoiceStatusCommandDTO) -> Result[InvoiceResponseDTO]:
        try:
            # Step 1: Load invoice
            invoice = await self.invoice_repo.get_by_id(command.invoice_id)
            if not invoice:
                return Return.err(
                    Error(
                        code="INVOICE_NOT_FOUND",
                        message=f"Invoice with ID {command.invoice_id} not found",
                        reason="Invoice does not exist or was deleted",
                    )
                )

            current = InvoiceStatus(invoice.status)
            target = InvoiceStatus(command.status)

            # Step 2: Validate transition
            if not can_transition(current, target, LifecycleActor.ADMIN):
                allowed = [s.value for s in allowed_targets(current, LifecycleActor.ADMIN)]
                return Return.err(
                    Error(
                        code="INVALID_STATUS_TRANSITION",
                        message=f"Invalid status transition: cannot change from "
                                f"'{current.value}' to '{target.value}'",
                        reason=f"Allowed transitions from '{current.value}': "
                               f"[{', '.join(allowed) or 'none'}]",
                    )
                )

            # Step 3: Conditional update
            changes = transition_changes(current, target, LifecycleActor.ADMIN)
            updated = await self.invoice_repo.conditional_update(invoice.id, current, changes)
            if updated is None:
                await self.uow.rollback()
                return Return.err(
                    Error(
                        code="INVOICE_STATUS_CONFLICT",
                        message=f"Invoice {command.invoice_id} changed concurrently",
                        reason=f"Expected status '{current.value}'",
                    )
                )

            # Step 4: Commit transaction
            await self.uow.commit()
            logger.info(f"Invoice {invoice.id} status changed {current.value} -> {target.value} by admin")

            return Return.ok(to_invoice_response(updated))

        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(code="UPDATE_INVOICE_FAILED", message="Failed to update invoice status", reason=str(e))
            )
