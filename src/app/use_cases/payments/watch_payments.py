"""WatchPayments Use Case

One payment-detection cycle over all pending invoices. Scheduling (a timer
re-invoking the cycle every minute) lives in the worker.
"""

import logging
import time
from datetime import datetime
from dataclasses import dataclass, replace
from typing import Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.chain_adapter import ChainAdapter
from src.app.services.notification_service import NotificationService
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.amount import from_base_units, to_base_units
from src.domain.asset import AssetParams
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.invoice_lifecycle import LifecycleActor, transition_changes
from .dtos import WatchCycleResultDTO

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PendingInvoice:
    """
    Plain copy of the invoice fields a watch cycle needs

    A rollback after one invoice fails expires every ORM instance loaded by
    the cycle, so the loop works on these copies instead.
    """

    id: str
    address: str
    asset: AssetParams
    requested_amount: str
    token_symbol: Optional[str] = None
    paid_at: Optional[datetime] = None

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> "PendingInvoice":
        return cls(
            id=invoice.id,
            address=invoice.address,
            asset=invoice.asset,
            requested_amount=invoice.requested_amount,
            token_symbol=invoice.token_symbol,
            paid_at=invoice.paid_at,
        )


class WatchPayments:
    """
    Use Case: Detect payments to pending invoices

    Business Rules:
    1. Required base units use decimals read from the chain at check time,
       never decimals supplied when the invoice was issued
    2. balance >= required moves the invoice pending -> paid, conditional on
       the status still being pending (a concurrent cancellation wins)
    3. Insufficient balance is the normal state and is not an error
    4. A failure on one invoice is recorded and never aborts the cycle
    5. Re-running a cycle is a no-op for invoices already paid

    Flow (per invoice):
    1. Read decimals and compute required base units
    2. Read balance
    3. Conditional update to paid and commit
    4. Publish payment notification (best effort)
    """

    def __init__(
        self,
        uow: UnitOfWork,
        invoice_repo: InvoiceRepository,
        chain_adapter: ChainAdapter,
        notification_service: NotificationService,
    ):
        self.uow = uow
        self.invoice_repo = invoice_repo
        self.chain_adapter = chain_adapter
        self.notification_service = notification_service

    async def execute(self) -> Result[WatchCycleResultDTO]:
        """
        Execute one watch cycle

        Returns:
            Result[WatchCycleResultDTO]: processed and failed invoice ids, or an
            error if the pending invoices could not be read at all
        """
        start_time = time.time()
        cycle_time = datetime.utcnow()

        try:
            invoices = [
                PendingInvoice.from_invoice(invoice)
                for invoice in await self.invoice_repo.get_by_status(InvoiceStatus.PENDING)
            ]
        except Exception as e:
            return Return.err(
                Error(code="WATCH_CYCLE_FAILED", message="Failed to load pending invoices", reason=str(e))
            )

        processed_ids = []
        failed_ids = []
        errors = {}

        for invoice in invoices:
            try:
                paid_invoice = await self._check_invoice(invoice)
            except Exception as e:
                await self.uow.rollback()
                logger.error(f"Error processing invoice {invoice.id}: {e}")
                failed_ids.append(invoice.id)
                errors[invoice.id] = str(e) or type(e).__name__
                continue

            if paid_invoice is not None:
                processed_ids.append(paid_invoice.id)
                logger.info(f"Invoice {paid_invoice.id} processed successfully")
                await self._notify_paid(paid_invoice)

        execution_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Processing completed: {len(processed_ids)} invoices marked paid, "
            f"{len(failed_ids)} invoices failed, {len(invoices)} checked in {execution_time_ms}ms"
        )

        return Return.ok(
            WatchCycleResultDTO(
                checked_count=len(invoices),
                processed_ids=processed_ids,
                failed_ids=failed_ids,
                errors=errors,
                cycle_time=cycle_time,
                execution_time_ms=execution_time_ms,
            )
        )

    async def _check_invoice(self, invoice: PendingInvoice) -> Optional[PendingInvoice]:
        """Return the invoice with paid_at set if it was marked paid, None otherwise"""
        asset = invoice.asset

        # Step 1: Required amount with fresh decimals
        decimals = await self.chain_adapter.get_decimals(asset)
        required = to_base_units(invoice.requested_amount, decimals)

        # Step 2: Balance
        balance = await self.chain_adapter.get_balance(invoice.address, asset)
        if balance < required:
            logger.debug(
                f"Invoice {invoice.id} awaiting payment: "
                f"{from_base_units(balance, decimals)} of {invoice.requested_amount}"
            )
            return None

        # Step 3: Conditional transition
        changes = transition_changes(InvoiceStatus.PENDING, InvoiceStatus.PAID, LifecycleActor.WATCHER)
        updated = await self.invoice_repo.conditional_update(invoice.id, InvoiceStatus.PENDING, changes)
        if updated is None:
            await self.uow.rollback()
            logger.info(f"Invoice {invoice.id} no longer pending, skipping")
            return None

        paid = replace(invoice, paid_at=updated.paid_at)
        await self.uow.commit()
        return paid

    async def _notify_paid(self, invoice: PendingInvoice) -> None:
        symbol = invoice.token_symbol or ""
        subject = f"Payment Received: Invoice {invoice.id}"
        body = (
            f"Payment Received\n\n"
            f"Invoice ID: {invoice.id}\n"
            f"Amount: {invoice.requested_amount} {symbol}\n"
            f"Invoice Public Address: {invoice.address}\n"
            f"Paid At: {invoice.paid_at.isoformat() if invoice.paid_at else ''}\n\n"
            f"Status: PAID\n\n"
            f"You may now proceed with order fulfillment."
        )
        try:
            await self.notification_service.publish(subject, body)
        except Exception as e:
            logger.error(f"Failed to publish payment notification for invoice {invoice.id}: {e}")
