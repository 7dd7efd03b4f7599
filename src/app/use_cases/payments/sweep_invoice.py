"""SweepInvoice Use Case

Moves the funds of a paid invoice to treasury and marks it swept. Safe to
run any number of times for the same invoice: the stored status and the
on-chain balances decide what is left to do.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.chain_adapter import ChainAdapter
from src.app.services.notification_service import NotificationService
from src.app.repositories.invoice_repository import InvoiceRepository
from src.domain.asset import AssetFamily, Chain
from src.domain.errors import ChainTimeoutError, WalletMismatchError
from src.domain.invoice import Invoice, InvoiceStatus
from src.domain.invoice_lifecycle import LifecycleActor, transition_changes
from src.domain.key_derivation import SeedMaterial, derive
from .dtos import SweepOutcome, SweepResultDTO
from .sweep_strategies import SWEEP_STRATEGIES, SweepContext, SweepStrategy

logger = logging.getLogger(__name__)


class SweepInvoice:
    """
    Use Case: Sweep a paid invoice to treasury

    Business Rules:
    1. Only paid invoices are swept; anything else is a no-op
    2. The signer is re-derived from the seed and must reproduce the stored address
    3. Native: transfer balance - fee; skip when balance <= fee
    4. Token: top up the fee shortfall from the hot wallet, then transfer
       the full token balance; skip when the token balance is zero
    5. paid -> swept only after the transfer is confirmed, conditional on
       the status still being paid
    6. On failure the invoice stays paid, an error notification is sent and
       the error is returned so the caller can retry

    Flow:
    1. Load invoice, check status
    2. Re-derive wallet
    3. Run the asset family's sweep strategy (bounded by timeout)
    4. Conditional update to swept and commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        invoice_repo: InvoiceRepository,
        chain_adapter: ChainAdapter,
        notification_service: NotificationService,
        seed: SeedMaterial,
        treasury_address: str,
        operator_signer: Any = None,
        timeout_seconds: Optional[float] = None,
        strategies: Optional[Dict[AssetFamily, SweepStrategy]] = None,
    ):
        self.uow = uow
        self.invoice_repo = invoice_repo
        self.chain_adapter = chain_adapter
        self.notification_service = notification_service
        self.seed = seed
        self.treasury_address = treasury_address
        self.operator_signer = operator_signer
        self.timeout_seconds = timeout_seconds
        self.strategies = strategies or SWEEP_STRATEGIES

    async def execute(self, invoice_id: str) -> Result[SweepResultDTO]:
        """
        Execute sweep for one invoice

        Args:
            invoice_id: Invoice to sweep

        Returns:
            Result[SweepResultDTO]: outcome of the attempt, or SWEEP_FAILED
        """
        try:
            invoice = await self.invoice_repo.get_by_id(invoice_id)
        except Exception as e:
            return Return.err(
                Error(code="SWEEP_FAILED", message=f"Failed to load invoice {invoice_id}", reason=str(e))
            )

        # Step 1: Idempotence guard
        if invoice is None:
            logger.warning(f"Invoice {invoice_id} not found, nothing to sweep")
            return Return.ok(SweepResultDTO(invoice_id=invoice_id, outcome=SweepOutcome.SKIPPED_NOT_FOUND))

        if invoice.status != InvoiceStatus.PAID:
            logger.info(f"Skipping invoice {invoice_id} with status {InvoiceStatus(invoice.status).value}")
            return Return.ok(
                SweepResultDTO(
                    invoice_id=invoice_id,
                    outcome=SweepOutcome.SKIPPED_NOT_PAID,
                    status=InvoiceStatus(invoice.status).value,
                )
            )

        # Plain copies; a rollback expires the loaded instance
        address = invoice.address
        derivation_path = invoice.derivation_path

        try:
            # Step 2: Re-derive signer
            wallet = self._derive_wallet(invoice)
            logger.info(
                f"Processing invoice {invoice_id} | Address: {wallet.address} | "
                f"Asset: {AssetFamily(invoice.asset_family).value}"
            )

            # Step 3: Strategy
            strategy = self.strategies[AssetFamily(invoice.asset_family)]
            ctx = SweepContext(
                invoice=invoice,
                wallet=wallet,
                treasury_address=self.treasury_address,
                chain_adapter=self.chain_adapter,
                operator_signer=self.operator_signer,
            )
            execution = await self._run(strategy, ctx)

            tx_references = [str(tx) for tx in execution.tx_references]
            if execution.outcome != SweepOutcome.SWEPT:
                return Return.ok(
                    SweepResultDTO(
                        invoice_id=invoice_id,
                        outcome=execution.outcome,
                        status=InvoiceStatus.PAID.value,
                        tx_references=tx_references,
                    )
                )

            # Step 4: Record swept
            changes = transition_changes(InvoiceStatus.PAID, InvoiceStatus.SWEPT, LifecycleActor.SWEEPER)
            updated = await self.invoice_repo.conditional_update(invoice_id, InvoiceStatus.PAID, changes)
            if updated is None:
                await self.uow.rollback()
                logger.warning(f"Invoice {invoice_id} was no longer paid when marking swept")
            else:
                await self.uow.commit()
                logger.info(f"Invoice {invoice_id} marked as swept.")

            return Return.ok(
                SweepResultDTO(
                    invoice_id=invoice_id,
                    outcome=SweepOutcome.SWEPT,
                    status=InvoiceStatus.SWEPT.value,
                    swept_amount=execution.amount,
                    tx_references=tx_references,
                )
            )

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Error sweeping invoice {invoice_id}: {e}")
            await self._notify_error(invoice_id, address, derivation_path, e)
            return Return.err(
                Error(
                    code="SWEEP_FAILED",
                    message=f"Failed to sweep invoice {invoice_id}",
                    reason=str(e) or type(e).__name__,
                )
            )

    def _derive_wallet(self, invoice: Invoice):
        if Chain(invoice.chain) != Chain(self.chain_adapter.chain):
            raise WalletMismatchError(
                f"Invoice {invoice.id} is on {Chain(invoice.chain).value}, "
                f"adapter serves {Chain(self.chain_adapter.chain).value}"
            )
        wallet = derive(self.seed, invoice.derivation_index, invoice.chain)
        if wallet.address != invoice.address:
            raise WalletMismatchError(
                f"Derived address {wallet.address} does not match invoice address {invoice.address}"
            )
        return wallet

    async def _run(self, strategy: SweepStrategy, ctx: SweepContext):
        if not self.timeout_seconds:
            return await strategy.sweep(ctx)
        try:
            return await asyncio.wait_for(strategy.sweep(ctx), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            raise ChainTimeoutError(f"Sweep did not finish within {self.timeout_seconds}s")

    async def _notify_error(self, invoice_id: str, address: str, derivation_path: str, error: Exception) -> None:
        subject = f"Sweeper Error: Invoice {invoice_id}"
        body = (
            f"Sweeper Error Alert\n\n"
            f"The sweeper detected an error while processing invoice {invoice_id}.\n\n"
            f"Error Details:\n{error}\n\n"
            f"Address: {address}\n"
            f"Derivation Path: {derivation_path}\n"
            f"Timestamp: {datetime.utcnow().isoformat()}\n\n"
            f"The invoice remains paid. Inspect on-chain state before forcing a retry."
        )
        try:
            await self.notification_service.publish(subject, body)
        except Exception as notification_error:
            logger.error(f"Failed to send error notification: {notification_error}")
