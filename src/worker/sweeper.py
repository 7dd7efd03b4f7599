"""Sweeper Background Worker

Consumes paid-invoice events from the invoice_events table and sweeps each
invoice's balance to treasury. Events are marked delivered once the sweep
attempt completed (swept or skipped); failures are counted and retried on
later polls until SWEEP_MAX_ATTEMPTS is reached.
"""

import asyncio
import logging
import time
from typing import Any, Dict, Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from libs.result import Result
from src.adapter.chains import create_chain_adapter
from src.adapter.repositories import SqlAlchemyInvoiceEventRepository, SqlAlchemyInvoiceRepository
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.secret_store import YamlSecretStore
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.chain_adapter import ChainAdapter
from src.app.services.notification_service import NotificationService
from src.app.services.secret_store import SecretStore
from src.app.use_cases.payments import (
    SweepBatchResultDTO,
    SweepInvoice,
    SweepOutcome,
    SweepResultDTO,
)
from src.domain.invoice import InvoiceStatus
from src.domain.invoice_event import InvoiceEvent

logger = logging.getLogger(__name__)


class SweeperWorker:
    """
    Background worker for treasury sweeps

    Features:
    - At most one sweep per invoice at a time (per-invoice asyncio.Lock)
    - At most max_concurrency sweeps in flight (asyncio.Semaphore)
    - Each sweep bounded by sweep_timeout_seconds
    - Idempotent: a swept invoice is skipped on redelivery

    Usage:
        worker = SweeperWorker()
        result = await worker.run_once()

        # Poll continuously
        await worker.run_forever()
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        chain_adapter: Optional[ChainAdapter] = None,
        notification_service: Optional[NotificationService] = None,
        secret_store: Optional[SecretStore] = None,
        treasury_address: Optional[str] = None,
        batch_size: Optional[int] = None,
        max_concurrency: Optional[int] = None,
        max_attempts: Optional[int] = None,
        sweep_timeout_seconds: Optional[float] = None,
    ):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.chain_adapter = chain_adapter or create_chain_adapter(ApplicationConfig)
        self.notification_service = notification_service or create_notification_service(
            ApplicationConfig.NOTIFICATION_WEBHOOK_URL
        )
        self.secret_store = secret_store or YamlSecretStore(
            ApplicationConfig.SECRETS_FILE, self.chain_adapter.chain
        )
        self.treasury_address = treasury_address or ApplicationConfig.TREASURY_ADDRESS
        self.batch_size = batch_size or ApplicationConfig.SWEEPER_BATCH_SIZE
        self.max_attempts = max_attempts or ApplicationConfig.SWEEP_MAX_ATTEMPTS
        self.sweep_timeout_seconds = sweep_timeout_seconds or ApplicationConfig.SWEEP_TIMEOUT_SECONDS

        self._semaphore = asyncio.Semaphore(max_concurrency or ApplicationConfig.SWEEPER_MAX_CONCURRENCY)
        self._locks: Dict[str, asyncio.Lock] = {}

        if not self.treasury_address:
            raise ValueError("TREASURY_ADDRESS is not configured")

        # Create engine and session factory
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info(f"SweeperWorker initialized (chain={self.chain_adapter.chain.value})")

    def _lock_for(self, invoice_id: str) -> asyncio.Lock:
        return self._locks.setdefault(invoice_id, asyncio.Lock())

    def _operator_signer(self) -> Any:
        try:
            return self.secret_store.get_operator_signer()
        except Exception as e:
            logger.warning(f"Operator signer unavailable, token sweeps cannot be topped up: {e}")
            return None

    async def sweep_invoice(self, invoice_id: str) -> Result[SweepResultDTO]:
        """
        Sweep one invoice under its lock

        Args:
            invoice_id: Invoice to sweep

        Returns:
            Result of the SweepInvoice use case
        """
        seed = self.secret_store.get_seed_material()

        async with self._lock_for(invoice_id):
            async with self._semaphore:
                async with self.async_session_factory() as session:
                    use_case = SweepInvoice(
                        uow=SqlAlchemyUnitOfWork(session),
                        invoice_repo=SqlAlchemyInvoiceRepository(session),
                        chain_adapter=self.chain_adapter,
                        notification_service=self.notification_service,
                        seed=seed,
                        treasury_address=self.treasury_address,
                        operator_signer=self._operator_signer(),
                        timeout_seconds=self.sweep_timeout_seconds,
                    )
                    return await use_case.execute(invoice_id)

    async def _deliver(self, event: InvoiceEvent) -> Result[SweepResultDTO]:
        try:
            result = await self.sweep_invoice(event.invoice_id)
            failure = None if result.is_ok() else (result.error.reason or result.error.message)
        except Exception as e:
            result = None
            failure = str(e) or type(e).__name__

        async with self.async_session_factory() as session:
            event_repo = SqlAlchemyInvoiceEventRepository(session)
            if failure is None:
                await event_repo.mark_delivered(event.id)
            else:
                await event_repo.record_failure(event.id, failure)
                attempts = event.attempts + 1
                if attempts >= self.max_attempts:
                    logger.error(
                        f"Giving up on paid event {event.id} for invoice {event.invoice_id} "
                        f"after {attempts} attempts: {failure}"
                    )
                else:
                    logger.warning(
                        f"Sweep attempt {attempts}/{self.max_attempts} failed for invoice "
                        f"{event.invoice_id}: {failure}"
                    )
            await session.commit()

        return result

    async def run_once(self) -> SweepBatchResultDTO:
        """
        Process one batch of undelivered paid events

        Returns:
            SweepBatchResultDTO with per-invoice outcome lists
        """
        start_time = time.time()

        async with self.async_session_factory() as session:
            event_repo = SqlAlchemyInvoiceEventRepository(session)
            events = await event_repo.get_undelivered(
                InvoiceStatus.PAID, max_attempts=self.max_attempts, limit=self.batch_size
            )

        batch = SweepBatchResultDTO(events_seen=len(events))
        if not events:
            return batch

        logger.info(f"Processing {len(events)} paid invoice events")
        results = await asyncio.gather(*(self._deliver(event) for event in events))

        for event, result in zip(events, results):
            if result is None or result.is_err():
                batch.failed_ids.append(event.invoice_id)
            elif result.value.outcome == SweepOutcome.SWEPT:
                batch.swept_ids.append(event.invoice_id)
            else:
                batch.skipped_ids.append(event.invoice_id)

        for invoice_id in {event.invoice_id for event in events}:
            lock = self._locks.get(invoice_id)
            if lock is not None and not lock.locked():
                del self._locks[invoice_id]

        batch.execution_time_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Sweep batch complete: {len(batch.swept_ids)} swept, "
            f"{len(batch.skipped_ids)} skipped, {len(batch.failed_ids)} failed, "
            f"{batch.execution_time_ms}ms"
        )
        return batch

    async def run_forever(self, poll_interval_seconds: Optional[int] = None):
        """
        Poll for paid events continuously

        Args:
            poll_interval_seconds: Seconds between empty polls
        """
        interval = poll_interval_seconds or ApplicationConfig.SWEEPER_POLL_INTERVAL_SECONDS
        logger.info(f"Starting continuous sweeping with {interval}s poll interval")

        while True:
            try:
                batch = await self.run_once()
                if batch.events_seen >= self.batch_size:
                    continue
            except Exception as e:
                logger.error(f"Sweep batch crashed: {e}")

            await asyncio.sleep(interval)

    async def shutdown(self):
        """Cleanup resources"""
        await self.chain_adapter.close()
        await self.engine.dispose()
        logger.info("SweeperWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Process one batch
        python -m src.worker.sweeper

        # Sweep a single invoice
        python -m src.worker.sweeper --invoice-id <id>

        # Poll continuously
        python -m src.worker.sweeper --continuous
    """
    import argparse
    from src.depends import init_models

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Treasury Sweeper Worker")
    parser.add_argument("--invoice-id", type=str, help="Sweep a single invoice and exit")
    parser.add_argument("--continuous", action="store_true", help="Poll continuously")
    parser.add_argument(
        "--interval",
        type=int,
        default=ApplicationConfig.SWEEPER_POLL_INTERVAL_SECONDS,
        help="Seconds between polls",
    )
    args = parser.parse_args()

    worker = SweeperWorker()
    await init_models(worker.engine)

    try:
        if args.invoice_id:
            result = await worker.sweep_invoice(args.invoice_id)
            if result.is_err():
                print(f"Sweep failed: {result.error.message} ({result.error.reason})")
            else:
                print(f"Sweep outcome: {result.value.outcome.value}")
                for tx in result.value.tx_references:
                    print(f"  tx: {tx}")
        elif args.continuous:
            await worker.run_forever(args.interval)
        else:
            batch = await worker.run_once()
            print("Sweep batch complete:")
            print(f"  Events: {batch.events_seen}")
            print(f"  Swept: {len(batch.swept_ids)}")
            print(f"  Skipped: {len(batch.skipped_ids)}")
            print(f"  Failed: {len(batch.failed_ids)}")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
