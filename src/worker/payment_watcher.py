"""Payment Watcher Background Worker

Runs the payment-detection cycle over all pending invoices on a fixed
interval. Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.chains import create_chain_adapter
from src.adapter.repositories.invoice_repository import SqlAlchemyInvoiceRepository
from src.adapter.services.notification_service import create_notification_service
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.chain_adapter import ChainAdapter
from src.app.services.notification_service import NotificationService
from src.app.use_cases.payments import WatchPayments, WatchCycleResultDTO

logger = logging.getLogger(__name__)


class PaymentWatcherWorker:
    """
    Background worker for payment detection

    Features:
    - Checks every pending invoice once per cycle
    - A cycle is bounded by cycle_timeout_seconds; a timed-out cycle is
      abandoned and the next one starts on schedule
    - Idempotent: paid invoices are no longer pending, so re-runs skip them

    Usage:
        worker = PaymentWatcherWorker()
        result = await worker.run_once()

        # Run continuously (every WATCHER_INTERVAL_SECONDS)
        await worker.run_forever()
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        chain_adapter: Optional[ChainAdapter] = None,
        notification_service: Optional[NotificationService] = None,
        cycle_timeout_seconds: Optional[float] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            chain_adapter: Adapter for the configured chain
            notification_service: Where payment notifications are published
            cycle_timeout_seconds: Upper bound on one cycle
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.chain_adapter = chain_adapter or create_chain_adapter(ApplicationConfig)
        self.notification_service = notification_service or create_notification_service(
            ApplicationConfig.NOTIFICATION_WEBHOOK_URL
        )
        self.cycle_timeout_seconds = (
            cycle_timeout_seconds
            if cycle_timeout_seconds is not None
            else ApplicationConfig.WATCHER_CYCLE_TIMEOUT_SECONDS
        )

        # Create engine and session factory
        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info(f"PaymentWatcherWorker initialized (chain={self.chain_adapter.chain.value})")

    async def run_once(self) -> Optional[WatchCycleResultDTO]:
        """
        Run a single watch cycle

        Returns:
            WatchCycleResultDTO, or None if the cycle could not run or timed out
        """
        logger.info("Payment watcher triggered")

        async with self.async_session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)
            invoice_repo = SqlAlchemyInvoiceRepository(session)

            use_case = WatchPayments(
                uow=uow,
                invoice_repo=invoice_repo,
                chain_adapter=self.chain_adapter,
                notification_service=self.notification_service,
            )

            try:
                result = await asyncio.wait_for(use_case.execute(), timeout=self.cycle_timeout_seconds)
            except asyncio.TimeoutError:
                logger.error(f"Watch cycle exceeded {self.cycle_timeout_seconds}s and was abandoned")
                return None

        if result.is_err():
            logger.error(f"Watch cycle failed: {result.error.message} ({result.error.reason})")
            return None

        return result.value

    async def run_forever(self, interval_seconds: Optional[int] = None):
        """
        Run watch cycles continuously

        Args:
            interval_seconds: Seconds between cycles (default: WATCHER_INTERVAL_SECONDS)
        """
        interval = interval_seconds or ApplicationConfig.WATCHER_INTERVAL_SECONDS
        logger.info(f"Starting continuous payment watching with {interval}s interval")

        while True:
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"Watch cycle crashed: {e}")

            await asyncio.sleep(interval)

    async def shutdown(self):
        """Cleanup resources"""
        await self.chain_adapter.close()
        await self.engine.dispose()
        logger.info("PaymentWatcherWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run one cycle
        python -m src.worker.payment_watcher

        # Run continuously
        python -m src.worker.payment_watcher --continuous --interval 60
    """
    import argparse
    from src.depends import init_models

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Payment Watcher Worker")
    parser.add_argument("--continuous", action="store_true", help="Run continuously")
    parser.add_argument(
        "--interval",
        type=int,
        default=ApplicationConfig.WATCHER_INTERVAL_SECONDS,
        help="Seconds between cycles",
    )
    args = parser.parse_args()

    worker = PaymentWatcherWorker()
    await init_models(worker.engine)

    try:
        if args.continuous:
            await worker.run_forever(args.interval)
        else:
            result = await worker.run_once()
            if result is not None:
                print("Watch cycle complete:")
                print(f"  Invoices checked: {result.checked_count}")
                print(f"  Marked paid: {len(result.processed_ids)}")
                print(f"  Failed: {len(result.failed_ids)}")
                print(f"  Execution time: {result.execution_time_ms}ms")
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
