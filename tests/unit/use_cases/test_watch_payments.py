"""Unit tests for WatchPayments use case

Tests cover:
- Exact, over and under payment
- Token decimals read from the chain at check time
- Per-invoice failure isolation
- Conditional update conflicts (concurrent cancellation)
- Idempotent re-runs and best-effort notifications
"""

import pytest
from unittest.mock import AsyncMock

from src.app.use_cases.payments.watch_payments import WatchPayments
from src.domain.asset import AssetFamily
from src.domain.errors import RpcUnavailableError
from src.domain.invoice import InvoiceStatus
from tests.fakes import FakeChainAdapter, InMemoryInvoiceRepository, make_invoice

USDC = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"


@pytest.fixture
def invoice_repo():
    return InMemoryInvoiceRepository()


@pytest.fixture
def chain_adapter():
    return FakeChainAdapter(decimals={USDC: 6})


@pytest.fixture
def watch_use_case(mock_uow, invoice_repo, chain_adapter, mock_notification_service):
    return WatchPayments(
        uow=mock_uow,
        invoice_repo=invoice_repo,
        chain_adapter=chain_adapter,
        notification_service=mock_notification_service,
    )


async def add(repo, invoice):
    await repo.create_if_absent(invoice)
    return invoice


@pytest.mark.asyncio
class TestPaymentDetection:
    async def test_exact_payment_marks_paid(
        self, watch_use_case, invoice_repo, chain_adapter, mock_notification_service, seed
    ):
        """
        Given: A pending invoice for 0.01 ETH holding exactly 10^16 wei
        When: A watch cycle runs
        Then: The invoice is paid with paid_at set and a notification is published
        """
        # Arrange
        invoice = await add(invoice_repo, make_invoice(seed, requested_amount="0.01"))
        chain_adapter.native[invoice.address] = 10**16

        # Act
        result = await watch_use_case.execute()

        # Assert
        assert result.is_ok()
        assert result.value.processed_ids == [invoice.id]
        assert result.value.checked_count == 1
        assert invoice.status == InvoiceStatus.PAID
        assert invoice.paid_at is not None
        mock_notification_service.publish.assert_awaited_once()
        subject = mock_notification_service.publish.await_args.args[0]
        assert subject == f"Payment Received: Invoice {invoice.id}"

    async def test_overpayment_marks_paid(self, watch_use_case, invoice_repo, chain_adapter, seed):
        invoice = await add(invoice_repo, make_invoice(seed, requested_amount="0.01"))
        chain_adapter.native[invoice.address] = 2 * 10**16

        await watch_use_case.execute()

        assert invoice.status == InvoiceStatus.PAID

    async def test_underpayment_stays_pending(
        self, watch_use_case, invoice_repo, chain_adapter, mock_notification_service, seed
    ):
        """
        Given: One wei short of the requested amount
        When: A watch cycle runs
        Then: The invoice stays pending and nothing is reported as failed
        """
        invoice = await add(invoice_repo, make_invoice(seed, requested_amount="0.01"))
        chain_adapter.native[invoice.address] = 10**16 - 1

        result = await watch_use_case.execute()

        assert invoice.status == InvoiceStatus.PENDING
        assert result.value.processed_ids == []
        assert result.value.failed_ids == []
        mock_notification_service.publish.assert_not_awaited()

    async def test_token_uses_chain_decimals(self, watch_use_case, invoice_repo, chain_adapter, seed):
        """
        Given: A 5 USDC invoice and a token reporting 6 decimals
        When: The address holds 5_000_000 base units
        Then: The invoice is paid
        """
        invoice = await add(
            invoice_repo,
            make_invoice(
                seed,
                asset_family=AssetFamily.TOKEN,
                token_identifier=USDC,
                token_symbol="USDC",
                requested_amount="5",
            ),
        )
        chain_adapter.tokens[(invoice.address, USDC)] = 5_000_000

        await watch_use_case.execute()

        assert invoice.status == InvoiceStatus.PAID

    async def test_decimals_read_every_cycle(self, watch_use_case, invoice_repo, chain_adapter, seed):
        """
        Given: Token decimals change between cycles
        When: Two cycles run
        Then: Each cycle uses the decimals current at that time
        """
        invoice = await add(
            invoice_repo,
            make_invoice(seed, asset_family=AssetFamily.TOKEN, token_identifier=USDC, requested_amount="5"),
        )
        chain_adapter.tokens[(invoice.address, USDC)] = 5_000_000
        chain_adapter.decimals[USDC] = 18

        await watch_use_case.execute()
        assert invoice.status == InvoiceStatus.PENDING

        chain_adapter.decimals[USDC] = 6
        await watch_use_case.execute()
        assert invoice.status == InvoiceStatus.PAID

    async def test_only_pending_invoices_checked(self, watch_use_case, invoice_repo, chain_adapter, seed):
        cancelled = await add(invoice_repo, make_invoice(seed, 0, status=InvoiceStatus.CANCELLED))
        chain_adapter.native[cancelled.address] = 10**18

        result = await watch_use_case.execute()

        assert result.value.checked_count == 0
        assert cancelled.status == InvoiceStatus.CANCELLED


@pytest.mark.asyncio
class TestCycleRobustness:
    async def test_failure_is_isolated(self, watch_use_case, invoice_repo, chain_adapter, mock_uow, seed):
        """
        Given: Three paid invoices where the middle balance read fails
        When: A watch cycle runs
        Then: The other two are paid and the failure is recorded
        """
        # Arrange
        invoices = [await add(invoice_repo, make_invoice(seed, i)) for i in range(3)]
        for invoice in invoices:
            chain_adapter.native[invoice.address] = 10**16
        chain_adapter.failing_addresses[invoices[1].address] = RpcUnavailableError("node down")

        # Act
        result = await watch_use_case.execute()

        # Assert
        assert result.is_ok()
        assert result.value.processed_ids == [invoices[0].id, invoices[2].id]
        assert result.value.failed_ids == [invoices[1].id]
        assert "node down" in result.value.errors[invoices[1].id]
        assert invoices[1].status == InvoiceStatus.PENDING
        mock_uow.rollback.assert_awaited()

    async def test_rerun_is_noop(
        self, watch_use_case, invoice_repo, chain_adapter, mock_notification_service, seed
    ):
        invoice = await add(invoice_repo, make_invoice(seed))
        chain_adapter.native[invoice.address] = 10**16
        await watch_use_case.execute()
        paid_at = invoice.paid_at

        result = await watch_use_case.execute()

        assert result.value.checked_count == 0
        assert invoice.paid_at == paid_at
        assert mock_notification_service.publish.await_count == 1

    async def test_cancelled_between_read_and_write(
        self, mock_uow, chain_adapter, mock_notification_service, seed
    ):
        """
        Given: The invoice is cancelled after the cycle read it as pending
        When: The conditional update runs
        Then: The cancellation wins and no notification is sent
        """
        # Arrange
        invoice_repo = InMemoryInvoiceRepository()
        invoice = await add(invoice_repo, make_invoice(seed))
        chain_adapter.native[invoice.address] = 10**16
        original_get_balance = chain_adapter.get_balance

        async def cancel_then_read(address, asset):
            invoice.status = InvoiceStatus.CANCELLED
            return await original_get_balance(address, asset)

        chain_adapter.get_balance = cancel_then_read
        use_case = WatchPayments(mock_uow, invoice_repo, chain_adapter, mock_notification_service)

        # Act
        result = await use_case.execute()

        # Assert
        assert result.value.processed_ids == []
        assert invoice.status == InvoiceStatus.CANCELLED
        assert invoice.paid_at is None
        mock_notification_service.publish.assert_not_awaited()

    async def test_notification_failure_does_not_fail_cycle(
        self, watch_use_case, invoice_repo, chain_adapter, mock_notification_service, seed
    ):
        invoice = await add(invoice_repo, make_invoice(seed))
        chain_adapter.native[invoice.address] = 10**16
        mock_notification_service.publish = AsyncMock(side_effect=RuntimeError("webhook down"))

        result = await watch_use_case.execute()

        assert result.value.processed_ids == [invoice.id]
        assert invoice.status == InvoiceStatus.PAID

    async def test_load_failure_returns_error(self, mock_uow, chain_adapter, mock_notification_service):
        invoice_repo = InMemoryInvoiceRepository()
        invoice_repo.get_by_status = AsyncMock(side_effect=RuntimeError("db down"))
        use_case = WatchPayments(mock_uow, invoice_repo, chain_adapter, mock_notification_service)

        result = await use_case.execute()

        assert result.is_err()
        assert result.error.code == "WATCH_CYCLE_FAILED"
