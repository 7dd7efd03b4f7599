"""Integration tests for the SQLAlchemy repositories against SQLite"""

import asyncio
import pytest
from sqlmodel import select

from src.adapter.repositories import (
    SqlAlchemyDerivationCounterRepository,
    SqlAlchemyInvoiceEventRepository,
    SqlAlchemyInvoiceRepository,
)
from src.domain.asset import Chain
from src.domain.errors import DuplicateInvoiceError
from src.domain.invoice import InvoiceStatus
from src.domain.invoice_event import InvoiceEvent, InvoiceEventType
from src.domain.invoice_lifecycle import LifecycleActor, transition_changes
from tests.fakes import make_invoice


class TestInvoiceRepositoryIntegration:
    """Invoice persistence with the change feed"""

    @pytest.mark.asyncio
    async def test_create_appends_insert_event(self, db_session, seed):
        """Creating an invoice records an insert event with a JSON snapshot"""
        # Arrange
        repo = SqlAlchemyInvoiceRepository(db_session)

        # Act
        invoice = await repo.create_if_absent(make_invoice(seed, 0))
        await db_session.commit()

        # Assert
        events = (await db_session.execute(select(InvoiceEvent))).scalars().all()
        assert len(events) == 1
        assert events[0].event_type == InvoiceEventType.INSERT
        assert events[0].status == InvoiceStatus.PENDING
        assert events[0].snapshot["address"] == invoice.address

    @pytest.mark.asyncio
    async def test_duplicate_address_rejected(self, db_session, seed):
        """A second invoice on the same address is refused"""
        repo = SqlAlchemyInvoiceRepository(db_session)
        await repo.create_if_absent(make_invoice(seed, 0))
        await db_session.commit()

        with pytest.raises(DuplicateInvoiceError) as exc_info:
            await repo.create_if_absent(make_invoice(seed, 0))

        assert exc_info.value.field == "address"

    @pytest.mark.asyncio
    async def test_duplicate_id_reported_before_write(self, db_session, seed):
        """An id collision is reported as such and leaves the session usable"""
        repo = SqlAlchemyInvoiceRepository(db_session)
        first = await repo.create_if_absent(make_invoice(seed, 0))
        await db_session.commit()

        with pytest.raises(DuplicateInvoiceError) as exc_info:
            await repo.create_if_absent(make_invoice(seed, 1, id=first.id))

        assert exc_info.value.field == "id"
        second = await repo.create_if_absent(make_invoice(seed, 1))
        await db_session.commit()
        assert await repo.count() == 2
        assert second.address != first.address

    @pytest.mark.asyncio
    async def test_conditional_update_checks_expected_status(self, db_session, seed):
        """
        Given: A pending invoice
        When: Updated once expecting pending, then again expecting pending
        Then: The first update applies and the second returns None
        """
        # Arrange
        repo = SqlAlchemyInvoiceRepository(db_session)
        invoice = await repo.create_if_absent(make_invoice(seed, 0))
        await db_session.commit()
        changes = transition_changes(InvoiceStatus.PENDING, InvoiceStatus.PAID, LifecycleActor.WATCHER)

        # Act
        first = await repo.conditional_update(invoice.id, InvoiceStatus.PENDING, changes)
        await db_session.commit()
        second = await repo.conditional_update(invoice.id, InvoiceStatus.PENDING, changes)

        # Assert
        assert first is not None
        assert first.status == InvoiceStatus.PAID
        assert first.paid_at is not None
        assert second is None

        event_repo = SqlAlchemyInvoiceEventRepository(db_session)
        paid_events = await event_repo.get_undelivered(InvoiceStatus.PAID, max_attempts=3)
        assert [e.invoice_id for e in paid_events] == [invoice.id]

    @pytest.mark.asyncio
    async def test_conditional_delete(self, db_session, seed):
        repo = SqlAlchemyInvoiceRepository(db_session)
        invoice = await repo.create_if_absent(make_invoice(seed, 0))
        await db_session.commit()

        refused = await repo.delete(invoice.id, [InvoiceStatus.CANCELLED])
        deleted = await repo.delete(invoice.id, [InvoiceStatus.PENDING, InvoiceStatus.CANCELLED])
        await db_session.commit()

        assert refused is False
        assert deleted is True
        assert await repo.get_by_id(invoice.id) is None

    @pytest.mark.asyncio
    async def test_list_newest_first_with_status_filter(self, db_session, seed):
        repo = SqlAlchemyInvoiceRepository(db_session)
        for index in range(3):
            await repo.create_if_absent(make_invoice(seed, index))
        cancelled = await repo.create_if_absent(make_invoice(seed, 3, status=InvoiceStatus.CANCELLED))
        await db_session.commit()

        pending = await repo.list(status=InvoiceStatus.PENDING, limit=2, offset=0)

        assert [i.derivation_index for i in pending] == [2, 1]
        assert await repo.count(InvoiceStatus.PENDING) == 3
        assert await repo.count() == 4
        assert [i.id for i in await repo.list(status=InvoiceStatus.CANCELLED)] == [cancelled.id]


class TestInvoiceEventRepositoryIntegration:
    @pytest.mark.asyncio
    async def test_delivery_bookkeeping(self, db_session, seed):
        """
        Given: A paid event
        When: Delivery fails once and then succeeds
        Then: attempts and last_error are recorded and the event leaves the feed
        """
        # Arrange
        invoice = make_invoice(seed, 0, status=InvoiceStatus.PAID)
        db_session.add(invoice)
        event_repo = SqlAlchemyInvoiceEventRepository(db_session)
        event = await event_repo.append(InvoiceEventType.MODIFY, invoice)
        await db_session.commit()

        # Act
        await event_repo.record_failure(event.id, "x" * 5000)
        await db_session.commit()
        after_failure = await event_repo.get_undelivered(InvoiceStatus.PAID, max_attempts=3)
        exhausted = await event_repo.get_undelivered(InvoiceStatus.PAID, max_attempts=1)

        await event_repo.mark_delivered(event.id)
        await db_session.commit()
        after_delivery = await event_repo.get_undelivered(InvoiceStatus.PAID, max_attempts=3)

        # Assert
        assert len(after_failure) == 1
        assert after_failure[0].attempts == 1
        assert len(after_failure[0].last_error) == 2000
        assert exhausted == []
        assert after_delivery == []


class TestDerivationCounterIntegration:
    @pytest.mark.asyncio
    async def test_increment_is_monotonic_per_chain(self, db_session):
        repo = SqlAlchemyDerivationCounterRepository(db_session)

        values = [await repo.increment(Chain.EVM) for _ in range(3)]
        solana_first = await repo.increment(Chain.SOLANA)
        await db_session.commit()

        assert values == [1, 2, 3]
        assert solana_first == 1
        assert await repo.current(Chain.EVM) == 3

    @pytest.mark.asyncio
    async def test_concurrent_sessions_never_share_a_value(self, session_factory):
        """Increments from separate sessions each get a distinct value"""

        async def allocate():
            async with session_factory() as session:
                value = await SqlAlchemyDerivationCounterRepository(session).increment(Chain.EVM)
                await session.commit()
                return value

        values = await asyncio.gather(*(allocate() for _ in range(10)))

        assert sorted(values) == list(range(1, 11))
