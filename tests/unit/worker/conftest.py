import pytest
from unittest.mock import MagicMock
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from src.adapter.repositories import SqlAlchemyInvoiceRepository
from src.domain.invoice import InvoiceStatus
from src.domain.invoice_lifecycle import LifecycleActor, transition_changes
from tests.fakes import FakeChainAdapter, make_invoice


@pytest.fixture
def db_uri(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'worker.db'}"


@pytest.fixture
def chain_adapter():
    return FakeChainAdapter(fee=21000)


@pytest.fixture
def secret_store(seed):
    store = MagicMock()
    store.get_seed_material.return_value = seed
    store.get_operator_signer.return_value = None
    return store


@pytest.fixture
def insert_invoice():
    """Returns a coroutine that stores an invoice (optionally marked paid) via the repository"""

    async def _insert(engine, seed, index=0, paid=False, **kwargs):
        session_factory = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
        async with session_factory() as session:
            repo = SqlAlchemyInvoiceRepository(session)
            invoice = await repo.create_if_absent(make_invoice(seed, index, **kwargs))
            if paid:
                changes = transition_changes(InvoiceStatus.PENDING, InvoiceStatus.PAID, LifecycleActor.WATCHER)
                invoice = await repo.conditional_update(invoice.id, InvoiceStatus.PENDING, changes)
            await session.commit()
            return invoice

    return _insert
