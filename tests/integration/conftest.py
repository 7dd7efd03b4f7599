import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from unittest.mock import MagicMock

from config import ApplicationConfig
from src.depends import get_chain, get_secret_store, get_session, init_models
from src.domain.asset import Chain


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Create test database engine on a throwaway SQLite file"""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'invoices_test.db'}", echo=False, future=True)

    # Create all tables and the EVM derivation counter
    await init_models(engine, Chain.EVM)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a new database session for each test"""
    async with session_factory() as session:
        yield session


@pytest.fixture
def secret_store(seed):
    store = MagicMock()
    store.get_seed_material.return_value = seed
    store.get_operator_signer.return_value = None
    return store


@pytest.fixture
def api_base():
    return f"{ApplicationConfig.API_PREFIX}/invoices"


@pytest_asyncio.fixture
async def client(session_factory, secret_store):
    """Create test client with database, secrets and chain overrides"""
    from src.api.app import create_app

    app = create_app(ApplicationConfig)

    # Each request gets its own session, as in production
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_secret_store] = lambda: secret_store
    app.dependency_overrides[get_chain] = lambda: Chain.EVM

    # Use ASGITransport for httpx AsyncClient
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
