from functools import lru_cache
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.repositories.derivation_counter_repository import SqlAlchemyDerivationCounterRepository
from src.adapter.services.secret_store import YamlSecretStore
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.app.services.secret_store import SecretStore
from src.domain.asset import Chain

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_chain() -> Chain:
    return Chain(ApplicationConfig.CHAIN)


@lru_cache
def get_secret_store() -> SecretStore:
    return YamlSecretStore(ApplicationConfig.SECRETS_FILE, get_chain())


async def init_models(db_engine: AsyncEngine = engine, chain: Chain = None) -> None:
    """Create tables and the derivation counter row for the configured chain"""
    async with db_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    session_factory = sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_factory() as session:
        await SqlAlchemyDerivationCounterRepository(session).ensure_exists(chain or get_chain())
        await session.commit()
