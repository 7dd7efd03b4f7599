"""SQLAlchemy Derivation Counter Repository Implementation

Atomic increments via UPDATE ... SET value = value + 1. The row lock taken
by the UPDATE is held until commit, so concurrent issuers serialize on it
and never read the same value.
"""

from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.derivation_counter_repository import DerivationCounterRepository
from src.domain.asset import Chain
from src.domain.derivation_counter import DerivationCounter


class SqlAlchemyDerivationCounterRepository(DerivationCounterRepository):
    """SQLAlchemy implementation of DerivationCounterRepository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def increment(self, chain: Chain) -> int:
        statement = (
            update(DerivationCounter)
            .where(DerivationCounter.chain == chain)
            .values(value=DerivationCounter.value + 1)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)

        if result.rowcount == 0:
            # First issuance on this chain; ensure_exists() at startup avoids
            # racing on this insert
            self.session.add(DerivationCounter(chain=chain, value=1))
            await self.session.flush()
            return 1

        return await self.current(chain)

    async def current(self, chain: Chain) -> int:
        statement = select(DerivationCounter.value).where(DerivationCounter.chain == chain)
        result = await self.session.execute(statement)
        value = result.scalar_one_or_none()
        return value or 0

    async def ensure_exists(self, chain: Chain) -> None:
        """Create the counter row for chain if missing (value 0)"""
        statement = select(DerivationCounter).where(DerivationCounter.chain == chain)
        result = await self.session.execute(statement)
        if result.scalar_one_or_none() is None:
            self.session.add(DerivationCounter(chain=chain, value=0))
            await self.session.flush()
