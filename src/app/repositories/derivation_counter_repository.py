"""Derivation Counter Repository Interface"""

from abc import ABC, abstractmethod
from src.domain.asset import Chain


class DerivationCounterRepository(ABC):
    """Atomic per-chain counter handing out derivation indices"""

    @abstractmethod
    async def increment(self, chain: Chain) -> int:
        """
        Atomically increment the chain's counter

        Concurrent callers never observe the same value. The counter row is
        created on first use.

        Args:
            chain: Chain family

        Returns:
            Post-increment value (1 for the first call)
        """
        pass

    @abstractmethod
    async def current(self, chain: Chain) -> int:
        """Current counter value (0 if never incremented)"""
        pass
