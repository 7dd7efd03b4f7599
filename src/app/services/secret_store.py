"""Secret Store Interface

Source of the master seed and the operator (hot wallet) signer.
"""

from abc import ABC, abstractmethod
from typing import Any
from src.domain.key_derivation import SeedMaterial


class SecretStore(ABC):
    """Read-only access to key material"""

    @abstractmethod
    def get_seed_material(self) -> SeedMaterial:
        """
        Master seed used to derive every deposit address

        The seed is immutable for the system's lifetime; implementations may
        cache it in memory after the first read.

        Raises:
            InvalidSeedError: If the stored seed is malformed
        """
        pass

    @abstractmethod
    def get_operator_signer(self) -> Any:
        """
        Signer of the hot wallet that funds sweep fees

        Returns:
            eth_account LocalAccount (EVM) or solders Keypair (Solana)
        """
        pass
