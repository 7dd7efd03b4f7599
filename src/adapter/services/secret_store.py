"""YAML Secret Store

Reads key material from a YAML file kept outside the config file:

    mnemonic: "<BIP-39 phrase>"
    operator_private_key: "<hex (EVM) or base58 (Solana)>"
"""

import logging
from pathlib import Path
from typing import Any, Optional
import yaml
from eth_account import Account
from solders.keypair import Keypair
from src.app.services.secret_store import SecretStore
from src.domain.asset import Chain
from src.domain.errors import InvalidSeedError
from src.domain.key_derivation import SeedMaterial

logger = logging.getLogger(__name__)


class YamlSecretStore(SecretStore):
    """
    Secret store backed by a YAML file

    The seed is parsed once and kept in memory; the operator signer is built
    for the configured chain.
    """

    def __init__(self, path: str, chain: Chain):
        self.path = Path(path)
        self.chain = Chain(chain)
        self._data: Optional[dict] = None
        self._seed: Optional[SeedMaterial] = None
        self._operator: Any = None

    def _load(self) -> dict:
        if self._data is None:
            if not self.path.exists():
                raise FileNotFoundError(f"Secrets file not found: {self.path}")
            with open(self.path, "r") as f:
                self._data = yaml.safe_load(f) or {}
            logger.info(f"Loaded secrets from {self.path}")
        return self._data

    def get_seed_material(self) -> SeedMaterial:
        if self._seed is None:
            mnemonic = self._load().get("mnemonic")
            if not mnemonic:
                raise InvalidSeedError(f"No mnemonic in {self.path}")
            self._seed = SeedMaterial.from_mnemonic(str(mnemonic))
        return self._seed

    def get_operator_signer(self) -> Any:
        if self._operator is None:
            key = self._load().get("operator_private_key")
            if not key:
                return None
            self._operator = load_operator_signer(str(key), self.chain)
        return self._operator


def load_operator_signer(key: str, chain: Chain) -> Any:
    """Build the chain's signer type from a serialized private key"""
    if Chain(chain) == Chain.EVM:
        return Account.from_key(key)
    return Keypair.from_base58_string(key)
