"""Deterministic deposit-address derivation

Maps (seed, index, chain) to a deposit address and the signer that controls
it. No I/O; the same inputs always produce the same wallet.

    EVM:    BIP-32 secp256k1  m/44'/60'/0'/0/{index}
    Solana: SLIP-10 ed25519   m/44'/501'/{index}'/0'

Signers are re-derived whenever funds must move and are never persisted.
"""

from dataclasses import dataclass, field
from typing import Any, Dict
from bip_utils import (
    Bip32Slip10Ed25519,
    Bip32Slip10Secp256k1,
    Bip32Utils,
    Bip39MnemonicValidator,
    Bip39SeedGenerator,
)
from eth_account import Account
from solders.keypair import Keypair
from src.domain.asset import Chain
from src.domain.errors import InvalidSeedError

# Hardened derivation caps indices at 2^31 - 1
MAX_DERIVATION_INDEX = Bip32Utils.HardenIndex(0) - 1

_ACCOUNT_PATHS = {
    Chain.EVM: "m/44'/60'/0'/0",
    Chain.SOLANA: "m/44'/501'",
}


def derivation_path(index: int, chain: Chain) -> str:
    """Full derivation path for index on chain"""
    _check_index(index)
    if Chain(chain) == Chain.EVM:
        return f"m/44'/60'/0'/0/{index}"
    return f"m/44'/501'/{index}'/0'"


class SeedMaterial:
    """
    Master seed for all deposit addresses

    Holds the BIP-39 seed bytes in memory only. Account-level nodes are
    cached so each derivation costs one or two child-key steps.
    """

    __slots__ = ("_seed", "_account_nodes")

    def __init__(self, seed: bytes):
        if not isinstance(seed, (bytes, bytearray)) or not 16 <= len(seed) <= 64:
            raise InvalidSeedError("Seed must be between 16 and 64 bytes")
        self._seed = bytes(seed)
        self._account_nodes: Dict[Chain, Any] = {}

    @classmethod
    def from_mnemonic(cls, mnemonic: str, passphrase: str = "") -> "SeedMaterial":
        """
        Build seed material from a BIP-39 mnemonic

        Raises:
            InvalidSeedError: If the mnemonic is not a valid BIP-39 phrase
        """
        if not isinstance(mnemonic, str):
            raise InvalidSeedError("Mnemonic must be a string")
        normalized = " ".join(mnemonic.split())
        if not normalized or not Bip39MnemonicValidator().IsValid(normalized):
            raise InvalidSeedError("Mnemonic is not a valid BIP-39 phrase")
        return cls(Bip39SeedGenerator(normalized).Generate(passphrase))

    def account_node(self, chain: Chain) -> Any:
        chain = Chain(chain)
        node = self._account_nodes.get(chain)
        if node is None:
            if chain == Chain.EVM:
                node = Bip32Slip10Secp256k1.FromSeedAndPath(self._seed, _ACCOUNT_PATHS[chain])
            else:
                node = Bip32Slip10Ed25519.FromSeedAndPath(self._seed, _ACCOUNT_PATHS[chain])
            self._account_nodes[chain] = node
        return node

    def __repr__(self) -> str:
        return "SeedMaterial(<redacted>)"

    __str__ = __repr__


@dataclass(frozen=True)
class DerivedWallet:
    """Deposit address plus the signer that controls it"""

    chain: Chain
    index: int
    derivation_path: str
    address: str
    signer: Any = field(repr=False, compare=False)


def derive(seed: SeedMaterial, index: int, chain: Chain) -> DerivedWallet:
    """
    Derive the deposit wallet for an invoice

    Args:
        seed: Master seed material
        index: Derivation index (0 <= index <= MAX_DERIVATION_INDEX)
        chain: Chain family selecting the derivation scheme

    Returns:
        DerivedWallet with address and signer (LocalAccount or Keypair)
    """
    chain = Chain(chain)
    path = derivation_path(index, chain)
    node = seed.account_node(chain)

    if chain == Chain.EVM:
        private_key = node.ChildKey(index).PrivateKey().Raw().ToBytes()
        signer = Account.from_key(private_key)
        address = signer.address
    else:
        child = node.ChildKey(Bip32Utils.HardenIndex(index)).ChildKey(Bip32Utils.HardenIndex(0))
        signer = Keypair.from_seed(child.PrivateKey().Raw().ToBytes())
        address = str(signer.pubkey())

    return DerivedWallet(
        chain=chain,
        index=index,
        derivation_path=path,
        address=address,
        signer=signer,
    )


def _check_index(index: int) -> None:
    if isinstance(index, bool) or not isinstance(index, int):
        raise ValueError(f"Derivation index must be an integer, got {index!r}")
    if index < 0 or index > MAX_DERIVATION_INDEX:
        raise ValueError(f"Derivation index out of range: {index}")
